"""
Shared fixtures: synthetic install trees and a temporary shell rc file.
"""

import os
import stat
from pathlib import Path

import pytest

from verilator_versions.config import Config
from verilator_versions.logging_config import setup_logging
from verilator_versions.switcher import ShellConfig


@pytest.fixture(autouse=True)
def propagate_logging():
    """Route package logs through the root logger so caplog sees them."""
    setup_logging(level="DEBUG", propagate=True)
    yield


@pytest.fixture
def base_dir(tmp_path):
    path = tmp_path / "verilator_versions"
    path.mkdir()
    return path


@pytest.fixture
def config(base_dir, tmp_path):
    return Config(
        base_dir=str(base_dir),
        shell_config=str(tmp_path / "home" / ".bashrc"),
    )


def make_install(base_dir: Path, tag: str, with_binary: bool = True, version_file: str | None = None) -> Path:
    """Create base_dir/verilator_<tag> with an optional executable stub binary."""
    install_dir = base_dir / f"verilator_{tag}"
    (install_dir / "include").mkdir(parents=True)
    if with_binary:
        (install_dir / "bin").mkdir()
        binary = install_dir / "bin" / "verilator"
        binary.write_text(f"#!/bin/sh\necho 'Verilator {tag.lstrip('v')} 2024-01-01'\n")
        binary.chmod(binary.stat().st_mode | stat.S_IXUSR)
    if version_file is not None:
        (install_dir / "VERSION").write_text(version_file)
    return install_dir


def make_precompiled(base_dir: Path, tag: str, with_marker: bool = True, top_bin: bool = True) -> Path:
    """Create an install prefix in the precompiled (share/verilator) layout."""
    install_dir = base_dir / f"verilator_{tag}"
    nested = install_dir / "share" / "verilator"
    (nested / "include").mkdir(parents=True)
    (nested / "examples").mkdir()
    (nested / "bin").mkdir()
    (nested / "bin" / "verilator").write_text("#!/bin/sh\n")
    if top_bin:
        (install_dir / "bin").mkdir()
        (install_dir / "bin" / "verilator").write_text("#!/bin/sh\n")
    if with_marker:
        (nested / "include" / "verilated.mk").write_text("# makefile\n")
    return install_dir


@pytest.fixture
def shell_config(config):
    return ShellConfig.from_config(config, environ={"PATH": os.defpath})


def make_mirror(base_dir: Path, name: str = "verilator_repo") -> Path:
    """Create a fake git checkout that, like upstream, tracks bin/verilator."""
    mirror = base_dir / name
    (mirror / ".git").mkdir(parents=True)
    (mirror / "bin").mkdir()
    binary = mirror / "bin" / "verilator"
    binary.write_text("#!/usr/bin/env perl\n")
    binary.chmod(binary.stat().st_mode | stat.S_IXUSR)
    return mirror
