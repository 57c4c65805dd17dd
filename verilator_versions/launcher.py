"""
Switcher launcher script.

Writes switch_verilator.sh into the base directory so the switcher can be
run from there without knowing where this package is installed.
"""

from __future__ import annotations

import shlex
import stat
import sys
from pathlib import Path

from .config import Config
from .logging_config import get_logger


LAUNCHER_NAME = "switch_verilator.sh"


def render_switcher_script(config: Config, python: str | None = None) -> str:
    """Text of the launcher script."""
    python = python or sys.executable
    command = [python, "-m", "verilator_versions.switch_cli"]
    if config.source:
        command += ["--config", str(Path(config.source).resolve())]

    return (
        "#!/bin/bash\n"
        "# Verilator Version Switcher - Permanent .bashrc Integration\n"
        f"exec {' '.join(shlex.quote(part) for part in command)} \"$@\"\n"
    )


def create_switcher_script(config: Config, python: str | None = None) -> Path:
    """
    Write the executable launcher into the base directory.

    Returns:
        Path of the launcher
    """
    logger = get_logger()
    script = config.base_path / LAUNCHER_NAME
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(render_switcher_script(config, python), encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    logger.info(f"Created permanent verilator version switcher at {script}")
    logger.info("Usage:")
    logger.info(f"  Switch version: {script} switch <version>")
    logger.info(f"  Direct usage: {script} <version>")
    logger.info("  All switches update .bashrc permanently")
    return script
