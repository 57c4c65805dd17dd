"""
End-to-end switch/restore flow through the verilator-switch entry point.

Uses synthetic install prefixes and a temporary rc file; nothing outside
tmp_path is touched.
"""

import sys
from unittest.mock import patch

import pytest
import yaml

from verilator_versions import switch_cli

skip_on_windows = pytest.mark.skipif(sys.platform == "win32", reason="Stub binaries are shell scripts")


ORIGINAL_BASHRC = "# ~/.bashrc\nexport EDITOR=vim\nalias gs='git status'\n"


@pytest.fixture
def workspace(tmp_path):
    base = tmp_path / "verilator_versions"
    for tag in ["v4.228", "v5.024"]:
        bin_dir = base / f"verilator_{tag}" / "bin"
        bin_dir.mkdir(parents=True)
        binary = bin_dir / "verilator"
        binary.write_text(f"#!/bin/sh\necho 'Verilator {tag[1:]}'\n")
        binary.chmod(0o755)

    precompiled = base / "verilator_v5.030" / "share" / "verilator"
    (precompiled / "include").mkdir(parents=True)
    (precompiled / "include" / "verilated.mk").write_text("")
    (precompiled / "examples").mkdir()
    (base / "verilator_v5.030" / "bin").mkdir()
    (base / "verilator_v5.030" / "bin" / "verilator").write_text("#!/bin/sh\n")

    home = tmp_path / "home"
    home.mkdir()
    bashrc = home / ".bashrc"
    bashrc.write_text(ORIGINAL_BASHRC)

    config = tmp_path / "config.yml"
    config.write_text(yaml.safe_dump({
        "base_dir": str(base),
        "shell_config": str(bashrc),
    }))
    return {"base": base, "bashrc": bashrc, "config": str(config)}


def switch(workspace, *args):
    with patch("verilator_versions.config.CONFIG_LOCATIONS", []), \
            patch("verilator_versions.switch_cli.confirm", return_value=True):
        return switch_cli.main(["--config", workspace["config"], *args], environ={"PATH": ""})


@skip_on_windows
class TestSwitchFlow:
    """Switch between versions, then restore the original rc file."""

    def test_switch_switch_restore(self, workspace):
        bashrc = workspace["bashrc"]
        base = workspace["base"]

        assert switch(workspace, "switch", "v5.024") == 0
        assert switch(workspace, "v4.228") == 0
        assert switch(workspace, "switch", "v5.030") == 0

        text = bashrc.read_text()
        roots = [line for line in text.splitlines() if "export VERILATOR_ROOT=" in line]
        assert roots == [f'export VERILATOR_ROOT="{base / "verilator_v5.030"}"']
        assert text.count('export PATH="$VERILATOR_ROOT/bin:$PATH"') == 1
        assert text.startswith(ORIGINAL_BASHRC)
        assert (base / "verilator_v5.030" / "include" / "verilated.mk").is_file()

        assert (base / ".backups" / "bashrc.backup").read_text() == ORIGINAL_BASHRC

        assert switch(workspace, "restore-bashrc") == 0
        assert bashrc.read_bytes() == ORIGINAL_BASHRC.encode()

    def test_failed_switch_leaves_file_alone(self, workspace):
        bashrc = workspace["bashrc"]

        assert switch(workspace, "switch", "v9.999") == 1

        assert bashrc.read_text() == ORIGINAL_BASHRC
        assert not (workspace["base"] / ".backups").exists()
