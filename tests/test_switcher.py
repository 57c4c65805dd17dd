"""
Tests for persistent version switching (verilator_versions/switcher.py).
"""

import pytest

from conftest import make_install, make_mirror, make_precompiled
from verilator_versions.errors import ShellConfigError, UnknownVersionError
from verilator_versions.switcher import (
    MARKER_COMMENT,
    ShellConfig,
    switch_version,
)


PATH_LINE = 'export PATH="$VERILATOR_ROOT/bin:$PATH"'


def assignments(text):
    return [line for line in text.splitlines() if line.startswith("export VERILATOR_ROOT=")]


class TestShellConfig:
    """Tests for ShellConfig paths and line rendering."""

    def test_from_config(self, config, tmp_path):
        shell = ShellConfig.from_config(config, environ={})
        assert shell.path == tmp_path / "home" / ".bashrc"
        assert shell.backup_path == config.backup_path / "bashrc.backup"

    def test_lines(self, shell_config):
        assert shell_config.path_line == PATH_LINE
        assert shell_config.assignment_line("/b/verilator_v5.024") == 'export VERILATOR_ROOT="/b/verilator_v5.024"'

    def test_custom_variable(self, tmp_path):
        shell = ShellConfig(path=tmp_path / ".zshrc", backup_dir=tmp_path / "bk", variable="VROOT")
        assert shell.path_line == 'export PATH="$VROOT/bin:$PATH"'
        assert shell.backup_path == tmp_path / "bk" / "zshrc.backup"

    def test_read_assignment_unquotes(self, shell_config):
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text("alias ll='ls -l'\n  export VERILATOR_ROOT='/x/verilator_v4.228'\n")
        assert shell_config.read_assignment() == "/x/verilator_v4.228"

    def test_read_unreadable(self, shell_config):
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(ShellConfigError):
            shell_config.read_lines()


class TestApply:
    """Tests for rewriting the shell configuration file."""

    def test_missing_file_is_created(self, shell_config, tmp_path):
        """Test a missing rc file is created, backed up empty, then written."""
        result = shell_config.apply(tmp_path / "verilator_v5.024")

        assert result.backup_created
        assert not result.replaced
        assert result.path_added
        assert shell_config.backup_path.read_text() == ""
        assert shell_config.path.read_text() == (
            f'{MARKER_COMMENT}\nexport VERILATOR_ROOT="{tmp_path / "verilator_v5.024"}"\n{PATH_LINE}\n'
        )

    def test_appends_block_after_existing_content(self, shell_config):
        """Test a blank separator line precedes the appended block."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text("alias ll='ls -l'\n")

        shell_config.apply("/b/verilator_v5.024")

        assert shell_config.path.read_text().splitlines() == [
            "alias ll='ls -l'",
            "",
            MARKER_COMMENT,
            'export VERILATOR_ROOT="/b/verilator_v5.024"',
            PATH_LINE,
        ]

    def test_replaces_value_in_place(self, shell_config):
        """Test only the assignment value changes when switching again."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text(
            "alias ll='ls -l'\n"
            'export VERILATOR_ROOT="/b/verilator_v5.024"\n'
            f"{PATH_LINE}\n"
            "export EDITOR=vim\n"
        )

        result = shell_config.apply("/b/verilator_v4.228")

        assert result.replaced
        assert result.previous_root == "/b/verilator_v5.024"
        assert result.tag == "v4.228"
        assert not result.path_added
        assert shell_config.path.read_text() == (
            "alias ll='ls -l'\n"
            'export VERILATOR_ROOT="/b/verilator_v4.228"\n'
            f"{PATH_LINE}\n"
            "export EDITOR=vim\n"
        )

    def test_exactly_one_assignment_after_many_switches(self, shell_config):
        """Test repeated switches never accumulate lines."""
        for tag in ["v5.024", "v4.228", "v5.002", "v5.024", "v4.228"]:
            shell_config.apply(f"/b/verilator_{tag}")

        text = shell_config.path.read_text()
        assert assignments(text) == ['export VERILATOR_ROOT="/b/verilator_v4.228"']
        assert text.count(PATH_LINE) == 1
        assert text.count(MARKER_COMMENT) == 1

    def test_collapses_duplicate_assignments(self, shell_config):
        """Test duplicate assignments from manual edits are removed."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text(
            'export VERILATOR_ROOT="/old/one"\n'
            f"{PATH_LINE}\n"
            'export VERILATOR_ROOT="/old/two"\n'
            f"{PATH_LINE}\n"
        )

        shell_config.apply("/b/verilator_v5.024")

        assert shell_config.path.read_text().splitlines() == [
            'export VERILATOR_ROOT="/b/verilator_v5.024"',
            PATH_LINE,
        ]

    def test_existing_braced_path_reference_kept(self, shell_config):
        """Test a user-written ${VERILATOR_ROOT}/bin PATH entry is respected."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text(
            "export VERILATOR_ROOT=/b/verilator_v5.024\n"
            'export PATH="${VERILATOR_ROOT}/bin:$HOME/bin:$PATH"\n'
        )

        result = shell_config.apply("/b/verilator_v4.228")

        assert not result.path_added
        assert PATH_LINE not in shell_config.path.read_text()

    def test_path_line_added_to_existing_assignment(self, shell_config):
        """Test a PATH line is inserted right after a bare assignment."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text("export VERILATOR_ROOT=/x\nexport EDITOR=vim\n")

        result = shell_config.apply("/b/verilator_v5.024")

        assert result.path_added
        assert shell_config.path.read_text().splitlines() == [
            'export VERILATOR_ROOT="/b/verilator_v5.024"',
            PATH_LINE,
            "export EDITOR=vim",
        ]


class TestBackupRestore:
    """Tests for the one-time backup and restore."""

    ORIGINAL = "# my bashrc\nalias ll='ls -l'\nexport PS1='$ '"

    def test_backup_taken_once(self, shell_config):
        """Test the snapshot keeps the pre-tool content."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text(self.ORIGINAL)

        first = shell_config.apply("/b/verilator_v5.024")
        second = shell_config.apply("/b/verilator_v4.228")

        assert first.backup_created
        assert not second.backup_created
        assert shell_config.backup_path.read_text() == self.ORIGINAL

    def test_restore_is_byte_identical(self, shell_config):
        """Test restore after several switches returns the original bytes."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text(self.ORIGINAL)

        for tag in ["v5.024", "v4.228", "v5.002"]:
            shell_config.apply(f"/b/verilator_{tag}")
        result = shell_config.restore()

        assert result.from_backup
        assert shell_config.path.read_bytes() == self.ORIGINAL.encode()

    def test_restore_without_backup_strips_lines(self, shell_config, caplog):
        """Test the fallback removes the tool's lines only."""
        shell_config.path.parent.mkdir(parents=True)
        shell_config.path.write_text(
            "alias ll='ls -l'\n"
            f"{MARKER_COMMENT}\n"
            'export VERILATOR_ROOT="/b/verilator_v5.024"\n'
            f"{PATH_LINE}\n"
            "export EDITOR=vim\n"
        )

        result = shell_config.restore()

        assert not result.from_backup
        assert result.lines_removed == 3
        assert shell_config.path.read_text() == "alias ll='ls -l'\nexport EDITOR=vim\n"
        assert "No .bashrc backup found" in caplog.text

    def test_restore_without_anything(self, shell_config):
        """Test restore with neither backup nor file is a no-op."""
        result = shell_config.restore()
        assert result.lines_removed == 0
        assert not shell_config.path.exists()


class TestCurrent:
    """Tests for current()."""

    def test_nothing_configured(self, shell_config):
        state = shell_config.current()
        assert state.env_root is None
        assert state.file_root is None
        assert not state.file_exists
        assert not state.pending_switch

    def test_pending_switch(self, tmp_path):
        shell = ShellConfig(
            path=tmp_path / ".bashrc",
            backup_dir=tmp_path / "bk",
            environ={"VERILATOR_ROOT": "/b/verilator_v5.024", "PATH": ""},
        )
        shell.apply("/b/verilator_v4.228")

        state = shell.current()
        assert state.env_tag == "v5.024"
        assert state.file_tag == "v4.228"
        assert state.pending_switch

    def test_finds_binary_on_path(self, base_dir, tmp_path):
        install_dir = make_install(base_dir, "v5.024")
        shell = ShellConfig(
            path=tmp_path / ".bashrc",
            backup_dir=tmp_path / "bk",
            environ={"PATH": str(install_dir / "bin")},
        )
        assert shell.current().path_binary == str(install_dir / "bin" / "verilator")


class TestSwitchVersion:
    """Tests for switch_version."""

    def test_unknown_version(self, config, shell_config):
        """Test switching to a version that was never built."""
        with pytest.raises(UnknownVersionError, match="Version v1.000 not found"):
            switch_version("v1.000", config, shell_config)
        assert not shell_config.path.exists()

    def test_incomplete_version(self, config, shell_config, base_dir):
        """Test switching to a version without binary."""
        make_install(base_dir, "v5.020", with_binary=False)
        with pytest.raises(UnknownVersionError) as excinfo:
            switch_version("v5.020", config, shell_config)
        assert "binary not found" in excinfo.value.message
        assert "incomplete" in excinfo.value.remediation
        assert not shell_config.path.exists()

    def test_mirror_is_not_a_version(self, config, shell_config, base_dir):
        """Test VERILATOR_ROOT is never pointed at the source checkout."""
        make_mirror(base_dir)
        with pytest.raises(UnknownVersionError) as excinfo:
            switch_version("repo", config, shell_config)
        assert "source mirror" in excinfo.value.remediation
        assert not shell_config.path.exists()

    def test_switch(self, config, shell_config, base_dir):
        """Test a switch writes the install prefix."""
        install_dir = make_install(base_dir, "v5.024")

        result = switch_version("v5.024", config, shell_config)

        assert result.tag == "v5.024"
        assert result.install_dir == install_dir
        assert not result.normalize.precompiled
        assert shell_config.read_assignment() == str(install_dir)

    def test_switch_normalizes_precompiled(self, config, shell_config, base_dir):
        """Test precompiled layouts get their include link before switching."""
        install_dir = make_precompiled(base_dir, "v5.024")

        result = switch_version("v5.024", config, shell_config)

        assert result.normalize.precompiled
        assert (install_dir / "include" / "verilated.mk").is_file()

    def test_switch_sequence(self, config, shell_config, base_dir):
        """Test v5.024 then v4.228 leaves one assignment with the new value."""
        make_install(base_dir, "v5.024")
        old = make_install(base_dir, "v4.228")

        switch_version("v5.024", config, shell_config)
        result = switch_version("v4.228", config, shell_config)

        assert result.replaced
        assert result.previous_root == str(base_dir / "verilator_v5.024")
        assert assignments(shell_config.path.read_text()) == [f'export VERILATOR_ROOT="{old}"']
