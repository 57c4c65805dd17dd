"""
Tests for installed version smoke tests (verilator_versions/tester.py).
"""

import subprocess
from unittest.mock import patch

import pytest

from conftest import make_install
from verilator_versions.errors import NotFoundError, SmokeTestError
from verilator_versions.tester import (
    SIMPLE_TEST_NAME,
    scratch_dir_for,
    smoke_test_version,
)


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestScratchDir:
    """Tests for scratch directory naming."""

    def test_named_after_tag(self, tmp_path):
        assert scratch_dir_for("v5.024", tmp_path) == tmp_path / "verilator_test_v5.024"


class TestSmokeTest:
    """Tests for smoke_test_version."""

    def test_missing_version(self, config, tmp_path):
        """Test a version that is not installed."""
        with pytest.raises(NotFoundError, match="v1.000"):
            smoke_test_version("v1.000", config, tmp_root=tmp_path)

    def test_incomplete_version(self, config, base_dir, tmp_path):
        """Test an install prefix without binary counts as missing."""
        make_install(base_dir, "v5.020", with_binary=False)
        with pytest.raises(NotFoundError):
            smoke_test_version("v5.020", config, tmp_root=tmp_path)

    @patch("verilator_versions.tester.run_command")
    def test_success_removes_scratch(self, mock_run, config, base_dir, tmp_path):
        """Test a passing lint removes the scratch directory."""
        make_install(base_dir, "v5.024")
        seen = {}

        def fake_run(command, cwd=None, **kwargs):
            if "--lint-only" in command:
                seen["source"] = (cwd / SIMPLE_TEST_NAME).read_text()
                seen["cwd"] = cwd
            return completed(stdout="Verilator 5.024 2024-01-01\n")

        mock_run.side_effect = fake_run
        smoke_test_version("v5.024", config, tmp_root=tmp_path)

        assert "module simple_test" in seen["source"]
        assert seen["cwd"] == tmp_path / "verilator_test_v5.024"
        assert not seen["cwd"].exists()

        commands = [c[0][0] for c in mock_run.call_args_list]
        binary = str(config.binary_path("v5.024"))
        assert commands == [[binary, "--version"], [binary, "--lint-only", SIMPLE_TEST_NAME]]

    @patch("verilator_versions.tester.run_command")
    def test_failure_keeps_scratch(self, mock_run, config, base_dir, tmp_path):
        """Test a failing lint raises and keeps the scratch directory."""
        make_install(base_dir, "v5.024")

        def fake_run(command, cwd=None, **kwargs):
            if "--lint-only" in command:
                return completed(1, stderr="%Error: simple_test.v:1: syntax error")
            return completed(stdout="Verilator 5.024\n")

        mock_run.side_effect = fake_run
        with pytest.raises(SmokeTestError) as excinfo:
            smoke_test_version("v5.024", config, tmp_root=tmp_path)

        scratch = tmp_path / "verilator_test_v5.024"
        assert excinfo.value.scratch_dir == str(scratch)
        assert (scratch / SIMPLE_TEST_NAME).is_file()

    @patch("verilator_versions.tester.run_command")
    def test_version_banner_failure_is_not_fatal(self, mock_run, config, base_dir, tmp_path, caplog):
        """Test only the lint result decides the outcome."""
        make_install(base_dir, "v5.024")

        def fake_run(command, cwd=None, **kwargs):
            if "--version" in command:
                return completed(3)
            return completed()

        mock_run.side_effect = fake_run
        smoke_test_version("v5.024", config, tmp_root=tmp_path)
        assert "--version failed" in caplog.text

    def test_runs_real_binary(self, config, base_dir, tmp_path):
        """Test against the stub binary without mocks."""
        make_install(base_dir, "v5.024")
        smoke_test_version("v5.024", config, tmp_root=tmp_path)
        assert not scratch_dir_for("v5.024", tmp_path).exists()
