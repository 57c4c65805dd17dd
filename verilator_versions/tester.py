"""
Smoke tests for installed versions.

Runs the installed binary once for its version banner, then lints a small
embedded Verilog module. Only the exit status of the lint run decides the
outcome.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from .common import describe_failure, run_command
from .config import Config
from .errors import NotFoundError, SmokeTestError
from .logging_config import get_logger


SIMPLE_TEST_NAME = "simple_test.v"

SIMPLE_TEST_SOURCE = """\
module simple_test (
    input clk,
    input rst,
    output reg [7:0] counter
);

always @(posedge clk or posedge rst) begin
    if (rst)
        counter <= 8'b0;
    else
        counter <= counter + 1;
end

endmodule
"""


def scratch_dir_for(tag: str, tmp_root: str | Path | None = None) -> Path:
    """Scratch directory used by the smoke test of tag."""
    root = Path(tmp_root) if tmp_root is not None else Path(tempfile.gettempdir())
    return root / f"verilator_test_{tag}"


def smoke_test_version(
    tag: str,
    config: Config,
    tmp_root: str | Path | None = None,
    verbose: bool = False,
) -> None:
    """
    Smoke-test an installed version.

    The scratch directory is removed on success and left in place on
    failure.

    Args:
        tag: Version tag
        config: Configuration
        tmp_root: Parent of the scratch directory (system temp dir if None)
        verbose: Enable verbose logging

    Raises:
        NotFoundError: If the version's binary is missing
        SmokeTestError: If linting the test module fails
    """
    logger = get_logger()
    binary = config.binary_path(tag)
    if not binary.is_file():
        raise NotFoundError(
            f"Version {tag} not found at {config.install_dir(tag)}",
            remediation=f"Build it first: verilator-versions build {tag}",
        )

    logger.info(f"Testing Verilator version {tag}...")

    result = run_command([str(binary), "--version"], verbose=verbose)
    banner = (result.stdout or "").strip()
    if banner:
        logger.info(banner.splitlines()[0])
    if result.returncode != 0:
        logger.warning(f"{binary} --version failed ({describe_failure(result)})")

    test_dir = scratch_dir_for(tag, tmp_root)
    test_dir.mkdir(parents=True, exist_ok=True)
    (test_dir / SIMPLE_TEST_NAME).write_text(SIMPLE_TEST_SOURCE, encoding="utf-8")

    result = run_command([str(binary), "--lint-only", SIMPLE_TEST_NAME], cwd=test_dir, verbose=verbose)
    if result.returncode != 0:
        for line in (result.stderr or "").strip().splitlines():
            logger.error(line)
        raise SmokeTestError(
            f"Version {tag} failed basic test ({describe_failure(result)}); "
            f"test files kept in {test_dir}",
            scratch_dir=str(test_dir),
        )

    logger.info(f"Version {tag} passed basic test")
    shutil.rmtree(test_dir, ignore_errors=True)
