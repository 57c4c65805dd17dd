"""
Common utilities shared across verilator_versions modules.
"""

from __future__ import annotations

import os
import subprocess
import sys
from typing import Mapping, Sequence


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log a verbose-only diagnostic message.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("VERILATOR_VERSIONS_DEBUG", "0") == "1":
        from .logging_config import get_logger
        get_logger().debug(msg)


def run_command(
    command: Sequence[str],
    cwd: str | os.PathLike | None = None,
    env: Mapping[str, str] | None = None,
    capture: bool = True,
    verbose: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run an external command to completion.

    No timeout is applied: a hanging tool hangs the caller.

    Args:
        command: Command and arguments
        cwd: Working directory
        env: Full environment for the child (inherits ours if None)
        capture: Capture stdout/stderr as text instead of streaming them
        verbose: Enable verbose logging

    Returns:
        CompletedProcess; a missing executable is reported as exit code 127
    """
    vlog(f"Executing: {' '.join(str(c) for c in command)}" + (f" (in {cwd})" if cwd else ""), verbose)

    try:
        return subprocess.run(
            [str(c) for c in command],
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=capture,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        return subprocess.CompletedProcess(
            args=list(command),
            returncode=127,
            stdout="",
            stderr=f"Command not found: {command[0]}",
        )


def describe_failure(result: subprocess.CompletedProcess) -> str:
    """Short description of a failed command for error messages."""
    msg = f"exit code {result.returncode}"
    stderr = (result.stderr or "").strip()
    if stderr:
        msg += f": {stderr[:200]}"
    return msg


def confirm(prompt: str = "Continue? (y/N): ") -> bool:
    """
    Ask the user for a y/N confirmation.

    Returns:
        True only for an explicit yes; False when declined or non-interactive
    """
    if not sys.stdin.isatty():
        return False

    print(prompt, end="", flush=True)
    try:
        response = input().strip().lower()
    except EOFError:
        return False
    return response in ('y', 'yes')
