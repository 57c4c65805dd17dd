"""
Output rendering and formatting for both command-line tools.
"""

from __future__ import annotations

import os
import sys
from typing import Iterable

from .builder import BuildResult
from .registry import InstalledVersion


USE_COLOR = os.environ.get("VERILATOR_VERSIONS_COLOR", "1") == "1"

# ANSI color codes
RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
CYAN = "\033[0;36m"
RESET = "\033[0m"


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors are disabled or stdout is not a TTY
    """
    if not USE_COLOR or not text or not sys.stdout.isatty():
        return text
    return f"{color}{text}{RESET}"


def format_installed(version: InstalledVersion, current_root: str | None = None) -> str:
    """One listing line: tag, provenance summary and the current marker."""
    line = f"  {colorize(version.tag, BLUE)}"
    if version.summary:
        line += f" - {version.summary}"
    if current_root and os.path.normpath(current_root) == os.path.normpath(str(version.path)):
        line += f" {colorize('(current)', GREEN)}"
    return line


def render_installed(
    versions: Iterable[InstalledVersion],
    current_root: str | None = None,
    empty_hint: str | None = None,
) -> int:
    """Print installed versions; returns how many were printed."""
    count = 0
    for version in versions:
        print(format_installed(version, current_root))
        count += 1

    if count == 0:
        print(f"  {colorize('No Verilator versions found', RED)}")
        if empty_hint:
            print(f"  {colorize(empty_hint, YELLOW)}")
    return count


def render_build_summary(results: Iterable[BuildResult]) -> None:
    """Print a per-version summary of a multi-version build."""
    results = list(results)
    print("")
    print(colorize("=== Build Summary ===", GREEN))
    for result in results:
        if result.success:
            state = colorize("already installed" if result.skipped else "built", GREEN)
            print(f"  {colorize(result.tag, BLUE)}: {state} ({result.duration_seconds:.1f}s)")
        else:
            stage = f" at {result.stage}" if result.stage else ""
            print(f"  {colorize(result.tag, BLUE)}: {colorize('failed' + stage, RED)}")

    failed = sum(1 for r in results if not r.success)
    print(f"  {len(results) - failed} succeeded, {failed} failed")


def section(title: str) -> None:
    print(colorize(f"=== {title} ===", GREEN))


def field_line(label: str, value: str, color: str = CYAN) -> None:
    print(f"{colorize(label + ':', color)} {value}")
