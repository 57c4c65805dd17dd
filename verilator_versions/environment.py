"""
Host environment detection for build defaults.

Detects whether the builder runs inside an MSYS2 shell on Windows, where
the Verilator configure step needs the MSYS2 toolchain first on PATH and
the system include directory on CPPFLAGS.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Mapping

from .common import vlog


MSYS2_PATH_PREPEND = ("/usr/bin", "/mingw64/bin")
MSYS2_BUILD_ENV = {"CPPFLAGS": "-I/usr/include"}


@dataclass(frozen=True)
class Environment:
    """
    Detected host environment.

    Attributes:
        mode: Environment type ('msys2' or 'posix')
        indicators: Evidence for the detection decision
        override: Whether mode was explicitly overridden by user
    """
    mode: str
    indicators: tuple[str, ...] = ()
    override: bool = False

    def __str__(self) -> str:
        override_str = " (override)" if self.override else ""
        return f"{self.mode}{override_str}"

    @property
    def is_msys2(self) -> bool:
        return self.mode == "msys2"


def detect_environment(
    override: str | None = None,
    environ: Mapping[str, str] | None = None,
    verbose: bool = False,
) -> Environment:
    """
    Detect the host environment.

    Args:
        override: Explicit mode ('msys2', 'posix', 'auto' or None)
        environ: Environment mapping to inspect (defaults to os.environ)
        verbose: Enable verbose logging

    Returns:
        Environment object with detected or overridden mode

    Raises:
        ValueError: If override value is not valid
    """
    valid_modes = {"msys2", "posix"}

    if override and override != "auto":
        if override not in valid_modes:
            raise ValueError(
                f"Invalid environment override: {override}. "
                f"Must be one of: {', '.join(sorted(valid_modes))}"
            )
        vlog(f"Environment explicitly set to: {override}", verbose)
        return Environment(
            mode=override,
            indicators=(f"explicit_override={override}",),
            override=True,
        )

    if environ is None:
        environ = os.environ

    indicators = []
    msystem = environ.get("MSYSTEM")
    if msystem:
        indicators.append(f"env:MSYSTEM={msystem}")
    if sys.platform in ("win32", "cygwin", "msys"):
        indicators.append(f"platform={sys.platform}")

    if msystem:
        vlog(f"MSYS2 environment detected: {indicators}", verbose)
        return Environment(mode="msys2", indicators=tuple(indicators))

    vlog("POSIX environment detected (default)", verbose)
    return Environment(mode="posix", indicators=tuple(indicators))


def build_environment(
    env: Environment,
    extra_env: Mapping[str, str] | None = None,
    path_prepend: tuple[str, ...] = (),
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Compose the process environment used for configure/compile/install.

    Args:
        env: Detected host environment
        extra_env: Configured variables (override the MSYS2 defaults)
        path_prepend: Configured directories to put first on PATH
        base: Starting environment (defaults to os.environ)

    Returns:
        Environment dictionary for subprocess calls
    """
    result = dict(os.environ if base is None else base)

    prepend = list(path_prepend)
    if env.is_msys2:
        prepend.extend(p for p in MSYS2_PATH_PREPEND if p not in prepend)
        result.update(MSYS2_BUILD_ENV)

    if extra_env:
        result.update(extra_env)

    if prepend:
        current = result.get("PATH", "")
        result["PATH"] = os.pathsep.join(prepend + ([current] if current else []))

    return result
