"""
Directory layout normalization for precompiled distributions.

Precompiled packages put include/, examples/ and sometimes bin/ under
share/verilator/. Makefiles generated by downstream tools expect them at
the top of VERILATOR_ROOT, so relative symlinks are created there.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .common import vlog
from .logging_config import get_logger


NESTED_ROOT = Path("share") / "verilator"
LINKED_DIRS = ("include", "examples", "bin")
MARKER_FILE = Path("include") / "verilated.mk"


@dataclass(frozen=True)
class NormalizeResult:
    """
    Outcome of a normalization pass.

    Attributes:
        install_dir: Directory that was inspected
        precompiled: Precompiled layout was detected
        links_created: Canonical names that were linked in this pass
        marker_found: include/verilated.mk is reachable afterwards
    """
    install_dir: Path
    precompiled: bool
    links_created: tuple[str, ...] = ()
    marker_found: bool = False


def is_precompiled_layout(install_dir: str | Path) -> bool:
    """No canonical include/ but a nested share/verilator/include/."""
    install_dir = Path(install_dir)
    return not (install_dir / "include").is_dir() and (install_dir / NESTED_ROOT / "include").is_dir()


def normalize_structure(install_dir: str | Path, verbose: bool = False) -> NormalizeResult:
    """
    Create compatibility symlinks for a precompiled layout.

    Existing entries are never replaced, so repeated runs are no-ops. A
    missing include/verilated.mk afterwards is reported as a warning only.

    Args:
        install_dir: Install prefix to normalize
        verbose: Enable verbose logging

    Returns:
        NormalizeResult
    """
    logger = get_logger()
    install_dir = Path(install_dir)
    precompiled = is_precompiled_layout(install_dir)
    created = []

    if precompiled:
        logger.warning("Detected precompiled version, fixing directory structure...")
        for name in LINKED_DIRS:
            link = install_dir / name
            target = NESTED_ROOT / name
            if link.exists() or link.is_symlink():
                vlog(f"{link} already exists, leaving it alone", verbose)
                continue
            if not (install_dir / target).is_dir():
                continue
            try:
                os.symlink(target, link, target_is_directory=True)
            except FileExistsError:
                vlog(f"{link} appeared concurrently, leaving it alone", verbose)
                continue
            created.append(name)
            logger.info(f"Created {name} directory symlink")
        logger.info("Precompiled version structure fixed")

    marker_found = (install_dir / MARKER_FILE).is_file()
    if marker_found:
        vlog(f"{MARKER_FILE} found and accessible", verbose)
    else:
        logger.warning(f"{MARKER_FILE} not found under {install_dir}")
        logger.warning("Builds that include verilated.mk (e.g. SpinalHDL) may fail")

    return NormalizeResult(
        install_dir=install_dir,
        precompiled=precompiled,
        links_created=tuple(created),
        marker_found=marker_found,
    )
