"""
Installed version registry.

The registry is the filesystem: every immediate subdirectory of the base
directory named `<prefix><tag>` that contains the expected binary is an
installed version. Provenance comes from the VERSION file when present.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from .versions import version_key


VERSION_FILE = "VERSION"
# <prefix>repo is the default mirror location, never an install
MIRROR_TAG = "repo"
BUILT_ON_LABEL = "Built on:"
COMMIT_LABEL = "Git commit:"


@dataclass(frozen=True)
class VersionInfo:
    """
    Provenance metadata written by the builder.

    Attributes:
        tag: Tag recorded on the first line
        built_on: Build timestamp text
        commit: Source commit hash
    """
    tag: str
    built_on: str | None = None
    commit: str | None = None

    def to_text(self) -> str:
        """Render in the VERSION file format (one field per line)."""
        lines = [self.tag]
        if self.built_on is not None:
            lines.append(f"{BUILT_ON_LABEL} {self.built_on}")
        if self.commit is not None:
            lines.append(f"{COMMIT_LABEL} {self.commit}")
        return "\n".join(lines) + "\n"

    @staticmethod
    def from_text(text: str) -> VersionInfo | None:
        lines = [line.strip() for line in text.splitlines()]
        if not lines or not lines[0]:
            return None

        built_on = None
        commit = None
        for line in lines[1:]:
            if line.startswith(BUILT_ON_LABEL):
                built_on = line[len(BUILT_ON_LABEL):].strip()
            elif line.startswith(COMMIT_LABEL):
                commit = line[len(COMMIT_LABEL):].strip()

        return VersionInfo(tag=lines[0], built_on=built_on, commit=commit)


@dataclass(frozen=True)
class InstalledVersion:
    """
    A version installed under the base directory.

    Attributes:
        tag: Version tag
        path: Install prefix
        binary: Path of the verilator binary
        info: Provenance metadata, if the VERSION file exists
    """
    tag: str
    path: Path
    binary: Path
    info: VersionInfo | None = None

    @property
    def summary(self) -> str:
        """First line of the provenance file, as shown in listings."""
        return self.info.tag if self.info else ""


def read_version_info(install_dir: str | Path) -> VersionInfo | None:
    """Read the VERSION file of an install prefix, if any."""
    path = Path(install_dir) / VERSION_FILE
    try:
        return VersionInfo.from_text(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError):
        return None


def write_version_info(install_dir: str | Path, info: VersionInfo) -> Path:
    """Write the VERSION file of an install prefix."""
    path = Path(install_dir) / VERSION_FILE
    path.write_text(info.to_text(), encoding="utf-8")
    return path


def is_install_dir(path: str | Path, binary: str = "bin/verilator") -> bool:
    """Holds the binary and is not a git checkout (the mirror ships bin/verilator too)."""
    path = Path(path)
    return (path / binary).is_file() and not (path / ".git").exists()


def tag_from_path(path: str | os.PathLike, prefix: str = "verilator_") -> str | None:
    """
    Extract the tag from an install prefix path such as /base/verilator_v5.024.

    Returns:
        Tag, or None if the last path component does not follow the convention
    """
    name = Path(str(path).rstrip("/\\")).name
    match = re.match(rf"^{re.escape(prefix)}(.+)$", name)
    return match.group(1) if match else None


class InstalledVersions:
    """
    Lazy view of the versions installed under a base directory.

    Each iteration rescans the directory, so the same object can be
    iterated again after installs or removals. Order is filesystem order.
    """

    def __init__(self, base_dir: str | Path, prefix: str = "verilator_", binary: str = "bin/verilator"):
        self.base_dir = Path(base_dir)
        self.prefix = prefix
        self.binary = binary

    def __iter__(self) -> Iterator[InstalledVersion]:
        try:
            entries = os.scandir(self.base_dir)
        except (FileNotFoundError, NotADirectoryError):
            return

        with entries:
            for entry in entries:
                if not entry.is_dir():
                    continue
                tag = tag_from_path(entry.name, self.prefix)
                if not tag or tag == MIRROR_TAG:
                    continue
                path = Path(entry.path)
                if not is_install_dir(path, self.binary):
                    continue
                binary = path / self.binary
                yield InstalledVersion(
                    tag=tag,
                    path=path,
                    binary=binary,
                    info=read_version_info(path),
                )

    def __contains__(self, tag: object) -> bool:
        return any(v.tag == tag for v in self)

    def tags(self) -> list[str]:
        return [v.tag for v in self]


def list_installed(
    base_dir: str | Path,
    prefix: str = "verilator_",
    binary: str = "bin/verilator",
) -> InstalledVersions:
    """
    Installed versions under base_dir.

    Args:
        base_dir: Directory holding install prefixes
        prefix: Directory name prefix of install prefixes
        binary: Binary path relative to an install prefix

    Returns:
        Restartable iterable of InstalledVersion (filesystem order)
    """
    return InstalledVersions(base_dir, prefix=prefix, binary=binary)


def sort_versions(versions: Iterable[InstalledVersion]) -> list[InstalledVersion]:
    """Sort installed versions oldest first by tag precedence."""
    return sorted(versions, key=lambda v: version_key(v.tag))


def get_installed(
    base_dir: str | Path,
    tag: str,
    prefix: str = "verilator_",
    binary: str = "bin/verilator",
) -> InstalledVersion | None:
    """InstalledVersion for tag, or None if missing or incomplete."""
    if tag == MIRROR_TAG:
        return None
    path = Path(base_dir) / f"{prefix}{tag}"
    if not is_install_dir(path, binary):
        return None
    binary_path = path / binary
    return InstalledVersion(tag=tag, path=path, binary=binary_path, info=read_version_info(path))
