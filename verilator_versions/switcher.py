"""
Persistent switching of the active Verilator version.

The active version lives in two places: the process environment (per
session, never modified here) and an `export VERILATOR_ROOT=...` line in a
shell start-up file. Switching rewrites that one line in place, or appends
a marked block when it is absent, so the file always holds exactly one
assignment. The first modification is preceded by a one-time backup that
restore-bashrc copies back.

Edits are plain read-modify-write without locking; concurrent switches
race and the last writer wins.
"""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .config import Config
from .errors import ShellConfigError, UnknownVersionError
from .logging_config import get_logger
from .normalizer import NormalizeResult, normalize_structure
from .registry import tag_from_path


MARKER_COMMENT = "# Verilator Configuration - Added by verilator switcher"
MARKER_PREFIX = "# Verilator Configuration"


@dataclass(frozen=True)
class SwitchResult:
    """
    Outcome of a persistent switch.

    Attributes:
        tag: Version switched to
        install_dir: Value written for the root variable
        previous_root: Value found in the file before the switch
        replaced: An existing assignment line was rewritten (vs appended)
        path_added: The PATH line was added in this switch
        backup_created: The backup snapshot was created by this switch
        normalize: Result of the layout normalization pass
    """
    tag: str
    install_dir: Path
    previous_root: str | None = None
    replaced: bool = False
    path_added: bool = False
    backup_created: bool = False
    normalize: NormalizeResult | None = None


@dataclass(frozen=True)
class RestoreResult:
    """
    Outcome of restoring the shell configuration file.

    Attributes:
        from_backup: The backup snapshot was copied back
        lines_removed: Lines stripped by the fallback (no backup)
    """
    from_backup: bool
    lines_removed: int = 0


@dataclass(frozen=True)
class CurrentState:
    """
    Active version as seen by this session and by new shells.

    Attributes:
        env_root: Root variable in the process environment
        env_tag: Tag parsed from env_root
        file_root: Root variable assigned in the shell configuration file
        file_tag: Tag parsed from file_root
        file_exists: Whether the shell configuration file exists
        path_binary: verilator found on PATH
    """
    env_root: str | None
    env_tag: str | None
    file_root: str | None
    file_tag: str | None
    file_exists: bool
    path_binary: str | None = None

    @property
    def pending_switch(self) -> bool:
        """The file selects a different version than this session uses."""
        return self.file_root is not None and self.file_root != self.env_root


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


@dataclass
class ShellConfig:
    """
    Shell start-up file holding the persistent root variable assignment.

    Attributes:
        path: Shell configuration file (e.g. ~/.bashrc)
        backup_dir: Directory of the one-time backup snapshot
        variable: Name of the root variable
        environ: Process environment used by current()
        install_prefix: Directory name prefix used to parse tags from paths
    """
    path: Path
    backup_dir: Path
    variable: str = "VERILATOR_ROOT"
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)
    install_prefix: str = "verilator_"

    def __post_init__(self):
        self.path = Path(self.path)
        self.backup_dir = Path(self.backup_dir)
        self._assign_re = re.compile(rf"^\s*export\s+{re.escape(self.variable)}=(.*)$")
        self._path_ref_re = re.compile(rf"\$\{{?{re.escape(self.variable)}\}}?/bin")

    @classmethod
    def from_config(cls, config: Config, environ: Mapping[str, str] | None = None) -> ShellConfig:
        return cls(
            path=config.shell_config_path,
            backup_dir=config.backup_path,
            variable=config.root_variable,
            environ=os.environ if environ is None else environ,
            install_prefix=config.install_prefix,
        )

    @property
    def backup_path(self) -> Path:
        return self.backup_dir / f"{self.path.name.lstrip('.')}.backup"

    @property
    def path_line(self) -> str:
        return f'export PATH="${self.variable}/bin:$PATH"'

    def assignment_line(self, install_dir: str | Path) -> str:
        return f'export {self.variable}="{install_dir}"'

    def read_lines(self) -> list[str]:
        """Lines of the file without line terminators ([] if absent)."""
        if not self.path.exists():
            return []
        try:
            return self.path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise ShellConfigError(f"Cannot read {self.path}: {e}") from e

    def write_lines(self, lines: list[str]) -> None:
        text = "\n".join(lines) + "\n" if lines else ""
        try:
            self.path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ShellConfigError(f"Cannot write {self.path}: {e}") from e

    def ensure_backup(self) -> bool:
        """
        Snapshot the file unless a snapshot already exists.

        A missing file is created empty first.

        Returns:
            True if the snapshot was created by this call
        """
        logger = get_logger()
        try:
            if not self.path.exists():
                logger.warning(f"No {self.path.name} file found, creating one")
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.touch()

            if self.backup_path.exists():
                logger.debug(f"{self.path.name} already backed up at {self.backup_path}")
                return False

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.path, self.backup_path)
        except OSError as e:
            raise ShellConfigError(f"Cannot back up {self.path}: {e}") from e

        logger.info(f"{self.path.name} backup created at {self.backup_path}")
        return True

    def assignment_indices(self, lines: list[str]) -> list[int]:
        return [i for i, line in enumerate(lines) if self._assign_re.match(line)]

    def read_assignment(self) -> str | None:
        """Value of the first root variable assignment in the file."""
        for line in self.read_lines():
            match = self._assign_re.match(line)
            if match:
                return _unquote(match.group(1))
        return None

    def apply(self, install_dir: str | Path, tag: str | None = None) -> SwitchResult:
        """
        Point the root variable at install_dir in the file.

        Returns:
            SwitchResult (normalize is left unset)

        Raises:
            ShellConfigError: If the file cannot be read or written
        """
        logger = get_logger()
        install_dir = Path(install_dir)
        backup_created = self.ensure_backup()

        lines = self.read_lines()
        assignment = self.assignment_line(install_dir)
        indices = self.assignment_indices(lines)
        previous_root = _unquote(self._assign_re.match(lines[indices[0]]).group(1)) if indices else None

        if indices:
            logger.info(f"Updating existing {self.variable} in {self.path.name}")
            lines[indices[0]] = assignment
            for i in reversed(indices[1:]):
                del lines[i]
        else:
            logger.info(f"Adding {self.variable} to {self.path.name}")
            if lines:
                lines.append("")
            lines.extend([MARKER_COMMENT, assignment])

        path_added = self._ensure_path_line(lines)
        self.write_lines(lines)

        return SwitchResult(
            tag=tag or tag_from_path(install_dir, self.install_prefix) or install_dir.name,
            install_dir=install_dir,
            previous_root=previous_root,
            replaced=bool(indices),
            path_added=path_added,
            backup_created=backup_created,
        )

    def _ensure_path_line(self, lines: list[str]) -> bool:
        """Keep exactly one PATH line; returns True if it had to be added."""
        exact = [i for i, line in enumerate(lines) if line.strip() == self.path_line]
        for i in reversed(exact[1:]):
            del lines[i]

        if any(self._path_ref_re.search(line) for line in lines):
            get_logger().debug(f"{self.variable} PATH already configured")
            return False

        # directly after the assignment so the variable is set when PATH expands
        first = self.assignment_indices(lines)[0]
        lines.insert(first + 1, self.path_line)
        return True

    def restore(self) -> RestoreResult:
        """
        Return the file to its pre-tool state.

        With a backup the file is replaced by it byte for byte. Without one,
        the assignment, the marker comment and the exact PATH line are
        stripped; similar user-written lines are removed as well.

        Raises:
            ShellConfigError: If the file cannot be read or written
        """
        logger = get_logger()
        if self.backup_path.exists():
            logger.info(f"Restoring original {self.path.name}")
            try:
                shutil.copy2(self.backup_path, self.path)
            except OSError as e:
                raise ShellConfigError(f"Cannot restore {self.path}: {e}") from e
            return RestoreResult(from_backup=True)

        logger.warning(f"No {self.path.name} backup found")
        logger.warning(f"Removing {self.variable} lines instead...")
        lines = self.read_lines()
        kept = [
            line for line in lines
            if not self._assign_re.match(line)
            and not line.strip().startswith(MARKER_PREFIX)
            and line.strip() != self.path_line
        ]
        removed = len(lines) - len(kept)
        if removed and self.path.exists():
            self.write_lines(kept)
        return RestoreResult(from_backup=False, lines_removed=removed)

    def current(self) -> CurrentState:
        """Active selection in this session and in the file."""
        env_root = self.environ.get(self.variable) or None
        file_root = self.read_assignment()
        return CurrentState(
            env_root=env_root,
            env_tag=tag_from_path(env_root, self.install_prefix) if env_root else None,
            file_root=file_root,
            file_tag=tag_from_path(file_root, self.install_prefix) if file_root else None,
            file_exists=self.path.exists(),
            path_binary=shutil.which("verilator", path=self.environ.get("PATH")),
        )


def switch_version(
    tag: str,
    config: Config,
    shell_config: ShellConfig | None = None,
    verbose: bool = False,
) -> SwitchResult:
    """
    Make tag the active version for new shells.

    Args:
        tag: Version tag
        config: Configuration
        shell_config: Shell file to edit (derived from config if None)
        verbose: Enable verbose logging

    Returns:
        SwitchResult

    Raises:
        UnknownVersionError: If tag is not installed, its binary is missing, or it names the mirror
        ShellConfigError: If the shell configuration file cannot be updated
    """
    install_dir = config.install_dir(tag)
    if config.is_mirror(tag):
        raise UnknownVersionError(
            f"Version {tag} not found",
            remediation=f"{config.repo_path} is the source mirror, not an installed version",
        )
    if not install_dir.is_dir():
        raise UnknownVersionError(f"Version {tag} not found")
    if not config.binary_path(tag).is_file():
        raise UnknownVersionError(
            f"Verilator binary not found for version {tag}",
            remediation="Directory exists but installation appears incomplete",
        )

    if shell_config is None:
        shell_config = ShellConfig.from_config(config)

    normalize = normalize_structure(install_dir, verbose=verbose)
    result = shell_config.apply(install_dir, tag=tag)
    get_logger().info(f"{shell_config.variable} updated in {shell_config.path.name} to version {tag}")

    return SwitchResult(
        tag=result.tag,
        install_dir=result.install_dir,
        previous_root=result.previous_root,
        replaced=result.replaced,
        path_added=result.path_added,
        backup_created=result.backup_created,
        normalize=normalize,
    )
