"""
Exception hierarchy for version management.

Library functions raise these; the command-line layer catches
VersionManagerError, reports it and maps it to a non-zero exit code.
"""

from __future__ import annotations


class VersionManagerError(Exception):
    """
    Base exception for version management errors.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
    """
    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class SetupError(VersionManagerError):
    """Cloning or fetching the repository mirror failed."""


class BuildError(VersionManagerError):
    """
    A build pipeline stage failed.

    Attributes:
        tag: Version tag being built
        exit_code: Exit code of the failing command, if any
    """
    stage = "build"

    def __init__(
        self,
        message: str,
        tag: str | None = None,
        exit_code: int | None = None,
        remediation: str | None = None,
    ):
        self.tag = tag
        self.exit_code = exit_code
        super().__init__(message, remediation)


class CheckoutError(BuildError):
    stage = "checkout"


class ConfigureError(BuildError):
    stage = "configure"


class CompileError(BuildError):
    stage = "compile"


class InstallError(BuildError):
    stage = "install"


class NotFoundError(VersionManagerError):
    """Referenced version is absent or its installation is incomplete."""


class UnknownVersionError(NotFoundError):
    """Switch target does not resolve to an installed version."""


class ShellConfigError(VersionManagerError):
    """Shell configuration file could not be read or written."""


class SmokeTestError(VersionManagerError):
    """
    Smoke test of an installed version failed.

    Attributes:
        scratch_dir: Directory left in place for diagnosis
    """
    def __init__(self, message: str, scratch_dir: str | None = None):
        self.scratch_dir = scratch_dir
        super().__init__(message)
