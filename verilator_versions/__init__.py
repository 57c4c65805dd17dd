"""
verilator-versions - Multi-version Verilator build and switching.

Core Modules:
- Mirror: Clone-or-fetch of the upstream repository, tag listing
- Builder: Checkout, configure, compile and install per version
- Registry: Installed versions derived from the filesystem
- Tester: Smoke test of an installed version
- Switcher: Persistent VERILATOR_ROOT switching with backup/restore
- Normalizer: Symlink fix-ups for precompiled layouts
"""

__version__ = "1.0.0"

VERSION = __version__

# Foundation
from .errors import (
    VersionManagerError,
    SetupError,
    BuildError,
    CheckoutError,
    ConfigureError,
    CompileError,
    InstallError,
    NotFoundError,
    UnknownVersionError,
    ShellConfigError,
    SmokeTestError,
)
from .config import Config, BuildPreferences, load_config, load_config_file
from .environment import Environment, detect_environment, build_environment
from .versions import version_key, compare_versions, sort_tags

# Mirror and build
from .mirror import ensure_mirror, list_tags, resolve_commit
from .builder import (
    BuildStep,
    BuildResult,
    generate_build_plan,
    execute_build_step,
    build_version,
    build_multiple,
)

# Registry and testing
from .registry import (
    VersionInfo,
    InstalledVersion,
    InstalledVersions,
    list_installed,
    sort_versions,
    get_installed,
    read_version_info,
    write_version_info,
    tag_from_path,
)
from .tester import smoke_test_version, SIMPLE_TEST_SOURCE

# Switching
from .normalizer import NormalizeResult, normalize_structure, is_precompiled_layout
from .switcher import (
    ShellConfig,
    SwitchResult,
    RestoreResult,
    CurrentState,
    switch_version,
)
from .launcher import create_switcher_script

# Logging configuration
from .logging_config import setup_logging, get_logger

__all__ = [
    "__version__",
    "VERSION",
    # Errors
    "VersionManagerError",
    "SetupError",
    "BuildError",
    "CheckoutError",
    "ConfigureError",
    "CompileError",
    "InstallError",
    "NotFoundError",
    "UnknownVersionError",
    "ShellConfigError",
    "SmokeTestError",
    # Foundation
    "Config",
    "BuildPreferences",
    "load_config",
    "load_config_file",
    "Environment",
    "detect_environment",
    "build_environment",
    "version_key",
    "compare_versions",
    "sort_tags",
    # Mirror and build
    "ensure_mirror",
    "list_tags",
    "resolve_commit",
    "BuildStep",
    "BuildResult",
    "generate_build_plan",
    "execute_build_step",
    "build_version",
    "build_multiple",
    # Registry and testing
    "VersionInfo",
    "InstalledVersion",
    "InstalledVersions",
    "list_installed",
    "sort_versions",
    "get_installed",
    "read_version_info",
    "write_version_info",
    "tag_from_path",
    "smoke_test_version",
    "SIMPLE_TEST_SOURCE",
    # Switching
    "NormalizeResult",
    "normalize_structure",
    "is_precompiled_layout",
    "ShellConfig",
    "SwitchResult",
    "RestoreResult",
    "CurrentState",
    "switch_version",
    "create_switcher_script",
    # Logging
    "setup_logging",
    "get_logger",
]
