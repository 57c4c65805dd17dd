"""
Configuration file parsing and management.

Supports YAML configuration files (and .json files).
Merges configurations from multiple sources (custom → project → user →
system → defaults), then applies environment variable overrides.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .common import vlog
from .registry import MIRROR_TAG


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".verilator-versions.yml",                                     # Project root (highest priority)
    ".verilator-versions.yaml",
    os.path.expanduser("~/.config/verilator-versions/config.yml"),  # User global
    os.path.expanduser("~/.config/verilator-versions/config.yaml"),
    "/etc/verilator-versions/config.yml",                          # System global
    "/etc/verilator-versions/config.yaml",
]

DEFAULT_BASE_DIR = "~/verilator_versions"
DEFAULT_REPO_URL = "https://github.com/verilator/verilator.git"
DEFAULT_INSTALL_PREFIX = "verilator_"
DEFAULT_BINARY = "bin/verilator"
DEFAULT_SHELL_CONFIG = "~/.bashrc"
DEFAULT_ROOT_VARIABLE = "VERILATOR_ROOT"
DEFAULT_TAG_PATTERN = r"^v[0-9]+\.[0-9]+"

# Environment variable overrides
ENV_OVERRIDES = {
    "VERILATOR_VERSIONS_BASE_DIR": "base_dir",
    "VERILATOR_VERSIONS_REPO_URL": "repo_url",
    "VERILATOR_VERSIONS_SHELL_CONFIG": "shell_config",
}


@dataclass(frozen=True)
class BuildPreferences:
    """
    Preferences for the build pipeline.

    Attributes:
        jobs: Parallel compile jobs (None means host CPU count)
        env: Extra environment variables for configure/compile/install
        path_prepend: Directories put first on PATH during the build
        tag_pattern: Regex selecting release tags for listing
        list_limit: Number of newest tags shown by the tag listing
    """
    jobs: int | None = None
    env: dict[str, str] = field(default_factory=dict)
    path_prepend: tuple[str, ...] = ()
    tag_pattern: str = DEFAULT_TAG_PATTERN
    list_limit: int = 20

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.jobs is not None and self.jobs < 1:
            raise ValueError(f"Invalid jobs: {self.jobs}. Must be at least 1")

        if self.list_limit < 1:
            raise ValueError(f"Invalid list_limit: {self.list_limit}. Must be at least 1")

    @property
    def effective_jobs(self) -> int:
        return self.jobs or os.cpu_count() or 1

    @staticmethod
    def from_dict(data: dict[str, Any]) -> BuildPreferences:
        """Create BuildPreferences from dictionary."""
        return BuildPreferences(
            jobs=data.get("jobs"),
            env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
            path_prepend=tuple(data.get("path_prepend") or ()),
            tag_pattern=data.get("tag_pattern", DEFAULT_TAG_PATTERN),
            list_limit=data.get("list_limit", 20),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for the version manager.

    Empty path fields are derived from base_dir (see the properties).

    Attributes:
        version: Config schema version
        base_dir: Directory holding the mirror and all install prefixes
        repo_url: Upstream repository URL
        repo_dir: Local mirror location
        install_prefix: Directory name prefix of install prefixes
        binary: Binary path relative to an install prefix
        shell_config: Shell start-up file rewritten by the switcher
        backup_dir: Directory holding the shell file backup
        root_variable: Environment variable naming the active install
        environment_mode: Host detection mode ('auto', 'msys2', 'posix')
        build: Build pipeline preferences
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    base_dir: str = DEFAULT_BASE_DIR
    repo_url: str = DEFAULT_REPO_URL
    repo_dir: str = ""
    install_prefix: str = DEFAULT_INSTALL_PREFIX
    binary: str = DEFAULT_BINARY
    shell_config: str = DEFAULT_SHELL_CONFIG
    backup_dir: str = ""
    root_variable: str = DEFAULT_ROOT_VARIABLE
    environment_mode: str = "auto"
    build: BuildPreferences = field(default_factory=BuildPreferences)
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

        valid_modes = {"auto", "msys2", "posix"}
        if self.environment_mode not in valid_modes:
            raise ValueError(
                f"Invalid environment_mode: {self.environment_mode}. "
                f"Must be one of: {', '.join(sorted(valid_modes))}"
            )

        if not self.install_prefix:
            raise ValueError("install_prefix must not be empty")

        if not self.root_variable.isidentifier():
            raise ValueError(f"Invalid root_variable: {self.root_variable!r}")

    @property
    def base_path(self) -> Path:
        return Path(os.path.expanduser(self.base_dir))

    @property
    def repo_path(self) -> Path:
        if self.repo_dir:
            return Path(os.path.expanduser(self.repo_dir))
        return self.base_path / f"{self.install_prefix}{MIRROR_TAG}"

    @property
    def backup_path(self) -> Path:
        if self.backup_dir:
            return Path(os.path.expanduser(self.backup_dir))
        return self.base_path / ".backups"

    @property
    def shell_config_path(self) -> Path:
        return Path(os.path.expanduser(self.shell_config))

    def install_dir(self, tag: str) -> Path:
        """Install prefix for a version tag."""
        return self.base_path / f"{self.install_prefix}{tag}"

    def binary_path(self, tag: str) -> Path:
        """Expected binary location for a version tag."""
        return self.install_dir(tag) / self.binary

    def is_mirror(self, tag: str) -> bool:
        """The install prefix of tag would be the repository mirror."""
        return tag == MIRROR_TAG or self.install_dir(tag).resolve() == self.repo_path.resolve()

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        build = BuildPreferences.from_dict(data.get("build") or {})
        environment_data = data.get("environment") or {}

        return Config(
            version=data.get("version", 1),
            base_dir=data.get("base_dir", DEFAULT_BASE_DIR),
            repo_url=data.get("repo_url", DEFAULT_REPO_URL),
            repo_dir=data.get("repo_dir", ""),
            install_prefix=data.get("install_prefix", DEFAULT_INSTALL_PREFIX),
            binary=data.get("binary", DEFAULT_BINARY),
            shell_config=data.get("shell_config", DEFAULT_SHELL_CONFIG),
            backup_dir=data.get("backup_dir", ""),
            root_variable=data.get("root_variable", DEFAULT_ROOT_VARIABLE),
            environment_mode=environment_data.get("mode", "auto"),
            build=build,
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        A field of this config only wins when it differs from the default.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        defaults = Config()

        def pick(name: str):
            mine = getattr(self, name)
            return mine if mine != getattr(defaults, name) else getattr(other, name)

        default_build = BuildPreferences()
        merged_env = dict(other.build.env)
        merged_env.update(self.build.env)
        merged_build = BuildPreferences(
            jobs=self.build.jobs if self.build.jobs is not None else other.build.jobs,
            env=merged_env,
            path_prepend=self.build.path_prepend or other.build.path_prepend,
            tag_pattern=self.build.tag_pattern if self.build.tag_pattern != default_build.tag_pattern else other.build.tag_pattern,
            list_limit=self.build.list_limit if self.build.list_limit != default_build.list_limit else other.build.list_limit,
        )

        return Config(
            version=self.version,
            base_dir=pick("base_dir"),
            repo_url=pick("repo_url"),
            repo_dir=pick("repo_dir"),
            install_prefix=pick("install_prefix"),
            binary=pick("binary"),
            shell_config=pick("shell_config"),
            backup_dir=pick("backup_dir"),
            root_variable=pick("root_variable"),
            environment_mode=pick("environment_mode"),
            build=merged_build,
            source=self.source or other.source,
        )

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> Config:
        """Apply VERILATOR_VERSIONS_* environment overrides."""
        if environ is None:
            environ = os.environ
        changes = {
            field_name: environ[var]
            for var, field_name in ENV_OVERRIDES.items()
            if environ.get(var)
        }
        return replace(self, **changes) if changes else self


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to a .yml/.yaml or .json configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    environ: Mapping[str, str] | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. VERILATOR_VERSIONS_* environment variables
    2. Custom path (if provided)
    3. Project .verilator-versions.yml
    4. User ~/.config/verilator-versions/config.yml
    5. System /etc/verilator-versions/config.yml
    6. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        environ: Environment mapping for overrides (defaults to os.environ)
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)
        vlog(f"Using custom config: {custom_path}", verbose)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)
            vlog(f"Found config at: {location}", verbose)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        merged = Config()
    else:
        merged = configs[0]
        for config in configs[1:]:
            merged = merged.merge_with(config)
        vlog(f"Merged {len(configs)} config files", verbose)

    return merged.with_env_overrides(environ)
