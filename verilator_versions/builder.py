"""
Build pipeline for individual Verilator versions.

Checks out a tag in the mirror, configures it for a version-specific
install prefix, compiles, installs and records provenance. Each step is a
precondition for the next; the first failure aborts that version.
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Mapping, Sequence

from .common import describe_failure, run_command, vlog
from .config import Config
from .environment import Environment, build_environment, detect_environment
from .errors import (
    BuildError,
    CheckoutError,
    CompileError,
    ConfigureError,
    InstallError,
    SetupError,
    VersionManagerError,
)
from .logging_config import get_logger
from .mirror import resolve_commit
from .registry import InstalledVersion, VersionInfo, get_installed, write_version_info


@dataclass(frozen=True)
class BuildStep:
    """
    Single step of a build plan, run inside the mirror.

    Attributes:
        description: Human-readable description of the step
        command: Command tuple to execute
        error: Exception raised when the step fails
        ignore_errors: Treat failure as success (best-effort steps)
        capture: Capture output instead of streaming it to the terminal
        output_file: Mirror-relative file that receives the step's stdout
        when_exists: Mirror-relative path that must exist for the step to run
    """
    description: str
    command: tuple[str, ...]
    error: type[BuildError] = BuildError
    ignore_errors: bool = False
    capture: bool = False
    output_file: str | None = None
    when_exists: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "description": self.description,
            "command": list(self.command),
            "stage": self.error.stage,
            "ignore_errors": self.ignore_errors,
            "output_file": self.output_file,
            "when_exists": self.when_exists,
        }


@dataclass(frozen=True)
class BuildResult:
    """
    Outcome of building one version within a multi-version request.

    Attributes:
        tag: Version tag
        success: Whether the version is installed afterwards
        installed: The installed version (if successful)
        skipped: Version was already installed, nothing was run
        error_message: Human-readable error message if failed
        stage: Pipeline stage that failed
        duration_seconds: Time spent on this version
    """
    tag: str
    success: bool
    installed: InstalledVersion | None = None
    skipped: bool = False
    error_message: str | None = None
    stage: str | None = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "tag": self.tag,
            "success": self.success,
            "install_dir": str(self.installed.path) if self.installed else None,
            "skipped": self.skipped,
            "error_message": self.error_message,
            "stage": self.stage,
            "duration_seconds": self.duration_seconds,
        }


def generate_build_plan(tag: str, install_dir: str | Path, config: Config) -> tuple[BuildStep, ...]:
    """
    Ordered build steps for a tag.

    Args:
        tag: Version tag to check out
        install_dir: Install prefix passed to configure
        config: Configuration (parallelism)

    Returns:
        Tuple of BuildStep
    """
    jobs = config.build.effective_jobs
    return (
        BuildStep(
            description=f"Checking out version {tag}",
            command=("git", "checkout", tag),
            error=CheckoutError,
            capture=True,
        ),
        BuildStep(
            description="Cleaning previous build",
            command=("make", "distclean"),
            ignore_errors=True,
            capture=True,
        ),
        BuildStep(
            description="Generating configure script",
            command=("autoconf",),
            error=ConfigureError,
        ),
        BuildStep(
            description="Configuring build",
            command=("./configure", f"--prefix={install_dir}"),
            error=ConfigureError,
        ),
        BuildStep(
            description="Regenerating version header",
            command=(sys.executable, "src/config_rev", "."),
            error=ConfigureError,
            capture=True,
            output_file="src/config_rev.h",
            when_exists="src/config_rev",
        ),
        BuildStep(
            description=f"Compiling version {tag} with {jobs} jobs",
            command=("make", f"-j{jobs}"),
            error=CompileError,
        ),
        BuildStep(
            description=f"Installing to {install_dir}",
            command=("make", "install"),
            error=InstallError,
        ),
    )


def execute_build_step(
    step: BuildStep,
    repo_dir: str | Path,
    tag: str,
    env: Mapping[str, str] | None = None,
    verbose: bool = False,
) -> bool:
    """
    Execute a single build step in the mirror.

    Returns:
        True if the step ran, False if it was skipped (when_exists unmet)

    Raises:
        BuildError: The step's error class, unless ignore_errors is set
    """
    repo_dir = Path(repo_dir)
    if step.when_exists and not (repo_dir / step.when_exists).exists():
        vlog(f"Skipping step ({step.when_exists} not present): {step.description}", verbose)
        return False

    get_logger().info(f"{step.description}...")
    capture = step.capture or step.output_file is not None
    result = run_command(step.command, cwd=repo_dir, env=env, capture=capture, verbose=verbose)

    if result.returncode != 0:
        if step.ignore_errors:
            vlog(f"Ignoring failure of best-effort step: {step.description}", verbose)
            return True
        raise step.error(
            f"{step.error.stage.capitalize()} failed for version {tag} ({describe_failure(result)})",
            tag=tag,
            exit_code=result.returncode,
        )

    if step.output_file:
        try:
            (repo_dir / step.output_file).write_text(result.stdout, encoding="utf-8")
        except OSError as e:
            raise step.error(f"Cannot write {step.output_file} for version {tag}: {e}", tag=tag) from e

    return True


def build_version(
    tag: str,
    config: Config,
    env: Environment | None = None,
    verbose: bool = False,
) -> InstalledVersion:
    """
    Build and install one version.

    Already installed versions (binary present) are returned untouched.

    Args:
        tag: Version tag
        config: Configuration
        env: Host environment (detected if None)
        verbose: Enable verbose logging

    Returns:
        The installed version

    Raises:
        SetupError: If the mirror does not exist
        BuildError: CheckoutError, ConfigureError, CompileError or InstallError
    """
    logger = get_logger()
    install_dir = config.install_dir(tag)
    logger.info(f"Building Verilator version: {tag}")

    if config.is_mirror(tag):
        raise BuildError(
            f"Version {tag} would install into the repository mirror at {config.repo_path}",
            tag=tag,
            remediation="Pass a release tag such as v5.024",
        )

    existing = get_installed(config.base_path, tag, config.install_prefix, config.binary)
    if existing is not None:
        logger.info(f"Version {tag} already exists at {install_dir}")
        return existing

    repo_dir = config.repo_path
    if not repo_dir.is_dir():
        raise SetupError(
            f"Repository not set up at {repo_dir}",
            remediation="Run the 'setup' command first",
        )

    if env is None:
        env = detect_environment(override=config.environment_mode, verbose=verbose)
    build_env = build_environment(env, config.build.env, config.build.path_prepend)

    for step in generate_build_plan(tag, install_dir, config):
        # checkout runs with the caller's environment; later steps need the toolchain env
        step_env = None if step.error is CheckoutError else build_env
        execute_build_step(step, repo_dir, tag, env=step_env, verbose=verbose)

    if not config.binary_path(tag).is_file():
        raise InstallError(
            f"Install finished but {config.binary_path(tag)} is missing",
            tag=tag,
        )

    info = VersionInfo(
        tag=tag,
        built_on=datetime.now().astimezone().strftime("%a %b %d %H:%M:%S %Z %Y"),
        commit=resolve_commit(repo_dir, verbose=verbose),
    )
    try:
        write_version_info(install_dir, info)
    except OSError as e:
        raise InstallError(f"Cannot write provenance for version {tag}: {e}", tag=tag) from e

    logger.info(f"Successfully built and installed Verilator {tag}")
    return get_installed(config.base_path, tag, config.install_prefix, config.binary)


def build_multiple(
    tags: Sequence[str],
    config: Config,
    env: Environment | None = None,
    verbose: bool = False,
) -> list[BuildResult]:
    """
    Build several versions one after another.

    A failing version is recorded and the next one is still attempted.

    Returns:
        One BuildResult per tag, in request order
    """
    logger = get_logger()
    if env is None:
        env = detect_environment(override=config.environment_mode, verbose=verbose)

    results: list[BuildResult] = []
    for tag in tags:
        start_time = time.time()
        already = get_installed(config.base_path, tag, config.install_prefix, config.binary) is not None
        try:
            installed = build_version(tag, config, env=env, verbose=verbose)
        except VersionManagerError as e:
            logger.error(e.message)
            results.append(BuildResult(
                tag=tag,
                success=False,
                error_message=e.message,
                stage=getattr(e, "stage", None),
                duration_seconds=time.time() - start_time,
            ))
            continue

        results.append(BuildResult(
            tag=tag,
            success=True,
            installed=installed,
            skipped=already,
            duration_seconds=time.time() - start_time,
        ))

    return results
