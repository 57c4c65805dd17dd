"""
Local mirror of the upstream Verilator repository.

Clone-or-fetch management and tag queries. Failures are fatal for the
caller (SetupError); nothing is retried.
"""

from __future__ import annotations

import re
from pathlib import Path

from .common import describe_failure, run_command, vlog
from .errors import SetupError
from .logging_config import get_logger
from .versions import sort_tags


def ensure_mirror(repo_url: str, local_path: str | Path, verbose: bool = False) -> Path:
    """
    Make sure an up-to-date clone of repo_url exists at local_path.

    Clones when the directory is missing, otherwise fetches all branches
    and tags. Safe to call repeatedly.

    Args:
        repo_url: Upstream repository URL
        local_path: Mirror location
        verbose: Enable verbose logging

    Returns:
        Path of the mirror

    Raises:
        SetupError: If clone or fetch fails
    """
    logger = get_logger()
    local_path = Path(local_path)
    logger.info("Setting up Verilator repository...")

    if not local_path.exists():
        logger.info(f"Cloning Verilator repository into {local_path}...")
        local_path.parent.mkdir(parents=True, exist_ok=True)
        result = run_command(["git", "clone", repo_url, str(local_path)], capture=False, verbose=verbose)
        if result.returncode != 0:
            raise SetupError(
                f"Failed to clone {repo_url} ({describe_failure(result)})",
                remediation="Check network access and the repository URL",
            )
    else:
        logger.info("Updating existing repository...")
        result = run_command(["git", "fetch", "--all", "--tags"], cwd=local_path, capture=False, verbose=verbose)
        if result.returncode != 0:
            raise SetupError(
                f"Failed to fetch updates in {local_path} ({describe_failure(result)})",
                remediation=f"Check network access, or remove {local_path} to re-clone",
            )

    return local_path


def list_tags(
    local_path: str | Path,
    pattern: str = r"^v[0-9]+\.[0-9]+",
    limit: int | None = 20,
    verbose: bool = False,
) -> list[str]:
    """
    Release tags of the mirror, oldest first.

    Args:
        local_path: Mirror location
        pattern: Regex a tag must match to be listed
        limit: Keep only the newest `limit` tags (None keeps all)
        verbose: Enable verbose logging

    Returns:
        Tags sorted by version precedence

    Raises:
        SetupError: If the mirror is missing or git fails
    """
    local_path = Path(local_path)
    if not local_path.is_dir():
        raise SetupError(
            f"Repository not set up at {local_path}",
            remediation="Run the 'setup' command first",
        )

    result = run_command(["git", "tag"], cwd=local_path, verbose=verbose)
    if result.returncode != 0:
        raise SetupError(f"Failed to list tags ({describe_failure(result)})")

    regex = re.compile(pattern)
    tags = [t.strip() for t in result.stdout.splitlines() if regex.search(t.strip())]
    vlog(f"{len(tags)} tags match {pattern}", verbose)

    tags = sort_tags(tags)
    if limit is not None:
        tags = tags[-limit:]
    return tags


def resolve_commit(local_path: str | Path, ref: str = "HEAD", verbose: bool = False) -> str | None:
    """Commit hash of ref in the mirror, or None if it cannot be resolved."""
    result = run_command(["git", "rev-parse", ref], cwd=local_path, verbose=verbose)
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None
