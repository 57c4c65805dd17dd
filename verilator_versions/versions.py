"""
Version tag ordering.

Tags such as "v5.024" are ordered by release precedence using
packaging.version; anything it cannot parse falls back to a natural
(digit-aware) ordering and sorts before the parseable tags.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

from packaging.version import InvalidVersion, Version


def _natural_key(tag: str) -> tuple[tuple[int, Any], ...]:
    parts = re.split(r"(\d+)", tag)
    return tuple((0, int(p)) if p.isdigit() else (1, p) for p in parts if p)


def version_key(tag: str) -> tuple:
    """Sort key giving release precedence for a version tag."""
    try:
        return (1, Version(tag), tag)
    except InvalidVersion:
        return (0, _natural_key(tag), tag)


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version tags.

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    k1, k2 = version_key(v1), version_key(v2)
    if k1 < k2:
        return -1
    elif k1 > k2:
        return 1
    return 0


def sort_tags(tags: Iterable[str]) -> list[str]:
    """Sort tags oldest first (the order of `sort -V`)."""
    return sorted(tags, key=version_key)
