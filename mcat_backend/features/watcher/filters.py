"""
Path filters applied to raw watcher batches.
"""
from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePath

from ...config import SELF_ARTIFACT_PATTERNS
from ...shared import classify_file


def _parts_below(path: str, root: str | None) -> tuple[str, ...]:
    """Components of `path` under `root`; the full path when it is not under it."""
    pure = PurePath(path)
    if root:
        try:
            return pure.relative_to(root).parts
        except ValueError:
            pass
    return pure.parts


def is_self_artifact(
    path: str,
    patterns: Iterable[str] = SELF_ARTIFACT_PATTERNS,
    root: str | None = None,
) -> bool:
    """
    True when `path` lies in or names one of the catalog's own artifacts.

    Any path component equal to a pattern matches; a pattern starting with "."
    also matches components ending with it (so ".db-wal" covers "media_cache.db-wal").
    With `root`, only components below the root are considered, so a root that
    itself sits under e.g. `/mnt/cache` is still watched.
    """
    parts = _parts_below(path, root)
    for pattern in patterns:
        if not pattern:
            continue
        for part in parts:
            if part == pattern:
                return True
            if pattern.startswith(".") and part.endswith(pattern):
                return True
    return False


def is_relevant_path(path: str) -> bool:
    """Media file by extension, or an extensionless path taken to be a directory."""
    name = PurePath(path).name
    if not name:
        return False
    if classify_file(name) is not None:
        return True
    return PurePath(name).suffix == ""


def filter_batch(
    paths: Iterable[str],
    patterns: Iterable[str] = SELF_ARTIFACT_PATTERNS,
    root: str | None = None,
) -> list[str]:
    """
    Feedback-loop guard plus relevance filter for one raw batch.

    The whole batch is dropped when any path is a self artifact; otherwise only
    relevant paths are kept.
    """
    batch = [str(p) for p in paths if p]
    patterns = tuple(patterns)
    if any(is_self_artifact(p, patterns, root) for p in batch):
        return []
    return [p for p in batch if is_relevant_path(p)]
