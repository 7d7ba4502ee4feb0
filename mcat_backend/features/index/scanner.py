"""
Scanner - one recursive walk of a root, producing the media files it holds.

The walk is synchronous; callers run it off the event loop with asyncio.to_thread.
"""
from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from ...config import IGNORED_DIRS, IS_WINDOWS
from ...shared import ScanError, classify_file, get_logger
from ...utils import normalize_path
from ..catalog.models import ScanItem, ScanResult

logger = get_logger(__name__)


def _is_ignored_dir(name: str, ignore_dirs: frozenset[str]) -> bool:
    # ignore_dirs is already lowercased on Windows
    return (name.lower() if IS_WINDOWS else name) in ignore_dirs


def scan(root: str | Path, ignore_dirs: Iterable[str] | None = None) -> ScanResult:
    """
    Walk `root` and return every recognized media file below it.

    Directories named in `ignore_dirs` are never entered. Symlinked directories are
    not followed; symlinks to files are kept. An unreadable subdirectory is recorded
    as a SCAN_ERROR and skipped.

    Raises:
        ScanError: when the root itself cannot be listed.
    """
    root_path = normalize_path(str(root))
    ignored = frozenset(IGNORED_DIRS if ignore_dirs is None else ignore_dirs)
    if IS_WINDOWS:
        ignored = frozenset(d.lower() for d in ignored)
    result = ScanResult(root=root_path)

    if not os.path.isdir(root_path):
        raise ScanError(f"Root is not a readable directory: {root_path}", path=root_path)

    # Iterative scandir; children are pushed in reverse so entries come out in name order.
    stack: list[str] = [root_path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            if current == root_path:
                raise ScanError(f"Cannot read root: {exc}", path=root_path) from exc
            logger.warning("Skipping unreadable directory %s: %s", current, exc)
            result.errors.append(ScanError(str(exc), path=current).to_record())
            continue

        subdirs: list[str] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if not _is_ignored_dir(entry.name, ignored):
                        subdirs.append(entry.path)
                    continue
                if not entry.is_file(follow_symlinks=True):
                    continue
            except OSError as exc:
                logger.debug("Cannot stat %s: %s", entry.path, exc)
                continue
            media_type = classify_file(entry.name)
            if media_type is None:
                continue
            result.items.append(ScanItem(path=entry.path, basename=entry.name, media_type=media_type))
        stack.extend(reversed(subdirs))

    logger.debug("Scanned %s: %d media files, %d unreadable dirs", root_path, len(result.items), len(result.errors))
    return result
