"""
Small helpers shared by config, the scanner and the sync service.
"""
from __future__ import annotations

import os
from typing import Any

_TRUTHY = frozenset({"1", "true", "yes", "on", "enabled"})
_FALSY = frozenset({"0", "false", "no", "off", "disabled"})


def parse_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value or "").strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    return default


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name) if name else None
    return default if raw is None else parse_bool(raw, default)


def normalize_path(path: str) -> str:
    """Absolute, normalized form used as the catalog key for a filesystem path."""
    return os.path.normpath(os.path.abspath(str(path)))


def is_under_path(candidate: str, root: str) -> bool:
    """True when normalized `candidate` is `root` itself or lies below it."""
    if not candidate or not root:
        return False
    try:
        return os.path.commonpath([candidate, root]) == root
    except ValueError:
        # Different drives on Windows.
        return False
