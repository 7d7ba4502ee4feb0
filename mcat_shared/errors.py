"""
Error taxonomy for reconciliation passes, plus message sanitizing for clients.
"""
from __future__ import annotations

import os
import re
from typing import Any

from .log import get_logger
from .result import Result
from .types import ErrorCode

logger = get_logger(__name__)
_DEBUG_MODE = os.getenv("MCAT_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
_WINDOWS_PATH_RE = re.compile(r"[A-Za-z]:\\[^\s]+")
_UNC_PATH_RE = re.compile(r"\\\\[^\s\\]+\\[^\s]+")
_UNIX_PATH_RE = re.compile(r"(?<![A-Za-z0-9:/?&=#%])/(?!/)[^\s#?]+")


class CatalogError(Exception):
    """Base class for catalog errors; each subclass maps to one ErrorCode."""

    code: ErrorCode = ErrorCode.SERVICE_UNAVAILABLE

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def to_record(self) -> dict[str, Any]:
        """Plain dict for per-item error lists."""
        return {"code": self.code.value, "error": self.message, "path": self.path}

    def to_result(self, **meta: Any) -> Result[Any]:
        if self.path:
            meta.setdefault("path", self.path)
        return Result.Err(self.code, self.message, **meta)


class ScanError(CatalogError):
    """Unreadable directory; the subtree is skipped."""

    code = ErrorCode.SCAN_ERROR


class ExtractionError(CatalogError):
    """Metadata extraction failed for one item; the item is skipped."""

    code = ErrorCode.EXTRACTION_ERROR


class CatalogIOError(CatalogError):
    """Catalog storage could not be read or written; fatal to the pass."""

    code = ErrorCode.CATALOG_IO_ERROR


class WatcherSetupError(CatalogError):
    """Live watching could not be started; manual refresh still works."""

    code = ErrorCode.WATCHER_SETUP_ERROR


def _mask_paths(value: str) -> str:
    """Mask path-looking substrings to avoid leaking filesystem structure."""
    cleaned = _WINDOWS_PATH_RE.sub("[path]", value)
    cleaned = _UNC_PATH_RE.sub("[path]", cleaned)
    cleaned = _UNIX_PATH_RE.sub("[path]", cleaned)
    return cleaned


def sanitize_error_message(exc: Any, fallback: str) -> str:
    """
    Build a safe error message for clients.

    Args:
        exc: Exception or raw value to sanitize.
        fallback: Message to show when nothing meaningful remains.

    Returns:
        A string suitable for inclusion in API responses.
    """
    if not fallback:
        fallback = "An error occurred"
    if exc is None:
        return fallback

    raw = str(exc)
    if not raw:
        return fallback

    sanitized = _mask_paths(raw.replace(os.getcwd(), "[cwd]"))
    sanitized = " ".join(sanitized.splitlines()).strip()

    if _DEBUG_MODE:
        logger.debug("Sanitized error payload: %s", sanitized)

    if sanitized:
        return f"{fallback}: {sanitized[:200]}"
    return fallback
