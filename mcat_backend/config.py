"""
Configuration for the media catalog.

Every value can be overridden through a MCAT_* environment variable.
"""
import logging
import os
import sys

from .utils import env_bool

logger = logging.getLogger(__name__)


def _env_raw(*names: str, default: str | None = None) -> str | None:
    for name in names:
        if not name:
            continue
        val = os.getenv(name)
        if val is not None and str(val).strip() != "":
            return str(val).strip()
    return default


def _env_int(default: int, *names: str, min_value: int | None = None, max_value: int | None = None) -> int:
    raw = _env_raw(*names)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid integer for %s=%r, using default=%s", names[0] if names else "<unknown>", raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("Value too small for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, min_value)
        value = min_value
    if max_value is not None and value > max_value:
        logger.warning("Value too large for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, max_value)
        value = max_value
    return value


def _env_float(default: float, *names: str, min_value: float | None = None, max_value: float | None = None) -> float:
    raw = _env_raw(*names)
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid float for %s=%r, using default=%s", names[0] if names else "<unknown>", raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("Value too small for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, min_value)
        value = min_value
    if max_value is not None and value > max_value:
        logger.warning("Value too large for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, max_value)
        value = max_value
    return value


def _env_bool(default: bool, *names: str) -> bool:
    for name in names:
        if name and name in os.environ:
            return env_bool(name, default)
    return default


# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Initial root (optional; roots are normally adopted at runtime)
DEFAULT_ROOT = _env_raw("MCAT_ROOT", default="") or ""

# Catalog storage artifacts (live inside the watched root)
CATALOG_DB_NAME = _env_raw("MCAT_CATALOG_DB_NAME", default="media_cache.db") or "media_cache.db"
THUMBNAIL_DIR_NAME = _env_raw("MCAT_THUMBNAIL_DIR_NAME", default=".thumbnails") or ".thumbnails"
THUMBNAIL_SIZE = _env_int(256, "MCAT_THUMBNAIL_SIZE", min_value=32, max_value=2048)
THUMBNAIL_EXTENSION = "webp"

# Directories never descended into by the scanner
IGNORED_DIRS: frozenset[str] = frozenset(
    {
        THUMBNAIL_DIR_NAME,
        ".thumbnails",
        ".objects",
        "cache",
        "thumbnail",
        "thumbnails",
        "__pycache__",
        ".git",
        "node_modules",
    }
)

# Substrings identifying the catalog's own artifacts in watcher events
SELF_ARTIFACT_PATTERNS: tuple[str, ...] = (
    ".mediaCache.json",
    THUMBNAIL_DIR_NAME,
    CATALOG_DB_NAME,
    "cache",
    "thumbnail",
    ".db",
    ".db-journal",
    ".db-shm",
    ".db-wal",
)

# External tools
FFPROBE_BIN = _env_raw("MCAT_FFPROBE_PATH", default="ffprobe") or "ffprobe"
FFMPEG_BIN = _env_raw("MCAT_FFMPEG_PATH", default="ffmpeg") or "ffmpeg"
FFPROBE_TIMEOUT = _env_float(10.0, "MCAT_FFPROBE_TIMEOUT", min_value=1.0, max_value=120.0)
FFMPEG_TIMEOUT = _env_float(30.0, "MCAT_FFMPEG_TIMEOUT", min_value=1.0, max_value=600.0)
# Seek offset for the video thumbnail frame
VIDEO_THUMBNAIL_SEEK = "00:00:01"

# Database tuning
DB_TIMEOUT = _env_float(30.0, "MCAT_DB_TIMEOUT", min_value=1.0, max_value=300.0)

# Reconciliation
EXTRACT_CONCURRENCY = _env_int(4, "MCAT_EXTRACT_CONCURRENCY", min_value=1, max_value=32)
RENAME_TIE_BREAK = (_env_raw("MCAT_RENAME_TIE_BREAK", default="first_match") or "first_match").strip().lower()

# File watcher; disable with MCAT_ENABLE_WATCHER=0
WATCHER_ENABLED = _env_bool(True, "MCAT_ENABLE_WATCHER")
WATCHER_DEBOUNCE_MS = _env_int(300, "MCAT_WATCHER_DEBOUNCE_MS", min_value=0, max_value=120_000)
WATCHER_STOP_TIMEOUT_S = _env_float(2.0, "MCAT_WATCHER_STOP_TIMEOUT", min_value=0.1, max_value=60.0)

# HTTP surface
HTTP_HOST = _env_raw("MCAT_HTTP_HOST", default="127.0.0.1") or "127.0.0.1"
HTTP_PORT = _env_int(8765, "MCAT_HTTP_PORT", min_value=1, max_value=65535)
LOG_LEVEL = (_env_raw("MCAT_LOG_LEVEL", default="INFO") or "INFO").strip().upper()
MAX_JSON_BYTES = _env_int(1024 * 1024, "MCAT_MAX_JSON_BYTES", min_value=1024, max_value=64 * 1024 * 1024)
