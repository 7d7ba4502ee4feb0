"""
Shared types, enums, and constants.
"""
import os
from enum import Enum
from typing import Final


class ErrorCode(str, Enum):
    """Standardized error codes (string enum)."""

    # Client / validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_JSON = "INVALID_JSON"
    NOT_FOUND = "NOT_FOUND"

    # Feature / service availability
    TOOL_MISSING = "TOOL_MISSING"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    BUSY = "BUSY"
    CANCELLED = "CANCELLED"

    # Server / infrastructure
    DB_ERROR = "DB_ERROR"
    TIMEOUT = "TIMEOUT"

    # Reconciliation
    SCAN_ERROR = "SCAN_ERROR"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    CATALOG_IO_ERROR = "CATALOG_IO_ERROR"
    WATCHER_SETUP_ERROR = "WATCHER_SETUP_ERROR"

    # Tools / parsing
    FFPROBE_ERROR = "FFPROBE_ERROR"
    FFMPEG_ERROR = "FFMPEG_ERROR"
    PARSE_ERROR = "PARSE_ERROR"


class MediaType(str, Enum):
    """Kinds of media the catalog tracks."""

    IMAGE = "image"
    VIDEO = "video"


# File extensions by type
EXTENSIONS: Final[dict[MediaType, frozenset[str]]] = {
    MediaType.IMAGE: frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".svg", ".webp"}),
    MediaType.VIDEO: frozenset({".mp4", ".mov", ".avi", ".mkv", ".webm", ".flv", ".wmv"}),
}


def classify_file(filename: str) -> MediaType | None:
    """
    Classify a file by extension.

    Args:
        filename: File name or path

    Returns:
        The media type, or None when the extension is not on the allow-list
    """
    ext = os.path.splitext(filename)[1].lower()
    if not ext:
        return None
    for kind, exts in EXTENSIONS.items():
        if ext in exts:
            return kind
    return None
