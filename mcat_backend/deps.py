"""
Dependency wiring - builds the sync service.
Simple, debug-friendly DI without framework magic.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .adapters.tools import FFmpeg, FFProbe
from .config import (
    EXTRACT_CONCURRENCY,
    FFMPEG_BIN,
    FFMPEG_TIMEOUT,
    FFPROBE_BIN,
    FFPROBE_TIMEOUT,
    RENAME_TIE_BREAK,
    WATCHER_DEBOUNCE_MS,
    WATCHER_ENABLED,
)
from .features.metadata import MetadataExtractor
from .features.sync.service import CatalogSyncService, default_extractor_factory
from .shared import get_logger, log_success

logger = get_logger(__name__)


def _log_tool_availability() -> None:
    if FFProbe(FFPROBE_BIN, FFPROBE_TIMEOUT).is_available():
        log_success(logger, "ffprobe is available")
    else:
        logger.warning("ffprobe not found - videos will fail extraction and stay out of the catalog")
    if FFmpeg(FFMPEG_BIN, FFMPEG_TIMEOUT).is_available():
        log_success(logger, "ffmpeg is available")
    else:
        logger.warning("ffmpeg not found - video thumbnails cannot be generated")


def build_services(
    *,
    extractor_factory: Callable[[str], MetadataExtractor] | None = None,
    watcher_enabled: bool | None = None,
    observer_factory: Callable[[], Any] | None = None,
) -> CatalogSyncService:
    """Build the sync service from configuration; arguments override config for tests."""
    if extractor_factory is None:
        _log_tool_availability()
    return CatalogSyncService(
        extractor_factory=extractor_factory or default_extractor_factory,
        watcher_enabled=WATCHER_ENABLED if watcher_enabled is None else watcher_enabled,
        debounce_ms=WATCHER_DEBOUNCE_MS,
        concurrency=EXTRACT_CONCURRENCY,
        rename_policy=RENAME_TIE_BREAK,
        observer_factory=observer_factory,
    )
