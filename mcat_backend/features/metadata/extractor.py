"""
Metadata extraction for newly discovered media: duration and thumbnail.

The reconciler only depends on the `MetadataExtractor` protocol; the default
implementation probes videos with ffprobe, grabs a frame with ffmpeg and
renders thumbnails with Pillow.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from ...adapters.tools import FFmpeg, FFProbe
from ...config import THUMBNAIL_EXTENSION, THUMBNAIL_SIZE
from ...shared import ErrorCode, MediaType, Result, get_logger
from ..catalog.models import ExtractedMetadata

logger = get_logger(__name__)

# Formats Pillow cannot rasterize; cataloged without a thumbnail
_NO_THUMBNAIL_EXTENSIONS = frozenset({".svg"})


class MetadataExtractor(Protocol):
    def extract(self, path: str, media_type: MediaType) -> Result[ExtractedMetadata]:
        ...


def thumbnail_name_for(path: str) -> str:
    """Stable thumbnail file name for a media path."""
    digest = hashlib.sha1(os.path.normcase(path).encode("utf-8", errors="surrogateescape")).hexdigest()
    return f"{digest}.{THUMBNAIL_EXTENSION}"


class MediaMetadataExtractor:
    """
    Default extractor writing thumbnails into `thumbnail_dir`.

    Calling `extract` twice for the same path rewrites the same thumbnail file.
    """

    def __init__(
        self,
        thumbnail_dir: Path,
        ffprobe: FFProbe | None = None,
        ffmpeg: FFmpeg | None = None,
        thumbnail_size: int = THUMBNAIL_SIZE,
    ):
        self.thumbnail_dir = Path(thumbnail_dir)
        self.ffprobe = ffprobe or FFProbe()
        self.ffmpeg = ffmpeg or FFmpeg()
        self.thumbnail_size = int(thumbnail_size)

    def extract(self, path: str, media_type: MediaType) -> Result[ExtractedMetadata]:
        if not os.path.isfile(path):
            return Result.Err(ErrorCode.NOT_FOUND, f"File not found: {path}")
        if media_type == MediaType.VIDEO:
            return self._extract_video(path)
        return self._extract_image(path)

    def _extract_video(self, path: str) -> Result[ExtractedMetadata]:
        duration = self.ffprobe.read_duration(path)
        if not duration.ok:
            return Result.Err(duration.code, duration.error or "Duration probe failed", path=path)

        name = thumbnail_name_for(path)
        frame_path = self.thumbnail_dir / f"{name}.frame.jpg"
        frame = self.ffmpeg.grab_frame(path, frame_path, self.thumbnail_size)
        if not frame.ok:
            return Result.Err(frame.code, frame.error or "Frame grab failed", path=path)
        try:
            rendered = self._render_thumbnail(frame_path, self.thumbnail_dir / name)
        finally:
            frame_path.unlink(missing_ok=True)
        if not rendered.ok:
            return Result.Err(rendered.code, rendered.error or "Thumbnail render failed", path=path)
        return Result.Ok(ExtractedMetadata(duration_seconds=duration.data, thumbnail_ref=name))

    def _extract_image(self, path: str) -> Result[ExtractedMetadata]:
        if Path(path).suffix.lower() in _NO_THUMBNAIL_EXTENSIONS:
            return Result.Ok(ExtractedMetadata(duration_seconds=None, thumbnail_ref=None))
        name = thumbnail_name_for(path)
        rendered = self._render_thumbnail(Path(path), self.thumbnail_dir / name)
        if not rendered.ok:
            return Result.Err(rendered.code, rendered.error or "Thumbnail render failed", path=path)
        return Result.Ok(ExtractedMetadata(duration_seconds=None, thumbnail_ref=name))

    def _render_thumbnail(self, source: Path, dest: Path) -> Result[Path]:
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with Image.open(source) as img:
                img.thumbnail((self.thumbnail_size, self.thumbnail_size), Image.Resampling.LANCZOS)
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
                img.save(dest, format="WEBP")
        except UnidentifiedImageError as exc:
            logger.debug("Unreadable image %s: %s", source, exc)
            return Result.Err(ErrorCode.PARSE_ERROR, f"Unreadable image: {exc}")
        except (OSError, ValueError) as exc:
            logger.warning("Thumbnail render failed for %s: %s", source, exc)
            return Result.Err(ErrorCode.EXTRACTION_ERROR, str(exc))
        return Result.Ok(dest)
