"""
FFmpeg adapter for grabbing a single video frame as a thumbnail.
"""
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from ...config import FFMPEG_TIMEOUT, VIDEO_THUMBNAIL_SEEK
from ...shared import ErrorCode, Result, get_logger
from ._exec import resolve_executable

logger = get_logger(__name__)


class FFmpeg:
    """FFmpeg wrapper. Never raises exceptions - always returns Result."""

    def __init__(self, bin_name: str = "ffmpeg", timeout: Optional[float] = None):
        self.bin = bin_name
        self.timeout = float(timeout) if timeout is not None else float(FFMPEG_TIMEOUT)
        self._resolved_bin = resolve_executable(bin_name, "ffmpeg")

    def is_available(self) -> bool:
        return self._resolved_bin is not None

    def _build_frame_cmd(self, path: str, dest: str, width: int) -> List[str]:
        return [
            self._resolved_bin or self.bin,
            "-y",
            "-ss", VIDEO_THUMBNAIL_SEEK,
            "-i", path,
            "-frames:v", "1",
            "-vf", f"scale={int(width)}:-1",
            dest,
        ]

    def grab_frame(self, path: str, dest: Path, width: int) -> Result[Path]:
        """Write one frame of `path` to `dest`, scaled to `width` pixels wide."""
        if not self.is_available():
            return Result.Err(ErrorCode.TOOL_MISSING, "ffmpeg not found in PATH")

        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            process = subprocess.run(
                self._build_frame_cmd(path, str(dest), width),
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
                shell=False,
                close_fds=os.name != "nt",
            )
        except subprocess.TimeoutExpired:
            logger.error("ffmpeg timeout for %s", path)
            return Result.Err(ErrorCode.TIMEOUT, f"ffmpeg timeout after {self.timeout}s")
        except OSError as exc:
            logger.error("ffmpeg failed to start: %s", exc)
            return Result.Err(ErrorCode.FFMPEG_ERROR, str(exc))

        if process.returncode != 0 or not dest.is_file():
            stderr_msg = (process.stderr or "").strip().splitlines()
            detail = stderr_msg[-1] if stderr_msg else "ffmpeg command failed"
            logger.warning("ffmpeg frame grab failed for %s: %s", path, detail)
            return Result.Err(ErrorCode.FFMPEG_ERROR, detail)
        return Result.Ok(dest)
