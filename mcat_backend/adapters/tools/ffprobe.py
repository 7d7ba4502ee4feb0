"""
FFprobe adapter for video duration.
"""
import os
import subprocess
from typing import List, Optional

from ...config import FFPROBE_TIMEOUT
from ...shared import ErrorCode, Result, get_logger
from ._exec import resolve_executable

logger = get_logger(__name__)


class FFProbe:
    """
    FFprobe wrapper.

    Never raises exceptions - always returns Result.
    """

    def __init__(self, bin_name: str = "ffprobe", timeout: Optional[float] = None):
        self.bin = bin_name
        self.timeout = float(timeout) if timeout is not None else float(FFPROBE_TIMEOUT)
        self._resolved_bin = resolve_executable(bin_name, "ffprobe")

    def is_available(self) -> bool:
        return self._resolved_bin is not None

    def _build_duration_cmd(self, path: str) -> List[str]:
        return [
            self._resolved_bin or self.bin,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            path,
        ]

    def read_duration(self, path: str) -> Result[float]:
        """
        Read a video's container duration in seconds, rounded to whole seconds.

        Args:
            path: Video file path
        """
        if not self.is_available():
            return Result.Err(ErrorCode.TOOL_MISSING, "ffprobe not found in PATH")

        try:
            process = subprocess.run(
                self._build_duration_cmd(path),
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
                shell=False,
                close_fds=os.name != "nt",
            )
        except subprocess.TimeoutExpired:
            logger.error("ffprobe timeout for %s", path)
            return Result.Err(ErrorCode.TIMEOUT, f"ffprobe timeout after {self.timeout}s")
        except OSError as exc:
            logger.error("ffprobe failed to start: %s", exc)
            return Result.Err(ErrorCode.FFPROBE_ERROR, str(exc))

        return self._parse_duration_output(process.stdout, process.stderr, process.returncode, path)

    @staticmethod
    def _parse_duration_output(stdout: str, stderr: str, returncode: Optional[int], path: str) -> Result[float]:
        if returncode != 0:
            stderr_msg = (stderr or "").strip()
            logger.warning("ffprobe error for %s: %s", path, stderr_msg)
            return Result.Err(ErrorCode.FFPROBE_ERROR, stderr_msg or "ffprobe command failed")
        raw = (stdout or "").strip().splitlines()
        if not raw:
            return Result.Err(ErrorCode.FFPROBE_ERROR, "No ffprobe output")
        try:
            duration = float(raw[0].strip())
        except ValueError:
            return Result.Err(ErrorCode.PARSE_ERROR, f"Failed to parse duration: {raw[0]!r}")
        if duration < 0:
            return Result.Err(ErrorCode.PARSE_ERROR, f"Negative duration: {duration}")
        return Result.Ok(float(round(duration)))
