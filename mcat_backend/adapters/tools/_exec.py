"""
Executable resolution shared by the external tool adapters.
"""
import shutil
from pathlib import Path
from typing import Optional


def is_safe_executable_token(raw: str) -> bool:
    if not raw:
        return False
    if "\x00" in raw or "\n" in raw or "\r" in raw:
        return False
    return not any(ch in raw for ch in ("&", "|", ";", ">", "<"))


def resolve_executable(bin_name: str, expected_prefix: str) -> Optional[str]:
    """
    Resolve a configured tool binary to an absolute path.

    Only accepts a plain token found on PATH or an existing file whose name
    starts with `expected_prefix` (e.g. "ffprobe").
    """
    raw = (bin_name or "").strip()
    if not is_safe_executable_token(raw):
        return None
    resolved = shutil.which(raw)
    if not resolved:
        try:
            candidate = Path(raw)
            if candidate.is_file():
                resolved = str(candidate.resolve(strict=True))
        except (OSError, RuntimeError, ValueError):
            return None
    if not resolved:
        return None
    return resolved if Path(resolved).name.lower().startswith(expected_prefix) else None
