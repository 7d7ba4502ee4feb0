"""
Bounded JSON request parsing. Never raises to handlers.
"""
from __future__ import annotations

import json
from typing import Any

from aiohttp import web

from mcat_backend.config import MAX_JSON_BYTES
from mcat_backend.shared import ErrorCode, Result

REQUEST_STREAM_CHUNK_BYTES = 64 * 1024


async def _read_json(request: web.Request, *, max_bytes: int | None = None) -> Result[dict]:
    limit = int(max_bytes) if max_bytes is not None else MAX_JSON_BYTES

    declared = request.content_length
    if declared is not None and declared > limit:
        return Result.Err(ErrorCode.INVALID_INPUT, f"JSON body too large ({declared} > {limit})", limit=limit)

    buf = bytearray()
    try:
        async for chunk in request.content.iter_chunked(REQUEST_STREAM_CHUNK_BYTES):
            buf.extend(chunk)
            if len(buf) > limit:
                return Result.Err(ErrorCode.INVALID_INPUT, f"JSON body too large (> {limit})", limit=limit)
    except (ConnectionError, OSError) as exc:
        return Result.Err(ErrorCode.INVALID_JSON, f"Failed to read request body: {exc}")

    try:
        text = bytes(buf).decode("utf-8")
        parsed: Any = json.loads(text) if text.strip() else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        return Result.Err(ErrorCode.INVALID_JSON, f"Invalid JSON body: {exc}")
    if not isinstance(parsed, dict):
        return Result.Err(ErrorCode.INVALID_JSON, "JSON body must be an object")
    return Result.Ok(parsed)
