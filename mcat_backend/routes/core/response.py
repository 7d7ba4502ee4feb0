"""
Response utilities for route handlers.
"""
import math

from aiohttp import web

from mcat_backend.shared import Result


def _json_response(result: Result, status: int | None = None) -> web.Response:
    """
    Convert Result to JSON response.

    Business and validation errors are HTTP 200 with {ok: false, ...}; pass an
    explicit status only for genuine server faults.
    """
    if status is None:
        status = 200
    return web.json_response(_sanitize_json_payload(result.to_payload()), status=status)


def _sanitize_json_payload(value):
    """
    Normalize payload values so they are always valid strict JSON.
    - Converts NaN/Infinity floats to None.
    - Recurses through dict/list/tuple/set containers.
    """
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: _sanitize_json_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_json_payload(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_sanitize_json_payload(v) for v in value)
    return value
