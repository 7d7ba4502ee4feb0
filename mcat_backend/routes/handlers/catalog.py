"""
Catalog endpoints: status, items, root adoption, refresh and user metadata.
"""
import math
from typing import Any

from aiohttp import web

from mcat_backend.shared import ErrorCode, MediaType, Result, get_logger

from ..core import APP_KEY_SYNC_SERVICE, _json_response, _read_json

logger = get_logger(__name__)


def _service(request: web.Request):
    return request.app[APP_KEY_SYNC_SERVICE]


def _require_path(body: dict) -> Result[str]:
    path = body.get("path")
    if not isinstance(path, str) or not path.strip():
        return Result.Err(ErrorCode.INVALID_INPUT, "Missing 'path'")
    return Result.Ok(path.strip())


def _parse_timestamp(value: Any) -> Result[float]:
    if isinstance(value, bool):
        return Result.Err(ErrorCode.INVALID_INPUT, "'timestamp' must be a number of seconds")
    try:
        ts = float(value)
    except (TypeError, ValueError):
        return Result.Err(ErrorCode.INVALID_INPUT, "'timestamp' must be a number of seconds")
    if not math.isfinite(ts) or ts < 0:
        return Result.Err(ErrorCode.INVALID_INPUT, "'timestamp' must be a non-negative number")
    return Result.Ok(ts)


def register_catalog_routes(routes: web.RouteTableDef) -> None:
    """Register all /catalog/* route handlers."""

    @routes.get("/catalog/status")
    async def catalog_status(request):
        return _json_response(Result.Ok(_service(request).status()))

    @routes.get("/catalog/items")
    async def catalog_items(request):
        """Current catalog snapshot. Optional filters: ?type=image|video, ?tag=<tag>."""
        svc = _service(request)
        wanted_type = (request.query.get("type") or "").strip().lower()
        if wanted_type and wanted_type not in {t.value for t in MediaType}:
            return _json_response(Result.Err(ErrorCode.INVALID_INPUT, f"Unknown media type: {wanted_type}"))
        wanted_tag = (request.query.get("tag") or "").strip()

        items = []
        for entry in svc.snapshot():
            if wanted_type and entry.media_type.value != wanted_type:
                continue
            if wanted_tag and wanted_tag not in entry.tags:
                continue
            items.append(entry.to_dict())
        status = svc.status()
        return _json_response(
            Result.Ok(items, root=status.get("root"), state=status.get("state"), total=len(items))
        )

    @routes.post("/catalog/root")
    async def catalog_adopt_root(request):
        body_res = await _read_json(request)
        if not body_res.ok:
            return _json_response(body_res)
        path_res = _require_path(body_res.data or {})
        if not path_res.ok:
            return _json_response(path_res)
        return _json_response(await _service(request).adopt_root(path_res.data))

    @routes.post("/catalog/refresh")
    async def catalog_refresh(request):
        return _json_response(await _service(request).refresh())

    @routes.post("/catalog/tags")
    async def catalog_set_tags(request):
        body_res = await _read_json(request)
        if not body_res.ok:
            return _json_response(body_res)
        body = body_res.data or {}
        path_res = _require_path(body)
        if not path_res.ok:
            return _json_response(path_res)
        tags = body.get("tags")
        if not isinstance(tags, list):
            return _json_response(Result.Err(ErrorCode.INVALID_INPUT, "'tags' must be a list of strings"))
        return _json_response(await _service(request).set_tags(path_res.data, tags))

    @routes.post("/catalog/bookmarks")
    async def catalog_add_bookmark(request):
        body_res = await _read_json(request)
        if not body_res.ok:
            return _json_response(body_res)
        body = body_res.data or {}
        path_res = _require_path(body)
        if not path_res.ok:
            return _json_response(path_res)
        ts_res = _parse_timestamp(body.get("timestamp"))
        if not ts_res.ok:
            return _json_response(ts_res)
        description = body.get("description")
        if description is None:
            description = ""
        if not isinstance(description, str):
            return _json_response(Result.Err(ErrorCode.INVALID_INPUT, "'description' must be a string"))
        res = await _service(request).add_bookmark(path_res.data, description, ts_res.data)
        return _json_response(res.map(lambda b: b.to_dict()))

    @routes.delete("/catalog/bookmarks")
    async def catalog_remove_bookmark(request):
        body_res = await _read_json(request)
        if not body_res.ok:
            return _json_response(body_res)
        body = body_res.data or {}
        path_res = _require_path(body)
        if not path_res.ok:
            return _json_response(path_res)
        ts_res = _parse_timestamp(body.get("timestamp"))
        if not ts_res.ok:
            return _json_response(ts_res)
        res = await _service(request).remove_bookmark(path_res.data, ts_res.data)
        return _json_response(res.map(lambda removed: {"removed": removed}))
