"""
Request-id correlation and request timing for the catalog HTTP surface.
"""
from __future__ import annotations

import logging
from uuid import uuid4

from aiohttp import web

from .shared import get_logger, log_structured, request_id_var, timer

logger = get_logger(__name__)

_APPKEY_OBS_INSTALLED: web.AppKey[bool] = web.AppKey("mcat_obs_installed", bool)

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: web.Request) -> str:
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return rid[:64] or uuid4().hex


@web.middleware
async def request_context_middleware(request: web.Request, handler):
    """Tag every log line of a request with its id; echo the id back on the response."""
    rid = _request_id(request)
    token = request_id_var.set(rid)
    status = 500
    try:
        with timer(f"{request.method} {request.path}") as span:
            try:
                response = await handler(request)
            except web.HTTPException as exc:
                status = exc.status
                exc.headers[REQUEST_ID_HEADER] = rid
                raise
            except Exception:
                logger.exception("Unhandled error on %s %s", request.method, request.path)
                raise
            status = response.status
            response.headers[REQUEST_ID_HEADER] = rid
            return response
    finally:
        log_structured(
            logger,
            logging.ERROR if status >= 500 else logging.DEBUG,
            "http_request",
            method=request.method,
            path=request.path,
            status=status,
            elapsed_ms=span.get("elapsed_ms"),
        )
        request_id_var.reset(token)


def ensure_observability(app: web.Application) -> None:
    """Install the middleware once."""
    if app.get(_APPKEY_OBS_INSTALLED):
        return
    app[_APPKEY_OBS_INSTALLED] = True
    app.middlewares.append(request_context_middleware)
