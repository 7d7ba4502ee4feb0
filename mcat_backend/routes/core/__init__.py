"""
Shared helpers for route handlers.
"""
from aiohttp import web

from .request_json import _read_json
from .response import _json_response

APP_KEY_SYNC_SERVICE: web.AppKey = web.AppKey("mcat_sync_service", object)

__all__ = ["APP_KEY_SYNC_SERVICE", "_json_response", "_read_json"]
