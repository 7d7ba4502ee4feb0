"""
HTTP routes for the media catalog.
Importing this package is side-effect free; route registration is explicit.
"""
from aiohttp import web

from .core import APP_KEY_SYNC_SERVICE
from .handlers import register_catalog_routes


def register_routes(app: web.Application) -> None:
    routes = web.RouteTableDef()
    register_catalog_routes(routes)
    app.add_routes(routes)


__all__ = ["APP_KEY_SYNC_SERVICE", "register_catalog_routes", "register_routes"]
