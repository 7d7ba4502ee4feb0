"""
aiohttp application factory.
"""
from __future__ import annotations

from aiohttp import web

from .deps import build_services
from .features.sync.service import CatalogSyncService
from .observability import ensure_observability
from .routes import APP_KEY_SYNC_SERVICE, register_routes
from .shared import get_logger

logger = get_logger(__name__)


def create_app(service: CatalogSyncService | None = None, *, root: str | None = None) -> web.Application:
    """
    Build the HTTP app around a sync service.

    When `root` is given it is adopted on startup; a failed first pass is logged and
    left visible through /catalog/status rather than aborting startup.
    """
    app = web.Application()
    app[APP_KEY_SYNC_SERVICE] = service or build_services()
    ensure_observability(app)
    register_routes(app)

    async def _adopt_initial_root(app: web.Application) -> None:
        if not root:
            return
        res = await app[APP_KEY_SYNC_SERVICE].adopt_root(root)
        if not res.ok:
            logger.error("Initial root %s not adopted: [%s] %s", root, res.code, res.error)

    async def _close_service(app: web.Application) -> None:
        await app[APP_KEY_SYNC_SERVICE].close()

    app.on_startup.append(_adopt_initial_root)
    app.on_cleanup.append(_close_service)
    return app
