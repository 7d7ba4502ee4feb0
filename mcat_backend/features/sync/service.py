"""
CatalogSyncService - owns the adopted root and drives reconciliation passes.

One root is active at a time. Adopting a new root stops the previous watcher,
cancels its in-flight pass and closes its store before anything touches the new
root; a pass belonging to a superseded root never commits.
"""
from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ...adapters.tools import FFmpeg, FFProbe
from ...config import (
    CATALOG_DB_NAME,
    EXTRACT_CONCURRENCY,
    FFMPEG_BIN,
    FFMPEG_TIMEOUT,
    FFPROBE_BIN,
    FFPROBE_TIMEOUT,
    RENAME_TIE_BREAK,
    THUMBNAIL_DIR_NAME,
    WATCHER_DEBOUNCE_MS,
    WATCHER_ENABLED,
)
from ...shared import (
    ErrorCode,
    Result,
    ScanError,
    WatcherSetupError,
    get_logger,
    log_structured,
    log_success,
    timer,
)
from ...utils import is_under_path, normalize_path
from ..catalog import CatalogStore, MediaEntry
from ..index import RenamePolicy, reconcile, scan
from ..metadata import MediaMetadataExtractor, MetadataExtractor
from ..watcher import RootWatcher
from .state import PassToken, SyncState, SyncStateMachine

logger = get_logger(__name__)


def default_extractor_factory(root: str) -> MetadataExtractor:
    return MediaMetadataExtractor(
        Path(root) / THUMBNAIL_DIR_NAME,
        ffprobe=FFProbe(FFPROBE_BIN, FFPROBE_TIMEOUT),
        ffmpeg=FFmpeg(FFMPEG_BIN, FFMPEG_TIMEOUT),
    )


@dataclass
class _RootContext:
    root: str
    store: CatalogStore
    state: SyncStateMachine
    extractor: MetadataExtractor
    snapshot: dict[str, MediaEntry] = field(default_factory=dict)
    watcher: RootWatcher | None = None
    watcher_error: str | None = None
    completed_passes: int = 0
    last_summary: dict[str, int] = field(default_factory=dict)
    last_errors: list[dict[str, Any]] = field(default_factory=list)
    last_pass_ms: float | None = None
    pass_task: asyncio.Task | None = None


class CatalogSyncService:
    """
    Usage:
        service = CatalogSyncService()
        await service.adopt_root("/media/photos")
        service.snapshot()
        await service.refresh()
        await service.close()
    """

    def __init__(
        self,
        *,
        extractor_factory: Callable[[str], MetadataExtractor] = default_extractor_factory,
        watcher_enabled: bool = WATCHER_ENABLED,
        debounce_ms: int = WATCHER_DEBOUNCE_MS,
        concurrency: int = EXTRACT_CONCURRENCY,
        rename_policy: RenamePolicy | str = RENAME_TIE_BREAK,
        observer_factory: Callable[[], Any] | None = None,
    ):
        self._extractor_factory = extractor_factory
        self._watcher_enabled = bool(watcher_enabled)
        self._debounce_ms = int(debounce_ms)
        self._concurrency = int(concurrency)
        self._policy = RenamePolicy.parse(rename_policy)
        self._observer_factory = observer_factory
        self._ctx: _RootContext | None = None
        self._adopt_lock = asyncio.Lock()

    @property
    def root(self) -> str | None:
        return self._ctx.root if self._ctx else None

    @property
    def state(self) -> SyncStateMachine | None:
        return self._ctx.state if self._ctx else None

    # ------------------------------------------------------------------
    # Root lifecycle
    # ------------------------------------------------------------------

    async def adopt_root(self, path: str) -> Result[dict[str, Any]]:
        """Switch to `path`, build its catalog with an Initializing pass and start watching it."""
        if not path or not str(path).strip():
            return Result.Err(ErrorCode.INVALID_INPUT, "Missing root path")
        root = normalize_path(str(path).strip())
        if not os.path.isdir(root):
            return Result.Err(ErrorCode.NOT_FOUND, f"Directory not found: {root}")

        async with self._adopt_lock:
            await self._release_current()

            opened = await CatalogStore.open(os.path.join(root, CATALOG_DB_NAME))
            if not opened.ok or opened.data is None:
                logger.error("Cannot open catalog for %s: %s", root, opened.error)
                return Result.Err(ErrorCode.CATALOG_IO_ERROR, opened.error or "Catalog open failed")

            ctx = _RootContext(
                root=root,
                store=opened.data,
                state=SyncStateMachine(root),
                extractor=self._extractor_factory(root),
            )
            self._ctx = ctx
            logger.info("Adopted root: %s", root)

        result = await self._run_pass(ctx, SyncState.INITIALIZING, user_initiated=True)
        if ctx is self._ctx:
            await self._start_watcher(ctx)
        if not result.ok:
            return result
        return Result.Ok(self.status(), summary=result.data)

    async def _release_current(self) -> None:
        ctx = self._ctx
        if ctx is None:
            return
        self._ctx = None
        if ctx.watcher is not None:
            await ctx.watcher.stop()
            ctx.watcher = None
        task = ctx.pass_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        ctx.state.abandon()
        await ctx.store.close()
        logger.info("Released root: %s", ctx.root)

    async def _start_watcher(self, ctx: _RootContext) -> None:
        if not self._watcher_enabled:
            return
        kwargs: dict[str, Any] = {"debounce_ms": self._debounce_ms}
        if self._observer_factory is not None:
            kwargs["observer_factory"] = self._observer_factory
        watcher = RootWatcher(ctx.root, self._on_watch_trigger, ctx.state, **kwargs)
        try:
            await watcher.start()
        except WatcherSetupError as exc:
            ctx.watcher_error = exc.message
            logger.warning("Live sync unavailable for %s (manual refresh still works): %s", ctx.root, exc)
            return
        ctx.watcher = watcher
        ctx.watcher_error = None

    async def close(self) -> None:
        async with self._adopt_lock:
            await self._release_current()

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    async def refresh(self) -> Result[dict[str, Any]]:
        """User-initiated pass; also the way out of the Error state."""
        ctx = self._ctx
        if ctx is None:
            return Result.Err(ErrorCode.SERVICE_UNAVAILABLE, "No root adopted")
        kind = SyncState.UPDATING if ctx.completed_passes else SyncState.INITIALIZING
        return await self._run_pass(ctx, kind, user_initiated=True)

    async def _on_watch_trigger(self, paths: list[str]) -> None:
        ctx = self._ctx
        if ctx is None:
            return
        logger.debug("Watcher trigger for %s (%d paths)", ctx.root, len(paths))
        res = await self._run_pass(ctx, SyncState.UPDATING, user_initiated=False)
        if not res.ok and res.code != ErrorCode.BUSY.value:
            logger.warning("Watcher-triggered pass failed: %s", res.error)

    async def _run_pass(self, ctx: _RootContext, kind: SyncState, *, user_initiated: bool) -> Result[dict[str, Any]]:
        began = ctx.state.begin(kind, user_initiated=user_initiated)
        if not began.ok or began.data is None:
            return Result.Err(began.code, began.error or "Pass refused", **began.meta)
        token = began.data

        task = asyncio.create_task(self._pass_body(ctx, token))
        ctx.pass_task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if ctx.pass_task is task and task.done():
                ctx.pass_task = None
        if task.cancelled():
            return Result.Err(ErrorCode.CANCELLED, "Pass cancelled by a root switch")
        return task.result()

    async def _pass_body(self, ctx: _RootContext, token: PassToken) -> Result[dict[str, Any]]:
        try:
            with timer(f"{token.kind.value} pass {ctx.root}", logger) as span:
                res = await self._pass_steps(ctx, token)
            ctx.last_pass_ms = span.get("elapsed_ms")
            return res
        except asyncio.CancelledError:
            ctx.state.finish(token)
            raise
        except Exception as exc:
            logger.exception("Reconciliation pass failed for %s", ctx.root)
            ctx.state.finish(token, error=str(exc) or type(exc).__name__)
            return Result.Err(ErrorCode.CATALOG_IO_ERROR, f"Reconciliation failed: {exc}")

    async def _pass_steps(self, ctx: _RootContext, token: PassToken) -> Result[dict[str, Any]]:
        try:
            scanned = await asyncio.to_thread(scan, ctx.root)
        except ScanError as exc:
            return self._fail(ctx, token, exc.to_result())

        loaded = await ctx.store.load_all()
        if not loaded.ok:
            return self._fail(ctx, token, loaded)
        catalog = {entry.path: entry for entry in loaded.data or []}
        ctx.snapshot = catalog

        result = await reconcile(
            catalog,
            scanned,
            ctx.extractor,
            concurrency=self._concurrency,
            policy=self._policy,
        )

        if ctx is not self._ctx:
            ctx.state.finish(token)
            return Result.Err(ErrorCode.CANCELLED, "Root changed during the pass")

        applied = await ctx.store.apply(result)
        if not applied.ok:
            return self._fail(ctx, token, applied)

        ctx.snapshot = result.catalog
        ctx.completed_passes += 1
        ctx.last_summary = result.summary()
        ctx.last_errors = list(result.errors)
        ctx.state.finish(token)

        log_structured(
            logger,
            logging.INFO,
            "reconcile_pass",
            root=ctx.root,
            kind=token.kind.value,
            **ctx.last_summary,
        )
        if result.has_mutations:
            log_success(logger, f"Catalog updated: {ctx.last_summary}")
        return Result.Ok(ctx.last_summary, errors=ctx.last_errors)

    @staticmethod
    def _fail(ctx: _RootContext, token: PassToken, res: Result[Any]) -> Result[Any]:
        ctx.state.finish(token, error=res.error or res.code)
        return Result.Err(res.code, res.error or "Reconciliation failed", **res.meta)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def snapshot(self) -> list[MediaEntry]:
        """Current catalog, ordered by path. The last committed catalog while a pass runs or after an error."""
        ctx = self._ctx
        if ctx is None:
            return []
        return [ctx.snapshot[path] for path in sorted(ctx.snapshot)]

    def status(self) -> dict[str, Any]:
        ctx = self._ctx
        if ctx is None:
            return {
                "root": None,
                "state": SyncState.IDLE.value,
                "status": "",
                "last_error": None,
                "entries": 0,
                "watching": False,
                "watcher_error": None,
                "last_pass": {},
                "last_pass_ms": None,
                "item_errors": [],
            }
        return {
            "root": ctx.root,
            **ctx.state.to_dict(),
            "entries": len(ctx.snapshot),
            "watching": bool(ctx.watcher and ctx.watcher.is_running),
            "watcher_error": ctx.watcher_error,
            "last_pass": dict(ctx.last_summary),
            "last_pass_ms": ctx.last_pass_ms,
            "item_errors": list(ctx.last_errors),
        }

    # ------------------------------------------------------------------
    # User metadata
    # ------------------------------------------------------------------

    def _editable(self, path: str) -> Result[tuple[_RootContext, str]]:
        ctx = self._ctx
        if ctx is None:
            return Result.Err(ErrorCode.SERVICE_UNAVAILABLE, "No root adopted")
        if ctx.state.is_busy():
            return Result.Err(ErrorCode.BUSY, ctx.state.status_text, state=ctx.state.state.value)
        key = normalize_path(path)
        if not is_under_path(key, ctx.root):
            return Result.Err(ErrorCode.INVALID_INPUT, f"Path is outside the catalog root: {key}")
        return Result.Ok((ctx, key))

    async def set_tags(self, path: str, tags: list[Any]) -> Result[list[str]]:
        checked = self._editable(path)
        if not checked.ok or checked.data is None:
            return Result.Err(checked.code, checked.error or "Unavailable", **checked.meta)
        ctx, key = checked.data
        res = await ctx.store.set_tags(key, tags)
        if res.ok and key in ctx.snapshot:
            ctx.snapshot[key].tags = set(res.data or [])
        return res

    async def add_bookmark(self, path: str, description: str, timestamp_seconds: float) -> Result[Any]:
        checked = self._editable(path)
        if not checked.ok or checked.data is None:
            return Result.Err(checked.code, checked.error or "Unavailable", **checked.meta)
        ctx, key = checked.data
        res = await ctx.store.add_bookmark(key, description, timestamp_seconds)
        if res.ok and res.data is not None and key in ctx.snapshot:
            ctx.snapshot[key].bookmarks.append(res.data)
        return res

    async def remove_bookmark(self, path: str, timestamp_seconds: float) -> Result[int]:
        checked = self._editable(path)
        if not checked.ok or checked.data is None:
            return Result.Err(checked.code, checked.error or "Unavailable", **checked.meta)
        ctx, key = checked.data
        res = await ctx.store.remove_bookmark(key, timestamp_seconds)
        if res.ok and key in ctx.snapshot:
            entry = ctx.snapshot[key]
            entry.bookmarks = [b for b in entry.bookmarks if b.timestamp_seconds != float(timestamp_seconds)]
        return res
