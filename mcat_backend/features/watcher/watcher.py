"""
Live watcher for one catalog root.

watchdog delivers events on its observer thread; each callback becomes one batch
that is filtered there and handed to the event loop through an EventChannel. The
async consumer debounces the channel and starts a reconciliation for each
coalesced trigger unless the root's SyncStateMachine says a pass is in flight,
in which case the trigger is dropped.
"""
from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from watchdog.events import DirModifiedEvent, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ...config import SELF_ARTIFACT_PATTERNS, WATCHER_DEBOUNCE_MS, WATCHER_STOP_TIMEOUT_S
from ...shared import WatcherSetupError, get_logger
from ..sync.state import SyncState, SyncStateMachine
from .channel import EventChannel, coalesce
from .filters import filter_batch

logger = get_logger(__name__)

OnRelevantChange = Callable[[list[str]], Awaitable[Any]]


class ChannelEventHandler(FileSystemEventHandler):
    """Turns each watchdog callback into a filtered batch on the channel."""

    def __init__(
        self,
        channel: EventChannel,
        ignore_patterns: Iterable[str] = SELF_ARTIFACT_PATTERNS,
        root: str | None = None,
    ):
        super().__init__()
        self._channel = channel
        self._patterns = tuple(ignore_patterns)
        self._root = os.path.normpath(root) if root else None

    def on_any_event(self, event: FileSystemEvent) -> None:
        # Directory mtime changes echo writes inside them, including our own.
        if isinstance(event, DirModifiedEvent):
            return
        if event.event_type in ("opened", "closed", "closed_no_write"):
            return
        paths = [os.fsdecode(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(os.fsdecode(dest))
        batch = filter_batch(paths, self._patterns, self._root)
        if batch:
            self._channel.publish_threadsafe(batch)


class RootWatcher:
    """
    Watches one root until stopped.

    Usage:
        watcher = RootWatcher(root, on_change, state)
        await watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        root: str,
        on_relevant_change: OnRelevantChange,
        state: SyncStateMachine,
        *,
        debounce_ms: int = WATCHER_DEBOUNCE_MS,
        ignore_patterns: Iterable[str] = SELF_ARTIFACT_PATTERNS,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.root = os.path.normpath(root)
        self._on_relevant_change = on_relevant_change
        self._state = state
        self._debounce_s = max(0, int(debounce_ms)) / 1000.0
        self._ignore_patterns = tuple(ignore_patterns)
        self._observer_factory = observer_factory
        self._observer: Any | None = None
        self._channel: EventChannel | None = None
        self._consumer: asyncio.Task | None = None
        self._triggers: set[asyncio.Task] = set()
        self._running = False
        self.dropped_triggers = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def channel(self) -> EventChannel | None:
        return self._channel

    async def start(self) -> None:
        """
        Subscribe to the root.

        Raises:
            WatcherSetupError: the root is missing or the OS facility refused the watch.
        """
        if self._running:
            return
        if not os.path.isdir(self.root):
            raise WatcherSetupError(f"Cannot watch missing directory: {self.root}", path=self.root)

        loop = asyncio.get_running_loop()
        channel = EventChannel(loop)
        handler = ChannelEventHandler(channel, self._ignore_patterns, self.root)
        observer = self._observer_factory()
        try:
            observer.schedule(handler, self.root, recursive=True)
            observer.start()
        except (OSError, RuntimeError) as exc:
            channel.close()
            raise WatcherSetupError(f"Watcher setup failed: {exc}", path=self.root) from exc

        self._observer = observer
        self._channel = channel
        self._consumer = loop.create_task(self._consume(channel), name=f"mcat-watch:{self.root}")
        self._running = True
        logger.info("Watcher started for: %s", self.root)

    async def _consume(self, channel: EventChannel) -> None:
        async for paths in coalesce(channel, self._debounce_s):
            if self._state.is_busy() or self._state.state is SyncState.ERROR:
                self.dropped_triggers += 1
                logger.debug("Watcher trigger dropped (%s): %d paths", self._state.state.value, len(paths))
                continue
            task = asyncio.create_task(self._deliver(sorted(paths)))
            self._triggers.add(task)
            task.add_done_callback(self._triggers.discard)

    async def _deliver(self, paths: list[str]) -> None:
        try:
            await self._on_relevant_change(paths)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Watcher callback failed for %s: %s", self.root, exc)

    async def stop(self) -> None:
        """Cancel the subscription, the pending debounce window and any trigger still running."""
        if not self._running:
            return
        self._running = False

        if self._channel is not None:
            self._channel.close()
        observer = self._observer
        self._observer = None
        if observer is not None:
            try:
                observer.stop()
                observer.join(timeout=WATCHER_STOP_TIMEOUT_S)
            except RuntimeError as exc:
                logger.debug("Watcher stop error: %s", exc)

        pending = [t for t in (self._consumer, *self._triggers) if t is not None and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._consumer = None
        self._triggers.clear()
        self._channel = None
        logger.info("Watcher stopped for: %s", self.root)


async def watch(
    root: str,
    on_relevant_change: OnRelevantChange,
    state: SyncStateMachine,
    *,
    debounce_ms: int = WATCHER_DEBOUNCE_MS,
    ignore_patterns: Iterable[str] = SELF_ARTIFACT_PATTERNS,
    observer_factory: Callable[[], Any] = Observer,
) -> Callable[[], Awaitable[None]]:
    """Start watching `root` and return the coroutine function that stops it."""
    watcher = RootWatcher(
        root,
        on_relevant_change,
        state,
        debounce_ms=debounce_ms,
        ignore_patterns=ignore_patterns,
        observer_factory=observer_factory,
    )
    await watcher.start()
    return watcher.stop
