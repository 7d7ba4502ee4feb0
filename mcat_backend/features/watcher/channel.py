"""
Cancellable event channel and the debounce stage over it.

The watchdog thread pushes path batches with `publish_threadsafe`; the async side
reads them back through `coalesce`, which merges every batch that arrives inside
one quiet window into a single set of paths.
"""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable

from ...shared import get_logger

logger = get_logger(__name__)

_CLOSE = object()


class ChannelClosed(Exception):
    """Raised by `EventChannel.get` once the channel is closed."""


class EventChannel:
    """Unbounded asyncio queue of path batches. Closing it discards whatever is pending."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, batch: Iterable[str]) -> bool:
        """Enqueue a batch from the loop thread. Returns False once closed."""
        if self._closed:
            return False
        paths = [str(p) for p in batch if p]
        if not paths:
            return False
        self._queue.put_nowait(paths)
        return True

    def publish_threadsafe(self, batch: Iterable[str]) -> None:
        """Enqueue a batch from a foreign thread (watchdog's observer)."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        paths = list(batch)
        try:
            loop.call_soon_threadsafe(self.publish, paths)
        except RuntimeError:
            # Loop shut down between the check and the call.
            logger.debug("Dropped watcher batch: event loop closed")

    async def get(self) -> list[str]:
        if self._closed:
            raise ChannelClosed()
        item = await self._queue.get()
        if item is _CLOSE or self._closed:
            raise ChannelClosed()
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSE)

    def __aiter__(self) -> "EventChannel":
        return self

    async def __anext__(self) -> list[str]:
        try:
            return await self.get()
        except ChannelClosed:
            raise StopAsyncIteration from None


async def coalesce(channel: EventChannel, window_s: float) -> AsyncIterator[set[str]]:
    """
    Trailing-edge debounce over `channel`.

    After the first batch, keep collecting until `window_s` passes with no new
    batch, then yield the union of every path seen. A close while collecting
    discards the pending union.
    """
    window = max(0.0, float(window_s))
    while True:
        try:
            first = await channel.get()
        except ChannelClosed:
            return
        pending = set(first)
        while True:
            try:
                batch = await asyncio.wait_for(channel.get(), timeout=window)
            except asyncio.TimeoutError:
                break
            except ChannelClosed:
                return
            pending.update(batch)
        yield pending
