"""
Clock helpers: catalog timestamps and pass timing.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager


def epoch_seconds() -> int:
    """Whole seconds since the epoch, as stored in `media_entries.updated_at`."""
    return int(time.time())


@contextmanager
def timer(label: str, logger: logging.Logger | None = None) -> Iterator[dict[str, float]]:
    """
    Measure a block; the yielded dict gets `elapsed_ms` once the block exits.

    Usage:
        with timer("updating pass /media", logger) as t:
            await run_pass()
        t["elapsed_ms"]
    """
    span: dict[str, float] = {}
    start = time.perf_counter()
    try:
        yield span
    finally:
        span["elapsed_ms"] = round((time.perf_counter() - start) * 1000.0, 1)
        if logger:
            logger.debug("%s took %.1fms", label, span["elapsed_ms"])
