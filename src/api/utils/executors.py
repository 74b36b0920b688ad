"""Execution helpers bridging the synchronous conversion service into async routes."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Execute *func* in a worker thread and return the result."""

    return await asyncio.to_thread(func, *args, **kwargs)


class ConversionExecutor:
    """Runs conversions in worker threads, at most ``max_concurrent`` at a time.

    Each conversion may hold a browser process or several decoded images, so
    excess requests wait for a slot inside their worker thread instead of
    starting immediately.
    """

    def __init__(self, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._slots = threading.BoundedSemaphore(max_concurrent)

    def _call(self, func: Callable[..., T], args: tuple[Any, ...], kwargs: dict[str, Any]) -> T:
        if not self._slots.acquire(blocking=False):
            logger.debug("All %d conversion slots busy, waiting", self.max_concurrent)
            self._slots.acquire()
        try:
            return func(*args, **kwargs)
        finally:
            self._slots.release()

    async def run(self, func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        return await run_sync(self._call, func, args, kwargs)


__all__ = ["ConversionExecutor", "run_sync"]
