"""In-flight download registry: one population per destination path."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

logger = logging.getLogger(__name__)


class DownloadDeduplicator:
    """Coalesces concurrent requests that target the same destination path.

    The first caller's producer runs as a task; later callers await the same
    task. The entry is dropped when the task finishes, successfully or not,
    so the next request starts fresh. Waiters are shielded: a caller that
    gets cancelled stops waiting but the population keeps running.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Task[str]] = {}

    async def acquire(self, path: str | Path, producer: Callable[[], Awaitable[str]]) -> str:
        key = str(path)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(producer())
            self._in_flight[key] = task
            task.add_done_callback(functools.partial(self._release, key))
        else:
            logger.debug("Joining in-flight population of %s", key)
        return await asyncio.shield(task)

    def is_in_flight(self, path: str | Path) -> bool:
        return str(path) in self._in_flight

    def __len__(self) -> int:
        return len(self._in_flight)

    def _release(self, key: str, task: asyncio.Task[str]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled():
            logger.info("Population of %s was cancelled", key)
            return
        exc = task.exception()
        if exc is not None:
            logger.info("Population of %s failed: %s", key, exc)
