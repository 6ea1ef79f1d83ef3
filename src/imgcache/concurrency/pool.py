"""Bounded async pool for warming the cache with many URLs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from imgcache.types import PrefetchResult

logger = logging.getLogger(__name__)


class ConcurrencyPool:
    """Runs one fetch per URL with at most ``max_workers`` in progress."""

    def __init__(self, max_workers: int = 5) -> None:
        self._max_workers = max_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    async def process_batch(
        self,
        fetch_fn: Callable[..., Awaitable[str]],
        urls: list[str],
        **kwargs: Any,
    ) -> list[PrefetchResult]:
        """Fetch every URL concurrently.

        Args:
            fetch_fn: Async callable(url, **kwargs) -> cached path.
            urls: URLs to warm.
            **kwargs: Additional args passed to fetch_fn.

        Returns one PrefetchResult per URL, in input order. A failing URL
        yields a result with ``error`` set instead of aborting the batch.
        """
        semaphore = asyncio.Semaphore(self._max_workers)

        async def worker(url: str) -> str:
            async with semaphore:
                return await fetch_fn(url, **kwargs)

        tasks = [worker(u) for u in urls]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        final: list[PrefetchResult] = []
        for url, result in zip(urls, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Prefetch of %s failed: %s", url, result)
                final.append(PrefetchResult(url=url, error=str(result) or type(result).__name__))
            else:
                final.append(PrefetchResult(url=url, path=str(result)))

        return final
