"""Top-level entry point: ImageCache wires the engine from configuration."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from imgcache.cache.context import CacheContext
from imgcache.cache.disk import SqliteIndex
from imgcache.cache.index import CacheIndex
from imgcache.cache.keys import is_cacheable
from imgcache.cache.manager import CacheManager, OptionsLike
from imgcache.cache.memory import MemoryIndex
from imgcache.cache.stats import CacheStats
from imgcache.concurrency.pool import ConcurrencyPool
from imgcache.config.hierarchy import load_config_hierarchy
from imgcache.errors.exceptions import DownloadError, ImgCacheError
from imgcache.fs.base import FileSystem
from imgcache.fs.operations import FileOperations
from imgcache.types import CacheInfo, CacheOptions, IndexBackend, PrefetchResult

logger = logging.getLogger(__name__)

HeaderResolver = Callable[[], Awaitable[Mapping[str, str]]]


def file_uri(path: str | Path) -> str:
    """``file://`` URI for a cached path."""
    return f"file://{path}"


class ImageCache:
    """Cache engine plus the caller-side policies around it.

    The engine itself never retries and has no deadline; ``retries`` and
    ``timeout_seconds`` are applied here, around each fetch. A timed-out
    caller stops waiting while the shared download runs to completion.
    """

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        file_system: FileSystem | None = None,
        index: CacheIndex | None = None,
    ) -> None:
        self._config = dict(config) if config is not None else load_config_hierarchy()
        self._retries = int(self._config.get("retries") or 0)
        timeout = self._config.get("timeout_seconds")
        self._timeout = float(timeout) if timeout else None
        self._max_workers = int(self._config.get("max_workers") or 5)

        options = CacheOptions.model_validate(
            {k: self._config[k] for k in CacheOptions.model_fields if k in self._config}
        )
        self._manager = CacheManager(
            options=options,
            index=index if index is not None else self._build_index(),
            file_ops=FileOperations(file_system),
        )
        self._context = CacheContext(self._manager)

    @classmethod
    def from_config(cls, **runtime_overrides: Any) -> ImageCache:
        return cls(load_config_hierarchy(**runtime_overrides))

    @property
    def manager(self) -> CacheManager:
        return self._manager

    @property
    def context(self) -> CacheContext:
        return self._context

    @property
    def config(self) -> dict[str, Any]:
        return dict(self._config)

    async def fetch(
        self,
        url: str,
        options: OptionsLike = None,
        resolve_headers: HeaderResolver | None = None,
    ) -> str:
        """Cached path for ``url``, downloading it if needed."""
        opts = self._manager.resolve_options(options)
        if resolve_headers is not None:
            extra = await resolve_headers()
            opts = opts.merge({"headers": {**opts.headers, **extra}})

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(DownloadError),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
            stop=stop_after_attempt(self._retries + 1),
            reraise=True,
        ):
            with attempt:
                return await self._bounded(self._context.resolve(url, opts))
        raise DownloadError("Max retry attempts exhausted", url=url)

    async def fetch_uri(
        self,
        url: object,
        fallback: str | None = None,
        options: OptionsLike = None,
        resolve_headers: HeaderResolver | None = None,
    ) -> str | None:
        """``file://`` URI of the cached image, or ``fallback`` when unavailable."""
        if not is_cacheable(url):
            return fallback
        try:
            path = await self.fetch(url, options, resolve_headers)
        except (ImgCacheError, asyncio.TimeoutError) as exc:
            logger.warning("Falling back for %s: %s", url, exc)
            return fallback
        return file_uri(path)

    async def prefetch(self, urls: list[str], options: OptionsLike = None) -> list[PrefetchResult]:
        pool = ConcurrencyPool(max_workers=self._max_workers)
        return await pool.process_batch(self.fetch, urls, options=options)

    async def seed(self, url: str, seed_path: str | Path, options: OptionsLike = None) -> str:
        path = await self._manager.seed_and_cache_url(url, seed_path, options)
        self._context.set_cached(url, path, options)
        return path

    async def delete(self, url: str, options: OptionsLike = None) -> None:
        self._context.forget(url, options)
        await self._manager.delete_url(url, options)

    async def clear(self, options: OptionsLike = None) -> None:
        self._context.clear()
        await self._manager.clear_cache(options)

    async def info(self, options: OptionsLike = None) -> CacheInfo:
        return await self._manager.get_cache_info(options)

    def stats(self) -> CacheStats:
        return self._manager.stats()

    async def aclose(self) -> None:
        await self._manager.aclose()

    async def __aenter__(self) -> ImageCache:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _bounded(self, awaitable: Awaitable[str]) -> str:
        if self._timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    def _build_index(self) -> CacheIndex:
        backend = IndexBackend(self._config.get("index_backend", IndexBackend.SQLITE))
        if backend == IndexBackend.MEMORY:
            return MemoryIndex()
        return SqliteIndex(db_path=Path(self._config["index_path"]))
