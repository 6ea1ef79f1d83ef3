"""Cache manager: maps URLs to locally cached files, populating on demand."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

from imgcache.cache.index import CacheIndex
from imgcache.cache.keys import is_cacheable, normalize_for_key, relative_path
from imgcache.cache.memory import MemoryIndex
from imgcache.cache.stats import CacheStats
from imgcache.concurrency.dedup import DownloadDeduplicator
from imgcache.errors.exceptions import FilesystemError, NotCacheableError
from imgcache.fs.operations import FileOperations
from imgcache.types import CacheInfo, CacheOptions

logger = logging.getLogger(__name__)

Populate = Callable[[Path], Awaitable[Any]]
OptionsLike = CacheOptions | Mapping[str, Any] | None


class CacheManager:
    """Get-or-fetch engine over an index, a file layer and a deduplicator.

    The index maps a canonical URL to ``<host bucket>/<cache key>`` relative
    to the cache root. A hit is only trusted when the file is still on disk;
    otherwise the destination is repopulated once, however many callers ask
    for it at the same time.
    """

    def __init__(
        self,
        options: OptionsLike = None,
        index: CacheIndex | None = None,
        file_ops: FileOperations | None = None,
        deduplicator: DownloadDeduplicator | None = None,
    ) -> None:
        self._options = CacheOptions().merge(options)
        self._index = index if index is not None else MemoryIndex()
        self._file_ops = file_ops or FileOperations()
        self._deduplicator = deduplicator or DownloadDeduplicator()
        self._stats = CacheStats()

    @property
    def options(self) -> CacheOptions:
        return self._options

    @property
    def index(self) -> CacheIndex:
        return self._index

    @property
    def file_ops(self) -> FileOperations:
        return self._file_ops

    def resolve_options(self, overrides: OptionsLike = None) -> CacheOptions:
        """Instance options with call-site fields layered on top."""
        return self._options.merge(overrides)

    async def get_or_fetch(self, url: object, options: OptionsLike, populate: Populate) -> str:
        """Return the cached path for ``url``, running ``populate`` on a miss.

        ``populate(path)`` must materialize the file at ``path``. Its errors
        propagate unchanged and leave the index untouched.
        """
        if not is_cacheable(url):
            raise NotCacheableError(url=url)
        opts = self.resolve_options(options)
        canonical = normalize_for_key(url, opts.query_policy)
        relative = relative_path(canonical)
        root = Path(opts.cache_root)
        file_path = root / relative

        cached = self._index.get(canonical)
        if cached is not None:
            cached_path = root / cached
            if await self._file_ops.exists(cached_path):
                self._stats.hits += 1
                logger.debug("Cache hit for %s: %s", canonical, cached_path)
                return str(cached_path)
            self._stats.stale += 1
            logger.info("Cached file for %s is gone, refetching", canonical)
        else:
            self._stats.misses += 1
            logger.debug("Cache miss for %s", canonical)

        async def populate_and_register() -> str:
            try:
                await populate(file_path)
                if not await self._file_ops.exists(file_path):
                    raise FilesystemError(
                        f"Populating {file_path} produced no file",
                        path=str(file_path),
                        operation="populate",
                    )
            except Exception as exc:
                self._stats.failures += 1
                logger.warning("Populating %s for %s failed: %s", file_path, canonical, exc)
                # A failed refresh must not leave the previous copy behind
                await self._evict(file_path)
                raise
            self._index.set(canonical, relative, opts.ttl_seconds)
            self._stats.populated += 1
            return str(file_path)

        return await self._deduplicator.acquire(file_path, populate_and_register)

    async def download_and_cache_url(self, url: object, options: OptionsLike = None) -> str:
        """Download ``url`` (unless already cached) and return the local path."""
        opts = self.resolve_options(options)

        async def download(path: Path) -> Path:
            return await self._file_ops.download(
                str(url), path, headers=opts.headers, verify=not opts.tls_lenient
            )

        return await self.get_or_fetch(url, opts, download)

    async def seed_and_cache_url(
        self, url: object, seed_path: str | Path, options: OptionsLike = None
    ) -> str:
        """Register a local file as the cached copy of ``url``."""

        async def copy(path: Path) -> Path:
            return await self._file_ops.copy(Path(seed_path), path)

        return await self.get_or_fetch(url, options, copy)

    async def delete_url(self, url: object, options: OptionsLike = None) -> None:
        """Forget ``url`` and delete its file. Absent entries are fine."""
        if not is_cacheable(url):
            raise NotCacheableError(url=url)
        opts = self.resolve_options(options)
        canonical = normalize_for_key(url, opts.query_policy)
        self._index.remove(canonical)
        await self._file_ops.delete(Path(opts.cache_root) / relative_path(canonical))

    async def clear_cache(self, options: OptionsLike = None) -> None:
        """Drop every index entry and leave an empty cache root behind."""
        opts = self.resolve_options(options)
        self._index.flush()
        await self._file_ops.clean_directory(Path(opts.cache_root))
        logger.info("Cleared cache at %s", opts.cache_root)

    async def get_cache_info(self, options: OptionsLike = None) -> CacheInfo:
        opts = self.resolve_options(options)
        return await self._file_ops.stat_tree(Path(opts.cache_root))

    def stats(self) -> CacheStats:
        return self._stats.model_copy()

    async def aclose(self) -> None:
        """Release the HTTP clients and the index."""
        try:
            await self._file_ops.close()
        finally:
            self._index.close()

    async def _evict(self, path: Path) -> None:
        try:
            await self._file_ops.delete(path)
        except FilesystemError as exc:
            logger.warning("Could not evict %s: %s", path, exc)
