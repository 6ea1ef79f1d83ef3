"""Recently-resolved overlay shared by the consumers of one CacheManager."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from imgcache.cache.keys import is_cacheable, normalize_for_key
from imgcache.errors.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from imgcache.cache.manager import CacheManager, OptionsLike

logger = logging.getLogger(__name__)


class CacheContext:
    """URL → cached path map layered over a CacheManager.

    Entries are keyed by the canonical URL under the effective query policy
    together with the cache root, so call-site options that change either
    resolve separately. An entry whose file has disappeared is dropped and
    the manager takes over.
    """

    def __init__(self, manager: CacheManager) -> None:
        self._manager = manager
        self._resolved: dict[tuple[str, str], str] = {}

    @property
    def manager(self) -> CacheManager:
        return self._manager

    def get_cached(self, url: object, options: OptionsLike = None) -> str | None:
        if not isinstance(url, str):
            raise InvalidArgumentError(argument="url")
        return self._resolved.get(self._key(url, options))

    def set_cached(self, url: object, cached_path: object, options: OptionsLike = None) -> None:
        if not isinstance(url, str):
            raise InvalidArgumentError(argument="url")
        if not isinstance(cached_path, str):
            raise InvalidArgumentError(argument="cachedPath")
        self._resolved[self._key(url, options)] = cached_path

    def forget(self, url: str, options: OptionsLike = None) -> None:
        self._resolved.pop(self._key(url, options), None)

    def clear(self) -> None:
        self._resolved.clear()

    async def resolve(self, url: object, options: OptionsLike = None) -> str:
        """Overlay first, then the manager; successful results are remembered."""
        if not is_cacheable(url):
            return await self._manager.download_and_cache_url(url, options)

        cached = self.get_cached(url, options)
        if cached is not None:
            if await self._manager.file_ops.exists(Path(cached)):
                logger.debug("Overlay hit for %s", url)
                return cached
            logger.debug("Overlay entry for %s points at a missing file", url)
            self.forget(url, options)

        path = await self._manager.download_and_cache_url(url, options)
        self.set_cached(url, path, options)
        return path

    def _key(self, url: str, options: OptionsLike) -> tuple[str, str]:
        opts = self._manager.resolve_options(options)
        canonical = normalize_for_key(url, opts.query_policy) if is_cacheable(url) else url
        return canonical, str(opts.cache_root)

    def __len__(self) -> int:
        return len(self._resolved)
