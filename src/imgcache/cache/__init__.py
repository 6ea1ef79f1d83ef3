"""Cache subsystem: URL keys, TTL index, and the get-or-fetch engine."""

from imgcache.cache.context import CacheContext
from imgcache.cache.disk import SqliteIndex
from imgcache.cache.index import CacheIndex
from imgcache.cache.keys import (
    derive_key,
    host_bucket,
    is_cacheable,
    normalize_for_key,
    relative_path,
    resolve_path,
)
from imgcache.cache.manager import CacheManager
from imgcache.cache.memory import MemoryIndex
from imgcache.cache.stats import CacheStats, IndexEntry

__all__ = [
    "CacheContext",
    "CacheIndex",
    "CacheManager",
    "CacheStats",
    "IndexEntry",
    "MemoryIndex",
    "SqliteIndex",
    "derive_key",
    "host_bucket",
    "is_cacheable",
    "normalize_for_key",
    "relative_path",
    "resolve_path",
]
