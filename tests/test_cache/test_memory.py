"""Tests for the in-memory TTL index."""

import time

from imgcache.cache.index import CacheIndex
from imgcache.cache.memory import MemoryIndex


class TestMemoryIndex:
    def test_satisfies_protocol(self):
        assert isinstance(MemoryIndex(), CacheIndex)

    def test_get_set(self):
        index = MemoryIndex()
        index.set("https://h.com/a.png", "bucket/key.png", 60)
        assert index.get("https://h.com/a.png") == "bucket/key.png"

    def test_get_miss(self):
        assert MemoryIndex().get("nonexistent") is None

    def test_expired_entry_returns_none(self):
        index = MemoryIndex()
        index.set("k1", "v1", 60)
        index.entry("k1").created_at = time.time() - 100
        assert index.get("k1") is None
        assert len(index) == 0

    def test_overwrite_resets_value(self):
        index = MemoryIndex()
        index.set("k1", "first", 60)
        index.set("k1", "second", 60)
        assert index.get("k1") == "second"
        assert len(index) == 1

    def test_remove(self):
        index = MemoryIndex()
        index.set("k1", "v1", 60)
        index.remove("k1")
        index.remove("k1")
        assert index.get("k1") is None

    def test_flush(self):
        index = MemoryIndex()
        index.set("k1", "v1", 60)
        index.set("k2", "v2", 60)
        index.flush()
        assert len(index) == 0

    def test_lru_bound(self):
        index = MemoryIndex(max_entries=2)
        index.set("k1", "v1", 60)
        index.set("k2", "v2", 60)
        # Touch k1 so k2 becomes least recently used
        index.get("k1")
        index.set("k3", "v3", 60)
        assert index.get("k1") == "v1"
        assert index.get("k2") is None
        assert index.get("k3") == "v3"

    def test_purge_expired(self):
        index = MemoryIndex()
        index.set("old", "v", 60)
        index.set("new", "v", 60)
        index.entry("old").created_at = time.time() - 100
        assert index.purge_expired() == 1
        assert len(index) == 1
