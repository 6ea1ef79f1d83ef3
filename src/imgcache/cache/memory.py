"""In-process TTL index with optional LRU bound."""

from __future__ import annotations

from collections import OrderedDict

from imgcache.cache.stats import IndexEntry


class MemoryIndex:
    """OrderedDict-backed index; entries expire lazily on lookup."""

    def __init__(self, max_entries: int | None = None) -> None:
        self._store: OrderedDict[str, IndexEntry] = OrderedDict()
        self._max_entries = max_entries

    def get(self, key: str) -> str | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            self._store.pop(key, None)
            return None
        # Move to end (most recently used)
        self._store.move_to_end(key)
        return entry.relative_path

    def set(self, key: str, value: str, ttl_seconds: float) -> None:
        self._store.pop(key, None)
        self._store[key] = IndexEntry(key=key, relative_path=value, ttl_seconds=ttl_seconds)
        if self._max_entries is not None:
            while len(self._store) > self._max_entries:
                self._store.popitem(last=False)

    def remove(self, key: str) -> None:
        self._store.pop(key, None)

    def flush(self) -> None:
        self._store.clear()

    def entry(self, key: str) -> IndexEntry | None:
        """Raw entry lookup, expired or not, without touching LRU order."""
        return self._store.get(key)

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns count removed."""
        expired = [key for key, entry in self._store.items() if entry.is_expired]
        for key in expired:
            del self._store[key]
        return len(expired)

    def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._store)
