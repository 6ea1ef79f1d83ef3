"""Index entry and engine statistics models."""

from __future__ import annotations

import time

from pydantic import BaseModel, Field

from imgcache.config.defaults import DEFAULT_TTL_SECONDS


class IndexEntry(BaseModel):
    """Canonical URL → relative cache path, with expiry."""

    key: str
    relative_path: str
    created_at: float = Field(default_factory=time.time)
    ttl_seconds: float = DEFAULT_TTL_SECONDS

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_seconds

    @property
    def is_expired(self) -> bool:
        return time.time() > self.expires_at


class CacheStats(BaseModel):
    """Lookup counters for one CacheManager."""

    hits: int = 0
    misses: int = 0
    stale: int = 0
    populated: int = 0
    failures: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses + self.stale
        return self.hits / total if total > 0 else 0.0
