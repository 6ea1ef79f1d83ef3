"""Shared Pydantic models for imgcache."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from imgcache.config.defaults import (
    DEFAULT_QUERY_POLICY,
    DEFAULT_TLS_LENIENT,
    DEFAULT_TTL_SECONDS,
    default_cache_root,
)

# ── Enums ──


class IndexBackend(StrEnum):
    SQLITE = "sqlite"
    MEMORY = "memory"


# ── Config models ──


class CacheOptions(BaseModel):
    """Per-instance or per-call cache configuration.

    ``query_policy`` decides which query parameters take part in the cache
    identity: False drops them all, True keeps them all, a list keeps only
    the named ones.
    """

    headers: dict[str, str] = Field(default_factory=dict)
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    query_policy: bool | list[str] = DEFAULT_QUERY_POLICY
    cache_root: Path = Field(default_factory=default_cache_root)
    tls_lenient: bool = DEFAULT_TLS_LENIENT

    def merge(self, overrides: CacheOptions | Mapping[str, Any] | None) -> CacheOptions:
        """Return a copy where fields explicitly set on ``overrides`` win."""
        if overrides is None:
            return self.model_copy()
        if not isinstance(overrides, CacheOptions):
            overrides = CacheOptions.model_validate(dict(overrides))
        update = {name: getattr(overrides, name) for name in overrides.model_fields_set}
        return self.model_copy(update=update, deep=True)


# ── Filesystem models ──


class FileStat(BaseModel):
    """Metadata for one file or directory inside the cache tree."""

    name: str
    path: str
    size: int = 0
    mode: int = 0
    ctime: float = 0.0
    mtime: float = 0.0
    is_file: bool = False
    is_directory: bool = False


class DownloadResult(BaseModel):
    """What the transport reports after writing a response body to disk."""

    status_code: int
    bytes_written: int = 0
    content_length: int | None = None


class CacheInfo(BaseModel):
    """Flattened listing of the cache tree plus the summed file size."""

    entries: list[FileStat] = Field(default_factory=list)
    total_size: int = 0

    @property
    def files(self) -> list[FileStat]:
        return [e for e in self.entries if e.is_file]


# ── Result models ──


class PrefetchResult(BaseModel):
    """Outcome of warming the cache for one URL."""

    url: str
    path: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.path is not None
