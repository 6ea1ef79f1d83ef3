"""Concurrency: download coalescing and bounded batch prefetch."""

from imgcache.concurrency.dedup import DownloadDeduplicator
from imgcache.concurrency.pool import ConcurrencyPool

__all__ = ["ConcurrencyPool", "DownloadDeduplicator"]
