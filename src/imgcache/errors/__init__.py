"""Error handling: exception hierarchy shared by every layer."""

from imgcache.errors.exceptions import (
    CacheNotFoundError,
    DownloadError,
    FilesystemError,
    ImgCacheError,
    InvalidArgumentError,
    NotCacheableError,
)

__all__ = [
    "ImgCacheError",
    "NotCacheableError",
    "DownloadError",
    "FilesystemError",
    "CacheNotFoundError",
    "InvalidArgumentError",
]
