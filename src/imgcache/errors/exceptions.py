"""Custom exception hierarchy for imgcache."""

from __future__ import annotations

from typing import Any


class ImgCacheError(Exception):
    """Base exception for all imgcache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class NotCacheableError(ImgCacheError):
    """The input is not an http(s) URL string. Never retried."""

    def __init__(self, message: str = "", url: object = None) -> None:
        super().__init__(message or f"Url is not cacheable: {url!r}")
        self.url = url


class DownloadError(ImgCacheError):
    """A download did not produce a complete file.

    Examples: non-2xx/304 status, byte count mismatch, connection failure.
    The final destination is never touched when this is raised.
    """

    def __init__(
        self,
        message: str = "",
        url: str | None = None,
        http_status: int | None = None,
        expected_size: int | None = None,
        actual_size: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.http_status = http_status
        self.expected_size = expected_size
        self.actual_size = actual_size
        self.original = original


class FilesystemError(ImgCacheError):
    """Directory creation, copy, move or delete failed."""

    def __init__(
        self,
        message: str = "",
        path: str | None = None,
        operation: str = "",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.operation = operation
        self.original = original


class CacheNotFoundError(FilesystemError):
    """An operation that expects an existing directory got a missing path."""

    def __init__(self, message: str = "", path: str | None = None) -> None:
        super().__init__(message or f"Directory does not exist: {path}", path=path, operation="stat")


class InvalidArgumentError(ImgCacheError, ValueError):
    """A helper was called with an argument of the wrong type."""

    def __init__(self, message: str = "", argument: str = "") -> None:
        super().__init__(message or f"{argument} argument must be a string")
        self.argument = argument
