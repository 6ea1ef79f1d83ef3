"""Interface of the TTL key-value store that tracks canonical URL → relative path."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheIndex(Protocol):
    """Atomic get/set/remove/flush with per-entry expiry.

    An expired entry behaves exactly like a missing one.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: float) -> None: ...

    def remove(self, key: str) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...
