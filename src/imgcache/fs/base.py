"""Filesystem capability consumed by File Operations."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from imgcache.types import DownloadResult, FileStat


@runtime_checkable
class FileSystem(Protocol):
    """Raw host primitives. Implementations raise ``OSError`` subclasses.

    ``mkdir`` creates missing parents and raises ``FileExistsError`` when the
    directory is already there. ``unlink`` removes a file or a whole tree.
    ``close`` releases network resources held between downloads.
    """

    async def exists(self, path: Path) -> bool: ...

    async def mkdir(self, path: Path) -> None: ...

    async def stat(self, path: Path) -> FileStat: ...

    async def readdir(self, path: Path) -> list[str]: ...

    async def unlink(self, path: Path) -> None: ...

    async def copy(self, source: Path, destination: Path) -> None: ...

    async def move(self, source: Path, destination: Path) -> None: ...

    async def download(
        self,
        url: str,
        to_file: Path,
        headers: dict[str, str],
        verify: bool = True,
    ) -> DownloadResult: ...

    async def close(self) -> None: ...
