"""File operations: directory setup, download-then-move, copy, delete, stat."""

from __future__ import annotations

import errno
import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

from imgcache.errors.exceptions import CacheNotFoundError, DownloadError, FilesystemError
from imgcache.fs.base import FileSystem
from imgcache.fs.local import LocalFileSystem
from imgcache.types import CacheInfo, FileStat

logger = logging.getLogger(__name__)

T = TypeVar("T")

TMP_SUFFIX = ".tmp"
_NOT_MODIFIED = 304


def temp_path_for(destination: Path) -> Path:
    return destination.with_name(destination.name + TMP_SUFFIX)


class FileOperations:
    """Cache-level file handling on top of a raw ``FileSystem``.

    Every ``OSError`` coming out of the capability is re-raised as
    ``FilesystemError``. New files are always written to a ``.tmp`` sibling
    and renamed into place, so a reader never sees a half-written file.
    """

    def __init__(self, file_system: FileSystem | None = None) -> None:
        self._fs = file_system or LocalFileSystem()

    @property
    def file_system(self) -> FileSystem:
        return self._fs

    async def exists(self, path: Path) -> bool:
        return await self._guard("exists", path, self._fs.exists(Path(path)))

    async def ensure_directory(self, path: Path, *, directory: bool = False) -> Path:
        """Create ``path`` (when ``directory``) or its parent chain.

        A directory that already exists, including one created concurrently
        by another caller, counts as success.
        """
        target = Path(path) if directory else Path(path).parent
        try:
            if await self._fs.exists(target):
                return target
            await self._fs.mkdir(target)
        except FileExistsError:
            logger.debug("Directory %s appeared concurrently", target)
        except OSError as exc:
            if exc.errno == errno.EEXIST:
                return target
            raise FilesystemError(
                f"Cannot create directory {target}: {exc}",
                path=str(target),
                operation="mkdir",
                original=exc,
            ) from exc
        return target

    async def download(
        self,
        source_url: str,
        destination: Path,
        headers: dict[str, str] | None = None,
        verify: bool = True,
    ) -> Path:
        """Download ``source_url`` and promote it to ``destination``.

        304 Not Modified is success without writing anything, provided
        ``destination`` is already there. Any other non-2xx status, or a
        size mismatch, raises ``DownloadError`` and leaves ``destination``
        untouched.
        """
        destination = Path(destination)
        tmp = temp_path_for(destination)
        await self.ensure_directory(destination)
        # A leftover from an interrupted attempt must not block this one
        await self.delete(tmp)

        result = await self._guard(
            "download", tmp, self._fs.download(source_url, tmp, headers or {}, verify=verify)
        )

        if result.status_code == _NOT_MODIFIED:
            if not await self.exists(destination):
                raise DownloadError(
                    "Server answered 304 Not Modified but no cached copy exists",
                    url=source_url,
                    http_status=result.status_code,
                )
            logger.debug("%s not modified, keeping %s", source_url, destination)
            return destination

        if not 200 <= result.status_code < 300:
            await self._discard(tmp)
            raise DownloadError(
                f"Cannot download image, status code: {result.status_code}",
                url=source_url,
                http_status=result.status_code,
            )

        on_disk = (await self._guard("stat", tmp, self._fs.stat(tmp))).size
        expected = result.content_length if result.content_length is not None else result.bytes_written
        if on_disk != expected or on_disk != result.bytes_written:
            await self._discard(tmp)
            raise DownloadError(
                "Download failed, the image could not be fully downloaded",
                url=source_url,
                http_status=result.status_code,
                expected_size=expected,
                actual_size=on_disk,
            )

        await self._guard("move", destination, self._fs.move(tmp, destination))
        logger.debug("Downloaded %s (%d bytes) to %s", source_url, on_disk, destination)
        return destination

    async def copy(self, source: Path, destination: Path) -> Path:
        """Copy ``source`` into ``destination`` through a temporary sibling."""
        destination = Path(destination)
        tmp = temp_path_for(destination)
        await self.ensure_directory(destination)
        await self._guard("copy", source, self._fs.copy(Path(source), tmp))
        await self._guard("move", destination, self._fs.move(tmp, destination))
        return destination

    async def close(self) -> None:
        await self._fs.close()

    async def delete(self, path: Path) -> None:
        """Remove a regular file. Missing paths and directories are ignored."""
        path = Path(path)
        if not await self.exists(path):
            return
        info = await self._guard("stat", path, self._fs.stat(path))
        if info.is_file:
            await self._guard("unlink", path, self._fs.unlink(path))

    async def clean_directory(self, path: Path) -> Path:
        """Remove ``path`` recursively if present, then recreate it empty."""
        path = Path(path)
        if await self.exists(path):
            info = await self._guard("stat", path, self._fs.stat(path))
            if not info.is_directory:
                raise FilesystemError(
                    f"Not a directory: {path}", path=str(path), operation="clean"
                )
            await self._guard("unlink", path, self._fs.unlink(path))
        return await self.ensure_directory(path, directory=True)

    async def stat_tree(self, path: Path) -> CacheInfo:
        """Flatten the tree under ``path`` and sum the sizes of its files."""
        path = Path(path)
        if not await self.exists(path):
            raise CacheNotFoundError(path=str(path))
        root = await self._guard("stat", path, self._fs.stat(path))
        if not root.is_directory:
            raise CacheNotFoundError(f"Not a directory: {path}", path=str(path))

        entries: list[FileStat] = []
        await self._walk(path, entries)
        total = sum(e.size for e in entries if e.is_file)
        return CacheInfo(entries=entries, total_size=total)

    async def _walk(self, directory: Path, entries: list[FileStat]) -> None:
        names = await self._guard("readdir", directory, self._fs.readdir(directory))
        for name in names:
            child = directory / name
            info = await self._guard("stat", child, self._fs.stat(child))
            entries.append(info)
            if info.is_directory:
                await self._walk(child, entries)

    async def _discard(self, tmp: Path) -> None:
        try:
            await self.delete(tmp)
        except FilesystemError as exc:
            logger.warning("Could not remove partial download %s: %s", tmp, exc)

    @staticmethod
    async def _guard(operation: str, path: Path, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except OSError as exc:
            raise FilesystemError(
                f"{operation} failed for {path}: {exc}",
                path=str(path),
                operation=operation,
                original=exc,
            ) from exc
