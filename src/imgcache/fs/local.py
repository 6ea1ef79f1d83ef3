"""Local disk + httpx implementation of the filesystem capability."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import stat
from pathlib import Path

import httpx

from imgcache.errors.exceptions import DownloadError
from imgcache.types import DownloadResult, FileStat

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class LocalFileSystem:
    """Blocking disk calls run in worker threads; HTTP goes through httpx.

    ``transport`` is passed to every ``httpx.AsyncClient`` so tests can plug
    in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        self._transport = transport
        self._timeout = timeout
        self._clients: dict[bool, httpx.AsyncClient] = {}

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def mkdir(self, path: Path) -> None:
        await asyncio.to_thread(Path(path).mkdir, parents=True)

    async def stat(self, path: Path) -> FileStat:
        return await asyncio.to_thread(_stat, Path(path))

    async def readdir(self, path: Path) -> list[str]:
        return await asyncio.to_thread(lambda: sorted(os.listdir(path)))

    async def unlink(self, path: Path) -> None:
        await asyncio.to_thread(_remove, Path(path))

    async def copy(self, source: Path, destination: Path) -> None:
        await asyncio.to_thread(shutil.copyfile, source, destination)

    async def move(self, source: Path, destination: Path) -> None:
        await asyncio.to_thread(os.replace, source, destination)

    async def download(
        self,
        url: str,
        to_file: Path,
        headers: dict[str, str],
        verify: bool = True,
    ) -> DownloadResult:
        """Stream ``url`` into ``to_file``. The body is written only for 2xx."""
        try:
            return await self._stream(url, to_file, headers, verify)
        except httpx.HTTPError as exc:
            raise DownloadError(
                f"Request for {url} failed: {exc}", url=url, original=exc
            ) from exc

    async def close(self) -> None:
        """Close the pooled HTTP clients. Later downloads open new ones."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

    def _client(self, verify: bool) -> httpx.AsyncClient:
        # One pooled client per TLS mode
        client = self._clients.get(verify)
        if client is None:
            client = httpx.AsyncClient(
                transport=self._transport,
                verify=verify,
                timeout=self._timeout,
                follow_redirects=True,
            )
            self._clients[verify] = client
        return client

    async def _stream(
        self, url: str, to_file: Path, headers: dict[str, str], verify: bool
    ) -> DownloadResult:
        client = self._client(verify)
        async with client.stream("GET", url, headers=headers) as response:
            content_length = _declared_length(response)
            if not response.is_success:
                logger.debug("GET %s returned %d", url, response.status_code)
                return DownloadResult(
                    status_code=response.status_code,
                    content_length=content_length,
                )

            written = 0
            f = await asyncio.to_thread(open, to_file, "wb")
            try:
                async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                    await asyncio.to_thread(f.write, chunk)
                    written += len(chunk)
            finally:
                await asyncio.to_thread(f.close)

            return DownloadResult(
                status_code=response.status_code,
                bytes_written=written,
                content_length=content_length,
            )


def _declared_length(response: httpx.Response) -> int | None:
    """Content-Length, when it describes the decoded body we write."""
    encoding = response.headers.get("content-encoding", "identity").lower()
    if encoding != "identity":
        return None
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _stat(path: Path) -> FileStat:
    st = path.stat()
    return FileStat(
        name=path.name,
        path=str(path),
        size=st.st_size,
        mode=st.st_mode,
        ctime=st.st_ctime,
        mtime=st.st_mtime,
        is_file=stat.S_ISREG(st.st_mode),
        is_directory=stat.S_ISDIR(st.st_mode),
    )


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
