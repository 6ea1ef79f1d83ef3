"""Tests for the ImageCache entry point."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from imgcache.cache.keys import relative_path
from imgcache.cache.memory import MemoryIndex
from imgcache.core import ImageCache, file_uri
from imgcache.errors.exceptions import DownloadError, NotCacheableError
from imgcache.fs.local import LocalFileSystem

URL = "https://img.example.com/a/photo.png"


def _make_cache(tmp_path, handler, **config):
    settings = {
        "cache_root": str(tmp_path / "images"),
        "index_backend": "memory",
        "retries": 0,
    }
    settings.update(config)
    return ImageCache(
        settings,
        file_system=LocalFileSystem(transport=httpx.MockTransport(handler)),
    )


class FlakyHandler:
    """Fails the first ``failures`` requests with 503, then serves ``body``."""

    def __init__(self, body: bytes, failures: int = 1):
        self.body = body
        self.failures = failures
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.calls <= self.failures:
            return httpx.Response(503)
        return httpx.Response(200, content=self.body)


class TestConstruction:
    def test_memory_backend(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        assert isinstance(cache.manager.index, MemoryIndex)
        assert cache.manager.options.cache_root == tmp_path / "images"

    async def test_sqlite_backend(self, tmp_path, http_handler):
        cache = _make_cache(
            tmp_path, http_handler, index_backend="sqlite", index_path=str(tmp_path / "index.db")
        )
        try:
            assert (tmp_path / "index.db").exists()
        finally:
            await cache.aclose()

    def test_explicit_index_wins(self, tmp_path, http_handler):
        index = MemoryIndex()
        cache = ImageCache({"cache_root": str(tmp_path)}, index=index)
        assert cache.manager.index is index

    def test_config_is_copied(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        cache.config["retries"] = 9
        assert cache.config["retries"] == 0


class TestFetch:
    async def test_downloads_once(self, tmp_path, http_handler, sample_image_bytes):
        cache = _make_cache(tmp_path, http_handler)
        first = await cache.fetch(URL)
        second = await cache.fetch(URL)

        assert first == second == str(tmp_path / "images" / relative_path(URL))
        assert Path(first).read_bytes() == sample_image_bytes
        assert http_handler.call_count == 1

    async def test_externally_deleted_file_is_refetched(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        path = await cache.fetch(URL)
        Path(path).unlink()

        assert await cache.fetch(URL) == path
        assert Path(path).exists()
        assert http_handler.call_count == 2

    async def test_call_site_cache_root(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        first = await cache.fetch(URL)
        other = await cache.fetch(URL, options={"cache_root": tmp_path / "b"})

        assert other == str(tmp_path / "b" / relative_path(URL))
        assert Path(first).exists() and Path(other).exists()
        assert http_handler.call_count == 2

    async def test_resolve_headers_are_sent(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)

        async def resolve_headers():
            return {"Authorization": "Bearer t"}

        await cache.fetch(URL, options={"headers": {"X-App": "1"}}, resolve_headers=resolve_headers)
        request = http_handler.requests[0]
        assert request.headers["authorization"] == "Bearer t"
        assert request.headers["x-app"] == "1"

    async def test_no_retry_by_default(self, tmp_path):
        handler = FlakyHandler(b"img", failures=1)
        cache = _make_cache(tmp_path, handler)
        with pytest.raises(DownloadError):
            await cache.fetch(URL)
        assert handler.calls == 1

    async def test_retries_download_errors(self, tmp_path):
        handler = FlakyHandler(b"img", failures=1)
        cache = _make_cache(tmp_path, handler, retries=2)
        path = await cache.fetch(URL)
        assert Path(path).read_bytes() == b"img"
        assert handler.calls == 2

    async def test_not_cacheable_is_not_retried(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler, retries=3)
        with pytest.raises(NotCacheableError):
            await cache.fetch("ftp://h.com/a.png")
        assert http_handler.call_count == 0

    async def test_timeout(self, tmp_path):
        async def slow(request):
            await asyncio.sleep(0.3)
            return httpx.Response(200, content=b"late")

        cache = _make_cache(tmp_path, slow, timeout_seconds=0.05)
        with pytest.raises(TimeoutError):
            await cache.fetch(URL)
        # The shared download keeps going after the caller gives up.
        await asyncio.sleep(0.5)
        assert (tmp_path / "images" / relative_path(URL)).read_bytes() == b"late"


class TestFetchUri:
    async def test_returns_file_uri(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        uri = await cache.fetch_uri(URL)
        assert uri == file_uri(tmp_path / "images" / relative_path(URL))
        assert uri.startswith("file://")

    async def test_uncacheable_returns_fallback(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        assert await cache.fetch_uri(None, fallback="placeholder.png") == "placeholder.png"
        assert await cache.fetch_uri("data:image/png;base64,AA") is None
        assert http_handler.call_count == 0

    async def test_failure_returns_fallback(self, tmp_path, http_handler):
        http_handler.status_code = 404
        cache = _make_cache(tmp_path, http_handler)
        assert await cache.fetch_uri(URL, fallback="missing.png") == "missing.png"


class TestPrefetch:
    async def test_mixed_results(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler, max_workers=2)
        urls = [
            "https://img.example.com/1.png",
            "https://img.example.com/2.png",
            "not a url",
        ]
        results = await cache.prefetch(urls)

        assert [r.url for r in results] == urls
        assert results[0].ok and results[1].ok
        assert not results[2].ok
        assert "not cacheable" in results[2].error
        assert http_handler.call_count == 2


class TestManagement:
    async def test_seed_then_fetch_skips_network(self, tmp_path, http_handler):
        source = tmp_path / "local.png"
        source.write_bytes(b"seeded")
        cache = _make_cache(tmp_path, http_handler)

        seeded = await cache.seed(URL, source)
        fetched = await cache.fetch(URL)

        assert seeded == fetched
        assert Path(fetched).read_bytes() == b"seeded"
        assert http_handler.call_count == 0

    async def test_delete_forgets_overlay(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        path = await cache.fetch(URL)
        await cache.delete(URL)

        assert not Path(path).exists()
        assert cache.context.get_cached(URL) is None
        await cache.fetch(URL)
        assert http_handler.call_count == 2

    async def test_clear_and_info(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        await cache.fetch("https://a.example.com/1.png")
        await cache.fetch("https://b.example.com/2.png")

        info = await cache.info()
        assert len(info.files) == 2
        assert info.total_size == sum(f.size for f in info.files)

        await cache.clear()
        info = await cache.info()
        assert info.entries == []
        assert len(cache.context) == 0

    async def test_stats(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        await cache.fetch(URL)
        cache.context.forget(URL)
        await cache.fetch(URL)
        stats = cache.stats()
        assert stats.misses == 1
        assert stats.hits == 1
        assert stats.populated == 1


class TestClose:
    async def test_async_context_manager_closes(self, tmp_path, http_handler):
        cache = _make_cache(tmp_path, http_handler)
        cache.manager.file_ops.file_system.close = AsyncMock()
        async with cache as entered:
            assert entered is cache
        cache.manager.file_ops.file_system.close.assert_awaited_once()
