"""Tests for shared models."""

from pathlib import Path

from imgcache.types import CacheInfo, CacheOptions, FileStat, PrefetchResult


class TestCacheOptions:
    def test_defaults(self):
        opts = CacheOptions()
        assert opts.ttl_seconds == 1_209_600
        assert opts.query_policy is False
        assert opts.tls_lenient is True
        assert opts.headers == {}

    def test_merge_none_returns_copy(self):
        opts = CacheOptions(ttl_seconds=10)
        merged = opts.merge(None)
        assert merged == opts
        assert merged is not opts

    def test_merge_only_explicit_fields(self):
        base = CacheOptions(ttl_seconds=10, cache_root=Path("/base"))
        merged = base.merge({"query_policy": ["w"]})
        assert merged.query_policy == ["w"]
        assert merged.ttl_seconds == 10
        assert merged.cache_root == Path("/base")

    def test_merge_accepts_options_instance(self):
        base = CacheOptions(headers={"A": "1"})
        merged = base.merge(CacheOptions(tls_lenient=False))
        assert merged.tls_lenient is False
        assert merged.headers == {"A": "1"}

    def test_merge_does_not_share_headers(self):
        base = CacheOptions(headers={"A": "1"})
        merged = base.merge({"ttl_seconds": 5})
        merged.headers["B"] = "2"
        assert base.headers == {"A": "1"}


class TestCacheInfo:
    def test_files_excludes_directories(self):
        info = CacheInfo(
            entries=[
                FileStat(name="h", path="/r/h", is_directory=True),
                FileStat(name="a.jpg", path="/r/h/a.jpg", size=3, is_file=True),
            ],
            total_size=3,
        )
        assert [f.name for f in info.files] == ["a.jpg"]


class TestPrefetchResult:
    def test_ok(self):
        assert PrefetchResult(url="u", path="/p").ok
        assert not PrefetchResult(url="u", error="boom").ok
