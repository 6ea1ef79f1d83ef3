import base64

import httpx
import pytest

from imgcache.cache.manager import CacheManager
from imgcache.cache.memory import MemoryIndex
from imgcache.fs.local import LocalFileSystem
from imgcache.fs.operations import FileOperations


@pytest.fixture
def sample_image_bytes():
    """Minimal valid PNG for testing (1x1 white pixel)."""
    return base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
        "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
    )


class RecordingHandler:
    """httpx.MockTransport handler that serves fixed bodies and counts calls."""

    def __init__(self, body: bytes = b"", status_code: int = 200, headers=None):
        self.body = body
        self.status_code = status_code
        self.headers = headers
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.body, headers=self.headers)

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def http_handler(sample_image_bytes):
    return RecordingHandler(body=sample_image_bytes)


@pytest.fixture
def file_ops(http_handler):
    return FileOperations(LocalFileSystem(transport=httpx.MockTransport(http_handler)))


@pytest.fixture
def cache_root(tmp_path):
    return tmp_path / "images"


@pytest.fixture
async def manager(file_ops, cache_root):
    mgr = CacheManager(
        options={"cache_root": cache_root},
        index=MemoryIndex(),
        file_ops=file_ops,
    )
    yield mgr
    await mgr.aclose()
