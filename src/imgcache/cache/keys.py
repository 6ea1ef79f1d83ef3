"""Cache key generation: URL canonicalization and content-addressed file names."""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import TypeGuard
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

IMAGE_TYPES = ("png", "jpeg", "jpg", "gif", "bmp", "tiff", "tif")
DEFAULT_IMAGE_TYPE = "jpg"

_CACHEABLE_SCHEMES = ("http://", "https://")
_UNSAFE_HOST_CHARS = re.compile(r"[^a-z0-9_]", re.IGNORECASE)


def is_cacheable(url: object) -> TypeGuard[str]:
    """True iff ``url`` is a parseable string with an http(s) scheme."""
    if not isinstance(url, str):
        return False
    if not url.lower().startswith(_CACHEABLE_SCHEMES):
        return False
    try:
        urlsplit(url)
    except ValueError:
        return False
    return True


def normalize_for_key(url: str, query_policy: bool | list[str] | None = False) -> str:
    """Drop the query parameters excluded by ``query_policy``.

    The result is the identity used for caching: URLs that differ only in
    excluded parameters normalize to the same string.
    """
    parts = urlsplit(url)
    if isinstance(query_policy, list):
        allowed = set(query_policy)
        query = urlencode([(k, v) for k, v in _query_pairs(parts.query) if k in allowed])
    elif query_policy:
        query = urlencode(_query_pairs(parts.query))
    else:
        query = ""
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def derive_key(canonical_url: str) -> str:
    """Hash a canonical URL into ``<sha1>.<image type>``."""
    parts = urlsplit(canonical_url)
    directory, _, filename = parts.path.rpartition("/")

    pieces = filename.split(".")
    extension = pieces[-1].lower() if len(pieces) > 1 else ""
    image_type = extension if extension in IMAGE_TYPES else DEFAULT_IMAGE_TYPE

    # Values only, ordered by parameter name
    query_values = ",".join(v for _, v in sorted(_query_pairs(parts.query)))
    combined = directory + filename + image_type + query_values
    digest = hashlib.sha1(combined.encode("utf-8")).hexdigest()
    return f"{digest}.{image_type}"


def host_bucket(url: str) -> str:
    """Filesystem-safe directory name for the URL's host."""
    host = urlsplit(url).netloc.rpartition("@")[2]
    safe = _UNSAFE_HOST_CHARS.sub("_", host).lower()
    return f"{safe}_{hashlib.sha1(host.encode('utf-8')).hexdigest()}"


def relative_path(canonical_url: str) -> str:
    """``<host bucket>/<cache key>``, the value stored in the index."""
    return f"{host_bucket(canonical_url)}/{derive_key(canonical_url)}"


def resolve_path(canonical_url: str, cache_root: str | Path) -> Path:
    return Path(cache_root) / host_bucket(canonical_url) / derive_key(canonical_url)


def _query_pairs(query: str) -> list[tuple[str, str]]:
    """Parse a query string; the first occurrence of a repeated name wins."""
    seen: dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        seen.setdefault(key, value)
    return list(seen.items())
