"""Package-level default configuration values."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

# Default cache settings
DEFAULT_TTL_SECONDS = 3600 * 24 * 14  # 2 weeks
DEFAULT_QUERY_POLICY = False
DEFAULT_TLS_LENIENT = True
DEFAULT_CACHE_SUBDIR = Path("imgcache") / "images"
DEFAULT_INDEX_PATH = Path.home() / ".imgcache" / "index.db"
DEFAULT_INDEX_BACKEND = "sqlite"

# Default caller-side settings
DEFAULT_MAX_WORKERS = 5
DEFAULT_RETRIES = 0
DEFAULT_TIMEOUT_SECONDS = None

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def platform_cache_dir() -> Path:
    """Return the per-user cache directory ($XDG_CACHE_HOME or ~/.cache)."""
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".cache"


def default_cache_root() -> Path:
    return platform_cache_dir() / DEFAULT_CACHE_SUBDIR


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "cache_root": str(default_cache_root()),
        "index_path": str(DEFAULT_INDEX_PATH),
        "index_backend": DEFAULT_INDEX_BACKEND,
        "ttl_seconds": DEFAULT_TTL_SECONDS,
        "query_policy": DEFAULT_QUERY_POLICY,
        "headers": {},
        "tls_lenient": DEFAULT_TLS_LENIENT,
        "max_workers": DEFAULT_MAX_WORKERS,
        "retries": DEFAULT_RETRIES,
        "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
        "log_level": DEFAULT_LOG_LEVEL,
    }
