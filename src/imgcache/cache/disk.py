"""Persistent TTL index backed by SQLite."""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from imgcache.cache.stats import IndexEntry
from imgcache.config.defaults import DEFAULT_INDEX_PATH

logger = logging.getLogger(__name__)


class SqliteIndex:
    """SQLite-backed index that survives restarts.

    Expired rows are deleted lazily on ``get`` and in bulk on every ``set``.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = Path(db_path) if db_path else DEFAULT_INDEX_PATH
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row
        self._create_table()

    def get(self, key: str) -> str | None:
        entry = self.entry(key)
        if entry is None:
            return None
        if entry.is_expired:
            logger.debug("Index entry for %s expired", key)
            self._conn.execute("DELETE FROM entries WHERE key = ?", (key,))
            self._conn.commit()
            return None
        self._conn.execute(
            "UPDATE entries SET last_accessed = ? WHERE key = ?",
            (time.time(), key),
        )
        self._conn.commit()
        return entry.relative_path

    def set(self, key: str, value: str, ttl_seconds: float) -> None:
        self.purge_expired()
        now = time.time()
        self._conn.execute(
            """INSERT OR REPLACE INTO entries
               (key, relative_path, created_at, ttl_seconds, last_accessed)
               VALUES (?, ?, ?, ?, ?)""",
            (key, value, now, ttl_seconds, now),
        )
        self._conn.commit()

    def remove(self, key: str) -> None:
        self._conn.execute("DELETE FROM entries WHERE key = ?", (key,))
        self._conn.commit()

    def flush(self) -> None:
        self._conn.execute("DELETE FROM entries")
        self._conn.commit()

    def entry(self, key: str) -> IndexEntry | None:
        row = self._conn.execute(
            "SELECT * FROM entries WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return IndexEntry(
            key=row["key"],
            relative_path=row["relative_path"],
            created_at=row["created_at"],
            ttl_seconds=row["ttl_seconds"],
        )

    def purge_expired(self) -> int:
        cursor = self._conn.execute(
            "DELETE FROM entries WHERE created_at + ttl_seconds < ?",
            (time.time(),),
        )
        self._conn.commit()
        return cursor.rowcount

    @property
    def entry_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM entries").fetchone()
        return row[0]

    def close(self) -> None:
        self._conn.close()

    def _create_table(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                key TEXT PRIMARY KEY,
                relative_path TEXT NOT NULL,
                created_at REAL,
                ttl_seconds REAL,
                last_accessed REAL
            )
        """)
        self._conn.commit()
