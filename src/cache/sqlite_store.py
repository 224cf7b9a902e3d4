# src/cache/sqlite_store.py — v1
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Keeps the confirmation
timestamp in its own indexed column so eviction order is cheap to read.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from sitesense.cache.base_cache_store import BaseCacheStore, CacheCorruptionError
from sitesense.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS fingerprint_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    site_id TEXT,
    last_confirmed_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_last_confirmed ON fingerprint_entries(last_confirmed_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        cursor = self._conn.execute(
            "SELECT data FROM fingerprint_entries WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return CacheEntry(**json.loads(row[0]))
        except (ValueError, TypeError) as e:
            raise CacheCorruptionError(key, str(e)) from e

    async def put(self, entry: CacheEntry) -> None:
        """Store a cache entry (upsert)."""
        self._conn.execute(
            """INSERT OR REPLACE INTO fingerprint_entries
               (key, data, site_id, last_confirmed_at)
               VALUES (?, ?, ?, ?)""",
            (
                entry.key,
                entry.model_dump_json(),
                entry.site_id,
                entry.last_confirmed_at.isoformat(),
            ),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._conn.execute("DELETE FROM fingerprint_entries WHERE key = ?", (key,))
        self._conn.commit()

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries, least recently confirmed first."""
        cursor = self._conn.execute(
            "SELECT key, data FROM fingerprint_entries ORDER BY last_confirmed_at"
        )
        entries: list[CacheEntry] = []
        for key, data in cursor.fetchall():
            try:
                entries.append(CacheEntry(**json.loads(data)))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping unreadable cache row %s: %s", key, e)
                continue
        return entries

    async def clear(self) -> None:
        """Remove all rows."""
        self._conn.execute("DELETE FROM fingerprint_entries")
        self._conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
