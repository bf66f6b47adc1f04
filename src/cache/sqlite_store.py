# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (default CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Blocking calls run in a
worker thread via asyncio.to_thread; one connection is shared behind a
lock, and WAL mode keeps readers from blocking on the writer.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from logsage.cache.base_cache_store import BaseCacheStore, CacheError
from logsage.cache.models import CacheEntry

logger = logging.getLogger(__name__)

DB_FILENAME = "cache.db"


def _sortable(ts: datetime) -> str:
    """UTC timestamp as a fixed-width string, so SQL comparison is chronological."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    fingerprint TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_created_at ON cache_entries(created_at);
CREATE INDEX IF NOT EXISTS idx_provider_model ON cache_entries(provider, model);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store."""

    backend_name = "sqlite"

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._lock = threading.Lock()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (sqlite3.Error, OSError) as e:
            raise CacheError(f"Cannot open cache database {self._db_path}: {e}") from e

    @property
    def location(self) -> str:
        return str(self._db_path)

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        def locked() -> Any:
            with self._lock:
                try:
                    return fn(*args)
                except sqlite3.Error as e:
                    raise CacheError(f"SQLite cache error: {e}") from e

        return await asyncio.to_thread(locked)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        row = await self._run(self._fetch_one, key)
        if row is None:
            return None
        try:
            return CacheEntry.model_validate_json(row[0])
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry (upsert)."""
        await self._run(self._upsert, key, entry)

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        await self._run(self._execute, "DELETE FROM cache_entries WHERE key = ?", (key,))

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        rows = await self._run(self._fetch_all)
        entries: list[CacheEntry] = []
        for key, data in rows:
            try:
                entries.append(CacheEntry.model_validate_json(data))
            except ValidationError as e:
                logger.warning("Skipping unreadable cache entry %s: %s", key, e)
        return entries

    async def clear(self, older_than: datetime | None = None) -> int:
        """Remove all entries, or only those created before ``older_than``."""
        if older_than is None:
            return await self._run(self._execute, "DELETE FROM cache_entries", ())
        return await self._run(
            self._execute,
            "DELETE FROM cache_entries WHERE created_at < ?",
            (_sortable(older_than),),
        )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # --- Blocking helpers (worker thread, lock held) ---

    def _fetch_one(self, key: str) -> tuple[str] | None:
        cursor = self._conn.execute("SELECT data FROM cache_entries WHERE key = ?", (key,))
        return cursor.fetchone()

    def _fetch_all(self) -> list[tuple[str, str]]:
        cursor = self._conn.execute("SELECT key, data FROM cache_entries ORDER BY created_at")
        return cursor.fetchall()

    def _upsert(self, key: str, entry: CacheEntry) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO cache_entries
               (key, provider, model, fingerprint, data, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                key,
                entry.provider,
                entry.model,
                entry.fingerprint,
                entry.model_dump_json(),
                _sortable(entry.created_at),
            ),
        )
        self._conn.commit()

    def _execute(self, sql: str, params: tuple[Any, ...]) -> int:
        cursor = self._conn.execute(sql, params)
        self._conn.commit()
        return cursor.rowcount
