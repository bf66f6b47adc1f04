# src/cache/json_store.py — v2
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores cache entries as individual JSON files under CACHE_ROOT. Writes go
to a temporary file that is atomically renamed over the target, so a
concurrent reader sees either the old or the new entry, never a torn one.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from logsage.cache.base_cache_store import BaseCacheStore, CacheError
from logsage.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    backend_name = "json"

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {self._root}: {e}") from e

    @property
    def location(self) -> str:
        return str(self._root)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        return await asyncio.to_thread(self._read, self._entry_path(key))

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry."""
        await asyncio.to_thread(self._write, self._entry_path(key), entry.model_dump_json(indent=2))

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        await asyncio.to_thread(self._unlink, self._entry_path(key))

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        return await asyncio.to_thread(self._read_all)

    async def clear(self, older_than: datetime | None = None) -> int:
        """Remove all entries, or only those created before ``older_than``."""
        return await asyncio.to_thread(self._clear, older_than)

    # --- Blocking helpers ---

    def _entry_path(self, key: str) -> Path:
        """Readable prefix plus a digest, so distinct keys never collide."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        prefix = _UNSAFE_RE.sub("_", key.rsplit(":", 1)[0])[:64]
        return self._root / f"{prefix}-{digest}.json"

    def _read(self, path: Path) -> CacheEntry | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Cannot read cache file {path}: {e}") from e
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Failed to read cache entry %s: %s", path.name, e)
            return None

    def _write(self, path: Path, payload: str) -> None:
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheError(f"Cannot write cache file {path}: {e}") from e

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheError(f"Cannot delete cache file {path}: {e}") from e
        return True

    def _read_all(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for path in sorted(self._root.glob("*.json")):
            if path.name.startswith(".tmp-"):
                continue
            entry = self._read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    def _clear(self, older_than: datetime | None) -> int:
        if older_than is not None and older_than.tzinfo is None:
            older_than = older_than.replace(tzinfo=timezone.utc)
        removed = 0
        for path in sorted(self._root.glob("*.json")):
            if path.name.startswith(".tmp-"):
                continue
            if older_than is not None:
                entry = self._read(path)
                if entry is None or entry.created_at >= older_than:
                    continue
            if self._unlink(path):
                removed += 1
        return removed
