# src/cache/base_cache_store.py — v3
"""Abstract cache store interface.

Stores raise CacheError for I/O failures. A stored value that cannot be
deserialized is logged and reported as absent. ResponseCache decides what
a failure means for the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from logsage.cache.models import CacheEntry, CacheStats


class CacheError(Exception):
    """Storage-level failure of a cache backend."""


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    backend_name: str = "base"

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by ``provider:model:fingerprint`` key."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store cache entry (last write wins)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""

    @abstractmethod
    async def clear(self, older_than: datetime | None = None) -> int:
        """Remove all entries, or only those created before ``older_than``.

        Returns:
            Number of removed entries.
        """

    @property
    def location(self) -> str:
        return ""

    async def stats(self) -> CacheStats:
        return CacheStats.from_entries(self.backend_name, self.location, await self.list_entries())

    def close(self) -> None:
        """Release backend resources."""

    async def aclose(self) -> None:
        """Async close, for backends whose resources are released on the loop."""
        self.close()
