# src/cache/response_cache.py — v1
"""Analysis cache in front of a BaseCacheStore.

The cache is an optimization only: every store call is bounded by an I/O
timeout, and any store failure is logged and reported as a miss (get) or
as False (set). Nothing here raises into the orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from logsage.cache.base_cache_store import BaseCacheStore, CacheError
from logsage.cache.fingerprint import cache_key
from logsage.cache.models import CacheEntry, CacheStats
from logsage.core.models import AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_IO_TIMEOUT_S = 2.0


class ResponseCache:
    """get/set of AnalysisResult keyed by (provider, model, fingerprint)."""

    def __init__(self, store: BaseCacheStore, io_timeout_s: float = DEFAULT_IO_TIMEOUT_S) -> None:
        self._store = store
        self._io_timeout_s = io_timeout_s

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    async def get(self, provider: str, model: str, fingerprint: str) -> AnalysisResult | None:
        """Cached analysis marked ``origin="cached"``, or None on miss/failure."""
        key = cache_key(provider, model, fingerprint)
        try:
            entry = await asyncio.wait_for(self._store.get(key), timeout=self._io_timeout_s)
        except (CacheError, OSError, asyncio.TimeoutError) as e:
            logger.warning("Cache read failed for %s, treating as miss: %s", key, _describe(e))
            return None
        if entry is None:
            return None
        return entry.result.model_copy(update={"origin": "cached"})

    async def set(
        self, provider: str, model: str, fingerprint: str, result: AnalysisResult,
    ) -> bool:
        """Store ``result``. Returns False when the write failed."""
        entry = CacheEntry(
            provider=provider,
            model=model,
            fingerprint=fingerprint,
            result=result.model_copy(update={"origin": "fresh"}),
        )
        try:
            await asyncio.wait_for(self._store.put(entry.key, entry), timeout=self._io_timeout_s)
        except (CacheError, OSError, asyncio.TimeoutError) as e:
            logger.warning("Cache write failed for %s: %s", entry.key, _describe(e))
            return False
        return True

    async def stats(self) -> CacheStats:
        """Store statistics. Raises CacheError (operator command)."""
        return await self._store.stats()

    async def clear(self, older_than_days: float | None = None) -> int:
        """Remove entries, optionally only those older than N days.

        Raises:
            CacheError: Store failure (operator command, not swallowed).
        """
        cutoff: datetime | None = None
        if older_than_days is not None:
            cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        removed = await self._store.clear(older_than=cutoff)
        logger.info("Removed %d cache entries", removed)
        return removed


def _describe(error: BaseException) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "I/O timeout"
    return str(error) or type(error).__name__
