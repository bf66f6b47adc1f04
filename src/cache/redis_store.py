# src/cache/redis_store.py — v3
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for shared caches across machines. SET is atomic per key, which
gives last-write-wins semantics for concurrent writers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from logsage.cache.base_cache_store import BaseCacheStore, CacheError
from logsage.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "logsage:cache:"
_INDEX_KEY = "logsage:cache:__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for shared deployments."""

    backend_name = "redis"

    def __init__(self, redis_url: str = "", client: object = None) -> None:
        self._owns_client = client is None
        if client is None:
            try:
                import redis.asyncio as aioredis
            except ImportError as e:
                raise ImportError(
                    "redis package required: pip install redis"
                ) from e
            client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client
        self._url = redis_url

    @property
    def location(self) -> str:
        return self._url

    async def aclose(self) -> None:
        """Release the connection pool of a client built from the URL."""
        if self._owns_client:
            await self._client.aclose()

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        import redis

        try:
            data = await self._client.get(f"{_KEY_PREFIX}{key}")
        except redis.RedisError as e:
            raise CacheError(f"Redis GET failed: {e}") from e
        if data is None:
            return None
        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry."""
        import redis

        try:
            pipe = self._client.pipeline()
            pipe.set(f"{_KEY_PREFIX}{key}", entry.model_dump_json())
            # Set of all cache keys for list_entries / clear
            pipe.sadd(_INDEX_KEY, key)
            await pipe.execute()
        except redis.RedisError as e:
            raise CacheError(f"Redis SET failed: {e}") from e

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        import redis

        try:
            await self._client.delete(f"{_KEY_PREFIX}{key}")
            await self._client.srem(_INDEX_KEY, key)
        except redis.RedisError as e:
            raise CacheError(f"Redis DELETE failed: {e}") from e

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        import redis

        try:
            keys = sorted(await self._client.smembers(_INDEX_KEY))
        except redis.RedisError as e:
            raise CacheError(f"Redis SMEMBERS failed: {e}") from e
        entries: list[CacheEntry] = []
        for key in keys:
            entry = await self.get(key)
            if entry is not None:
                entries.append(entry)
        return entries

    async def clear(self, older_than: datetime | None = None) -> int:
        """Remove all entries, or only those created before ``older_than``."""
        if older_than is not None and older_than.tzinfo is None:
            older_than = older_than.replace(tzinfo=timezone.utc)
        removed = 0
        for entry in await self.list_entries():
            if older_than is not None and entry.created_at >= older_than:
                continue
            await self.delete(entry.key)
            removed += 1
        return removed
