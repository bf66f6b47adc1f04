# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from pathlib import Path

from logsage.cache.base_cache_store import BaseCacheStore
from logsage.config.settings import Settings

_DEFAULT_ROOT = Path("~/.logsage/cache")


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to SQLite under
            ~/.logsage/cache.

    Returns:
        Configured BaseCacheStore implementation.

    Raises:
        CacheError: If the backend cannot be opened.
    """
    backend = "sqlite" if settings is None else settings.cache_backend
    cache_root = _DEFAULT_ROOT if settings is None else Path(settings.cache_root)

    if backend == "sqlite":
        from logsage.cache.sqlite_store import DB_FILENAME, SqliteCacheStore
        return SqliteCacheStore(db_path=cache_root.expanduser() / DB_FILENAME)

    if backend == "json":
        from logsage.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=cache_root)

    if backend == "redis":
        from logsage.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
