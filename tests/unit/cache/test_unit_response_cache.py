# tests/unit/cache/test_unit_response_cache.py — v1
"""Tests for cache/response_cache.py — origin marking and failure isolation."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from logsage.cache.base_cache_store import CacheError
from logsage.cache.models import CacheEntry
from logsage.cache.response_cache import ResponseCache
from logsage.core.models import AnalysisResult


def _result() -> AnalysisResult:
    return AnalysisResult(root_cause="pool exhausted", confidence=0.8, provider="fake")


class TestResponseCache:
    @pytest.mark.asyncio
    async def test_set_then_get_marks_cached(self, response_cache):
        assert await response_cache.set("fake", "m", "fp", _result()) is True
        hit = await response_cache.get("fake", "m", "fp")
        assert hit is not None
        assert hit.origin == "cached"
        assert hit.root_cause == "pool exhausted"

    @pytest.mark.asyncio
    async def test_stored_as_fresh(self, response_cache, sqlite_store):
        await response_cache.set("fake", "m", "fp", _result().model_copy(update={"origin": "cached"}))
        entry = await sqlite_store.get("fake:m:fp")
        assert entry.result.origin == "fresh"

    @pytest.mark.asyncio
    async def test_miss(self, response_cache):
        assert await response_cache.get("fake", "m", "unknown") is None

    @pytest.mark.asyncio
    async def test_model_is_part_of_key(self, response_cache):
        await response_cache.set("fake", "model-a", "fp", _result())
        assert await response_cache.get("fake", "model-b", "fp") is None

    @pytest.mark.asyncio
    async def test_store_failure_on_get_is_a_miss(self, caplog):
        store = MagicMock()
        store.get = AsyncMock(side_effect=CacheError("disk on fire"))
        cache = ResponseCache(store)
        with caplog.at_level(logging.WARNING, logger="logsage.cache.response_cache"):
            assert await cache.get("p", "m", "fp") is None
        assert "treating as miss" in caplog.text

    @pytest.mark.asyncio
    async def test_store_failure_on_set_returns_false(self):
        store = MagicMock()
        store.put = AsyncMock(side_effect=OSError("read-only"))
        assert await ResponseCache(store).set("p", "m", "fp", _result()) is False

    @pytest.mark.asyncio
    async def test_slow_store_times_out(self):
        async def slow_get(key):
            await asyncio.sleep(1.0)

        store = MagicMock()
        store.get = slow_get
        cache = ResponseCache(store, io_timeout_s=0.01)
        assert await cache.get("p", "m", "fp") is None

    @pytest.mark.asyncio
    async def test_clear_older_than_days(self, response_cache, sqlite_store):
        old = CacheEntry(
            provider="fake", model="m", fingerprint="old", result=_result(),
            created_at=datetime.now(timezone.utc) - timedelta(days=40),
        )
        await sqlite_store.put(old.key, old)
        await response_cache.set("fake", "m", "new", _result())
        assert await response_cache.clear(older_than_days=30) == 1
        assert await response_cache.get("fake", "m", "new") is not None

    @pytest.mark.asyncio
    async def test_stats(self, response_cache):
        await response_cache.set("fake", "m", "fp", _result())
        stats = await response_cache.stats()
        assert stats.total_entries == 1

    @pytest.mark.asyncio
    async def test_clear_failure_propagates(self):
        store = MagicMock()
        store.clear = AsyncMock(side_effect=CacheError("locked"))
        with pytest.raises(CacheError):
            await ResponseCache(store).clear()
