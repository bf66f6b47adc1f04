# tests/unit/cache/test_unit_stores.py — v1
"""Tests for the SQLite and JSON cache stores — same contract, both backends."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from logsage.cache.base_cache_store import BaseCacheStore, CacheError
from logsage.cache.json_store import JsonCacheStore
from logsage.cache.models import CacheEntry
from logsage.cache.sqlite_store import SqliteCacheStore
from logsage.core.models import AnalysisResult, SuggestedFix

NOW = datetime.now(timezone.utc)


def _entry(fingerprint: str = "fp1", provider: str = "anthropic", age_days: float = 0) -> CacheEntry:
    return CacheEntry(
        provider=provider,
        model="claude",
        fingerprint=fingerprint,
        result=AnalysisResult(
            root_cause=f"cause {fingerprint}",
            fixes=[SuggestedFix(description="fix it")],
            confidence=0.8,
        ),
        created_at=NOW - timedelta(days=age_days),
    )


@pytest.fixture(params=["sqlite", "json"])
def store(request, tmp_path):
    if request.param == "sqlite":
        s: BaseCacheStore = SqliteCacheStore(db_path=tmp_path / "db" / "cache.db")
    else:
        s = JsonCacheStore(cache_root=tmp_path / "json")
    yield s
    s.close()


class TestStoreContract:
    @pytest.mark.asyncio
    async def test_put_and_get(self, store):
        entry = _entry()
        await store.put(entry.key, entry)
        result = await store.get(entry.key)
        assert result is not None
        assert result.result.root_cause == "cause fp1"
        assert result.result.fixes[0].description == "fix it"

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("anthropic:claude:nope") is None

    @pytest.mark.asyncio
    async def test_overwrite_last_write_wins(self, store):
        first = _entry()
        second = first.model_copy(update={"result": AnalysisResult(root_cause="newer")})
        await store.put(first.key, first)
        await store.put(second.key, second)
        assert (await store.get(first.key)).result.root_cause == "newer"
        assert len(await store.list_entries()) == 1

    @pytest.mark.asyncio
    async def test_delete(self, store):
        entry = _entry()
        await store.put(entry.key, entry)
        await store.delete(entry.key)
        assert await store.get(entry.key) is None

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, store):
        await store.delete("anthropic:claude:never-stored")

    @pytest.mark.asyncio
    async def test_keys_are_provider_and_model_scoped(self, store):
        a = _entry(provider="anthropic")
        b = _entry(provider="openai")
        await store.put(a.key, a)
        assert await store.get(b.key) is None

    @pytest.mark.asyncio
    async def test_clear_all(self, store):
        for i in range(3):
            e = _entry(f"fp{i}")
            await store.put(e.key, e)
        assert await store.clear() == 3
        assert await store.list_entries() == []

    @pytest.mark.asyncio
    async def test_clear_older_than(self, store):
        old = _entry("old", age_days=10)
        fresh = _entry("fresh", age_days=1)
        await store.put(old.key, old)
        await store.put(fresh.key, fresh)
        removed = await store.clear(older_than=NOW - timedelta(days=5))
        assert removed == 1
        remaining = await store.list_entries()
        assert [e.fingerprint for e in remaining] == ["fresh"]

    @pytest.mark.asyncio
    async def test_stats(self, store):
        for i, provider in enumerate(["openai", "anthropic", "openai"]):
            e = _entry(f"fp{i}", provider=provider, age_days=i)
            await store.put(e.key, e)
        stats = await store.stats()
        assert stats.backend == store.backend_name
        assert stats.total_entries == 3
        assert stats.by_provider == {"anthropic": 1, "openai": 2}
        assert stats.oldest < stats.newest

    @pytest.mark.asyncio
    async def test_concurrent_writes(self, store):
        entries = [_entry(f"fp{i}") for i in range(20)]
        await asyncio.gather(*(store.put(e.key, e) for e in entries))
        assert len(await store.list_entries()) == 20


class TestSqliteSpecific:
    def test_location(self, tmp_path):
        store = SqliteCacheStore(db_path=tmp_path / "x.db")
        try:
            assert store.location.endswith("x.db")
        finally:
            store.close()

    @pytest.mark.asyncio
    async def test_corrupt_row_is_a_miss(self, tmp_path):
        store = SqliteCacheStore(db_path=tmp_path / "x.db")
        try:
            store._conn.execute(
                "INSERT INTO cache_entries VALUES (?, ?, ?, ?, ?, ?)",
                ("k", "p", "m", "f", "{not json", "2026-01-01T00:00:00.000000"),
            )
            store._conn.commit()
            assert await store.get("k") is None
        finally:
            store.close()

    @pytest.mark.asyncio
    async def test_closed_connection_raises_cache_error(self, tmp_path):
        store = SqliteCacheStore(db_path=tmp_path / "x.db")
        store.close()
        with pytest.raises(CacheError):
            await store.get("k")


class TestJsonSpecific:
    @pytest.mark.asyncio
    async def test_one_file_per_entry(self, tmp_path):
        store = JsonCacheStore(cache_root=tmp_path / "c")
        e = _entry()
        await store.put(e.key, e)
        files = list((tmp_path / "c").glob("*.json"))
        assert len(files) == 1
        assert files[0].name.startswith("anthropic_claude-")

    @pytest.mark.asyncio
    async def test_temp_files_ignored(self, tmp_path):
        root = tmp_path / "c"
        store = JsonCacheStore(cache_root=root)
        (root / ".tmp-abandoned.json").write_text("{", encoding="utf-8")
        assert await store.list_entries() == []

    @pytest.mark.asyncio
    async def test_corrupt_file_is_a_miss(self, tmp_path):
        store = JsonCacheStore(cache_root=tmp_path / "c")
        e = _entry()
        await store.put(e.key, e)
        path = next((tmp_path / "c").glob("*.json"))
        path.write_text("garbage", encoding="utf-8")
        assert await store.get(e.key) is None
