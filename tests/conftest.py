# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a log entry factory, a scripted fake LLM provider and temporary
cache stores. No network: every provider call goes through FakeProvider.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from logsage.analyzer.grouper import ErrorGrouper
from logsage.cache.json_store import JsonCacheStore
from logsage.cache.response_cache import ResponseCache
from logsage.cache.sqlite_store import SqliteCacheStore
from logsage.core.models import ErrorGroup, LogEntry, Severity
from logsage.llm.base_client import BaseLLMClient
from logsage.llm.models import LLMResponse, Message

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

VALID_ANALYSIS = {
    "root_cause": "Database connection pool exhausted",
    "impact": "Requests fail with 500",
    "explanation": "All pooled connections are checked out",
    "fixes": [
        {"description": "Increase pool size", "code_example": "pool_size=20", "priority": 1},
        {"description": "Release connections in finally blocks", "priority": 2},
    ],
    "confidence": 0.85,
}


class FakeProvider(BaseLLMClient):
    """Scripted in-memory provider.

    ``script(marker, *outcomes)`` queues outcomes for prompts containing
    ``marker``: strings are returned as the response text, exceptions are
    raised. The last queued outcome repeats once the queue drains. Prompts
    matching no script get ``default``.
    """

    def __init__(
        self,
        default: str | BaseException | None = None,
        delay: float = 0.0,
        provider: str = "fake",
        model: str = "fake-model",
    ) -> None:
        self.default = json.dumps(VALID_ANALYSIS) if default is None else default
        self.delay = delay
        self._provider = provider
        self._model = model
        self._scripts: dict[str, list[str | BaseException]] = {}
        self.prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.intervals: list[tuple[float, float]] = []

    def script(self, marker: str, *outcomes: str | BaseException) -> FakeProvider:
        self._scripts[marker] = list(outcomes)
        return self

    def calls_for(self, marker: str) -> int:
        return sum(1 for p in self.prompts if marker in p)

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        prompt = messages[-1].content
        self.prompts.append(prompt)
        loop = asyncio.get_running_loop()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        started = loop.time()
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self._next_outcome(prompt)
        finally:
            self.in_flight -= 1
            self.intervals.append((started, loop.time()))
        if isinstance(outcome, BaseException):
            raise outcome
        return LLMResponse(content=outcome, model=self._model, provider=self._provider)

    def _next_outcome(self, prompt: str) -> str | BaseException:
        for marker, queue in self._scripts.items():
            if marker in prompt and queue:
                return queue.pop(0) if len(queue) > 1 else queue[0]
        return self.default

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model_name(self) -> str:
        return self._model


# === FIXTURES: Sample data ===


@pytest.fixture
def make_entry():
    """Factory for LogEntry with a timestamp offset in seconds from BASE_TIME."""

    def _make(
        message: str,
        severity: Severity | str = Severity.ERROR,
        offset_s: float | None = 0,
        **kwargs: Any,
    ) -> LogEntry:
        timestamp = None if offset_s is None else BASE_TIME + timedelta(seconds=offset_s)
        return LogEntry(message=message, severity=severity, timestamp=timestamp, **kwargs)

    return _make


@pytest.fixture
def make_groups(make_entry):
    """Factory turning message strings into ErrorGroups (one entry each)."""

    def _make(*messages: str, severity: Severity = Severity.ERROR) -> list[ErrorGroup]:
        entries = [make_entry(m, severity, offset_s=i) for i, m in enumerate(messages)]
        return ErrorGrouper().group(entries)

    return _make


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_provider():
    """Factory for FakeProvider with custom defaults."""
    return FakeProvider


# === FIXTURES: Cache ===


@pytest.fixture
def sqlite_store(tmp_path):
    store = SqliteCacheStore(db_path=tmp_path / "cache" / "cache.db")
    yield store
    store.close()


@pytest.fixture
def json_store(tmp_path):
    return JsonCacheStore(cache_root=tmp_path / "json-cache")


@pytest.fixture
def response_cache(sqlite_store) -> ResponseCache:
    return ResponseCache(sqlite_store)
