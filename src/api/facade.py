# src/api/facade.py — v3
"""Public API facade — single entry point for grouping and analysis.

Usage:
    from logsage.api.facade import analyze, group, load_entries
    entries = load_entries(Path("errors.jsonl"))
    run = await analyze(entries)
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator, Iterable, Sequence

from logsage.analyzer.grouper import ErrorGrouper
from logsage.cache.base_cache_store import CacheError
from logsage.cache.response_cache import ResponseCache
from logsage.config.analysis import AnalysisConfig
from logsage.config.settings import Settings
from logsage.core.models import ErrorGroup, LogEntry
from logsage.pipeline.models import AnalysisRun
from logsage.pipeline.orchestrator import AnalysisOrchestrator, ProgressCallback

if TYPE_CHECKING:
    from logsage.cache.base_cache_store import BaseCacheStore
    from logsage.cache.models import CacheStats
    from logsage.llm.base_client import BaseLLMClient
    from logsage.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


class InputFormatError(ValueError):
    """A JSON Lines input record is not a valid LogEntry."""


def parse_entries(lines: Iterable[str], source: str = "<input>") -> list[LogEntry]:
    """Parse JSON Lines into LogEntry records.

    Blank lines are skipped. A line that is not a JSON object, or does not
    validate as a LogEntry, raises InputFormatError naming the line.
    """
    entries: list[LogEntry] = []
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise InputFormatError(f"{source}:{lineno}: invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InputFormatError(f"{source}:{lineno}: expected a JSON object")
        try:
            entries.append(LogEntry.model_validate(data))
        except ValueError as e:
            raise InputFormatError(f"{source}:{lineno}: {e}") from e
    return entries


def load_entries(path: Path) -> list[LogEntry]:
    """Read a JSON Lines file of LogEntry records."""
    with path.open("r", encoding="utf-8") as f:
        entries = parse_entries(f, source=str(path))
    logger.info("Loaded %d entries from %s", len(entries), path)
    return entries


def group(
    entries: Iterable[LogEntry],
    settings: Settings | None = None,
    group_by_severity: bool | None = None,
    min_severity: str | None = None,
) -> list[ErrorGroup]:
    """Group entries with the configured grouping options.

    Explicit arguments win over settings.
    """
    settings = settings or Settings()
    if group_by_severity is None:
        group_by_severity = settings.group_by_severity
    if min_severity is None:
        min_severity = settings.group_min_severity or None
    grouper = ErrorGrouper(
        group_by_severity=group_by_severity,
        max_examples=settings.group_max_examples,
        min_severity=min_severity,
    )
    return grouper.group(entries)


async def analyze(
    items: Sequence[LogEntry] | Sequence[ErrorGroup],
    settings: Settings | None = None,
    llm_client: BaseLLMClient | None = None,
    cache_store: BaseCacheStore | None = None,
    call_logger: CallLogger | None = None,
    progress_callback: ProgressCallback | None = None,
    cancel_event: asyncio.Event | None = None,
    provider: str | None = None,
    model: str | None = None,
    **config_overrides: Any,
) -> AnalysisRun:
    """Group (when given entries) and analyze end-to-end.

    Args:
        items: LogEntry records, or ErrorGroups already produced by group().
        settings: Global settings. Loaded from .env if None.
        llm_client: Provider client. Built from settings when None.
        cache_store: Cache backend. Built from settings when None and
            caching is enabled; closed on return only if built here. A
            store that cannot be opened is logged and the run goes uncached.
        call_logger: Optional call logger collecting every provider attempt.
        progress_callback: Receives a ProgressUpdate after each group.
        cancel_event: Setting it stops the run early.
        provider: Provider override (ignored when llm_client is given).
        model: Model override (ignored when llm_client is given).
        **config_overrides: AnalysisConfig field overrides (concurrency,
            max_retries, deadline_s, ...).

    Returns:
        AnalysisRun with one result per group, in group order.

    Raises:
        ConfigurationError: Invalid settings or overrides.
        UnsupportedProviderError: Unknown provider name.
    """
    settings = settings or Settings()
    config = AnalysisConfig.from_settings(settings, **config_overrides)
    groups = _as_groups(items, settings)

    if llm_client is None:
        from logsage.llm.client_factory import create_llm_client
        from logsage.llm.config import resolve_llm

        assignment = resolve_llm(settings, provider=provider, model=model)
        llm_client = create_llm_client(assignment.provider, assignment.model, settings=settings)

    owned_store = False
    if cache_store is None and config.cache_enabled:
        from logsage.cache.cache_factory import create_cache_store

        try:
            cache_store = create_cache_store(settings)
            owned_store = True
        except CacheError as e:
            logger.warning("Cache unavailable, analyzing without cache: %s", e)

    cache = None
    if cache_store is not None and config.cache_enabled:
        cache = ResponseCache(cache_store, io_timeout_s=settings.cache_io_timeout_s)

    orchestrator = AnalysisOrchestrator(llm_client, cache=cache, call_logger=call_logger)
    try:
        return await orchestrator.analyze_all(
            groups, config,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )
    finally:
        if owned_store and cache_store is not None:
            await cache_store.aclose()


async def cache_stats(
    settings: Settings | None = None, cache_store: BaseCacheStore | None = None,
) -> CacheStats:
    """Statistics of the configured cache store."""
    async with _operator_cache(settings, cache_store) as cache:
        return await cache.stats()


async def cache_clear(
    older_than_days: float | None = None,
    settings: Settings | None = None,
    cache_store: BaseCacheStore | None = None,
) -> int:
    """Remove cached analyses, optionally only those older than N days."""
    async with _operator_cache(settings, cache_store) as cache:
        return await cache.clear(older_than_days=older_than_days)


@asynccontextmanager
async def _operator_cache(
    settings: Settings | None, store: BaseCacheStore | None,
) -> AsyncIterator[ResponseCache]:
    settings = settings or Settings()
    owned = store is None
    if store is None:
        from logsage.cache.cache_factory import create_cache_store

        store = create_cache_store(settings)
    try:
        yield ResponseCache(store, io_timeout_s=settings.cache_io_timeout_s)
    finally:
        if owned:
            await store.aclose()


def _as_groups(
    items: Sequence[LogEntry] | Sequence[ErrorGroup], settings: Settings,
) -> list[ErrorGroup]:
    items = list(items)
    if all(isinstance(item, ErrorGroup) for item in items):
        return items  # type: ignore[return-value]
    if all(isinstance(item, LogEntry) for item in items):
        return group(items, settings=settings)  # type: ignore[arg-type]
    raise TypeError("analyze() expects LogEntry records or ErrorGroups, not a mix")
