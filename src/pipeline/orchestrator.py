# src/pipeline/orchestrator.py — v3
"""Analysis orchestrator — concurrent, cache-first analysis of error groups.

For every group, in its own task:
  1. wait for a concurrency slot (asyncio.Semaphore)
  2. cache lookup keyed by (provider, model, fingerprint)
  3. on miss, provider call under the retry policy
  4. JSON extraction of the response, write-through to the cache
     (degraded extractions are returned but not cached)

Failures stay local to their slot: one group failing never aborts the
others. A deadline or a cancel signal stops new provider calls, gives
in-flight calls a grace period, then cancels them; groups that did not
settle are reported as failed with the stop reason.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Sequence

from logsage.cache.response_cache import ResponseCache
from logsage.config.analysis import AnalysisConfig
from logsage.core.models import AnalysisResult, AnalysisStatus, AnalyzedGroup, ErrorGroup
from logsage.llm.base_client import BaseLLMClient
from logsage.llm.json_extractor import extract_analysis_checked
from logsage.llm.retry import RetryAborted, RetryExhausted, SleepFn, is_retryable
from logsage.logging.context import clear_context, set_group_context, set_run_context
from logsage.pipeline.models import AnalysisRun
from logsage.tracking.call_logger import CallLogger
from logsage.tracking.progress import ProgressTracker, ProgressUpdate
from logsage.tracking.stats_aggregator import build_statistics

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]

CANCELLED = "cancelled"
DEADLINE_EXCEEDED = "deadline exceeded"


@dataclass
class _RunState:
    """Mutable state shared by the tasks of one analyze_all() call."""

    config: AnalysisConfig
    tracker: ProgressTracker
    call_logger: CallLogger
    slots: list[AnalyzedGroup | None]
    semaphore: asyncio.Semaphore
    progress_callback: ProgressCallback | None = None
    started: set[int] = field(default_factory=set)
    stop_reason: str | None = None

    @property
    def stopped(self) -> bool:
        return self.stop_reason is not None

    def stop(self, reason: str) -> None:
        if self.stop_reason is None:
            self.stop_reason = reason


class AnalysisOrchestrator:
    """Runs provider analysis over error groups with bounded concurrency.

    Args:
        provider: LLM client used for every group of a run.
        cache: Optional response cache; consulted only when the run's
            config has cache_enabled.
        call_logger: Optional call logger shared across runs. A fresh one
            is used per run when omitted.
        sleep: Backoff sleep; asyncio.sleep by default.
    """

    def __init__(
        self,
        provider: BaseLLMClient,
        cache: ResponseCache | None = None,
        call_logger: CallLogger | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._call_logger = call_logger
        self._sleep = sleep

    @property
    def provider(self) -> BaseLLMClient:
        return self._provider

    async def analyze_all(
        self,
        groups: Sequence[ErrorGroup],
        config: AnalysisConfig | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AnalysisRun:
        """Analyze every group and return outcomes in input order.

        Args:
            groups: Groups to analyze; results[i] corresponds to groups[i].
            config: Concurrency, retry, cache and deadline settings.
            progress_callback: Called with a ProgressUpdate after every
                group settles.
            cancel_event: Setting it stops the run like a deadline does.

        Returns:
            AnalysisRun with one AnalyzedGroup per input group.

        Raises:
            asyncio.CancelledError: If the caller's task is cancelled. All
                group tasks are cancelled first.
        """
        config = config or AnalysisConfig()
        groups = list(groups)
        provider_name = self._provider.provider_name
        model_name = self._provider.model_name
        run_id = uuid.uuid4().hex[:12]
        set_run_context(run_id, provider_name)

        state = _RunState(
            config=config,
            tracker=ProgressTracker(len(groups)),
            call_logger=self._call_logger or CallLogger(),
            slots=[None] * len(groups),
            semaphore=asyncio.Semaphore(config.concurrency),
            progress_callback=progress_callback,
        )
        first_record = state.call_logger.total_calls

        logger.info(
            "Analyzing %d groups with %s/%s (concurrency=%d, cache=%s)",
            len(groups), provider_name, model_name, config.concurrency,
            "on" if config.cache_enabled and self._cache is not None else "off",
        )
        start = time.monotonic()
        tasks = [
            asyncio.create_task(self._run_group(i, group, state), name=f"group-{i}")
            for i, group in enumerate(groups)
        ]
        try:
            await self._supervise(tasks, state, cancel_event)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            clear_context()
            raise

        for i, group in enumerate(groups):
            if state.slots[i] is None:
                reason = state.stop_reason or CANCELLED
                state.slots[i] = _failed(i, group, reason, attempts=0)
                state.tracker.finished(failed=True, was_started=i in state.started)

        results: list[AnalyzedGroup] = [slot for slot in state.slots if slot is not None]
        duration = time.monotonic() - start
        stats = build_statistics(
            results,
            state.tracker.snapshot(),
            state.call_logger.records[first_record:],
            provider_name,
            duration,
        )
        logger.info(
            "Analysis finished: %d fresh, %d cached, %d failed in %.1fs",
            stats.fresh, stats.cached, stats.failed, duration,
        )
        clear_context()
        return AnalysisRun(
            run_id=run_id,
            provider=provider_name,
            model=model_name,
            results=results,
            statistics=stats,
            interrupted=state.stop_reason,
        )

    # --- Supervision ---

    async def _supervise(
        self,
        tasks: list[asyncio.Task[None]],
        state: _RunState,
        cancel_event: asyncio.Event | None,
    ) -> None:
        """Wait for all group tasks, enforcing the deadline and cancel signal."""
        loop = asyncio.get_running_loop()
        deadline = None
        if state.config.deadline_s is not None:
            deadline = loop.time() + state.config.deadline_s
        cancel_waiter = (
            asyncio.create_task(cancel_event.wait()) if cancel_event is not None else None
        )

        pending: set[asyncio.Task[None]] = set(tasks)
        try:
            while pending:
                waiters: set[asyncio.Task[object]] = set(pending)
                if cancel_waiter is not None:
                    waiters.add(cancel_waiter)
                timeout = None
                if deadline is not None:
                    timeout = max(deadline - loop.time(), 0.0)
                done, _ = await asyncio.wait(
                    waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
                )
                pending -= done
                if not pending:
                    return
                if cancel_waiter is not None and cancel_waiter in done:
                    state.stop(CANCELLED)
                    break
                if deadline is not None and loop.time() >= deadline:
                    state.stop(DEADLINE_EXCEEDED)
                    break
            if not pending:
                return

            logger.warning(
                "Run stopping (%s): %d groups unsettled, grace %.1fs",
                state.stop_reason, len(pending), state.config.cancel_grace_s,
            )
            still_pending = pending
            if state.config.cancel_grace_s > 0:
                _, still_pending = await asyncio.wait(
                    pending, timeout=state.config.cancel_grace_s,
                )
            for task in still_pending:
                task.cancel()
            if still_pending:
                await asyncio.gather(*still_pending, return_exceptions=True)
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

    # --- Per-group work ---

    async def _run_group(self, index: int, group: ErrorGroup, state: _RunState) -> None:
        async with state.semaphore:
            if state.stopped:
                state.slots[index] = _failed(index, group, state.stop_reason or CANCELLED, 0)
                state.tracker.finished(failed=True, was_started=False)
                self._notify(state, group)
                return

            set_group_context(group.fingerprint, index)
            state.started.add(index)
            state.tracker.started()
            t0 = time.monotonic()
            try:
                outcome = await self._analyze_group(index, group, state)
            except (asyncio.CancelledError, KeyboardInterrupt):
                raise
            except Exception as e:
                logger.error("Unexpected failure analyzing group %d: %s", index, e, exc_info=True)
                outcome = _failed(index, group, f"internal error: {e}", attempts=0)
            outcome = outcome.model_copy(
                update={"latency_ms": int((time.monotonic() - t0) * 1000)}
            )
            state.slots[index] = outcome
            state.tracker.finished(failed=outcome.status is AnalysisStatus.FAILED)
            self._notify(state, group)

    async def _analyze_group(
        self, index: int, group: ErrorGroup, state: _RunState,
    ) -> AnalyzedGroup:
        config = state.config
        provider_name = self._provider.provider_name
        model_name = self._provider.model_name
        cache = self._cache if config.cache_enabled else None

        if cache is not None:
            cached = await cache.get(provider_name, model_name, group.fingerprint)
            if cached is not None:
                state.tracker.cache_hit()
                logger.debug("Cache hit for group %d", index)
                return _settled(index, group, AnalysisStatus.CACHED, cached, attempts=0)
            state.tracker.cache_miss()

        policy = config.retry_policy()
        attempt_no = 0

        async def attempt() -> str:
            nonlocal attempt_no
            attempt_no += 1
            t0 = time.monotonic()
            try:
                text = await self._provider.analyze(
                    group.pattern,
                    group.severity,
                    group.examples[: config.max_examples],
                    timeout_s=config.request_timeout_s,
                    occurrences=group.count,
                    truncate_length=config.truncate_length,
                )
            except Exception as e:
                will_retry = is_retryable(e) and attempt_no < policy.max_attempts
                state.call_logger.record(
                    provider_name, model_name, index, group.fingerprint, attempt_no,
                    int((time.monotonic() - t0) * 1000),
                    status="retry" if will_retry else "failed",
                    error=str(e),
                )
                raise
            state.call_logger.record(
                provider_name, model_name, index, group.fingerprint, attempt_no,
                int((time.monotonic() - t0) * 1000),
            )
            return text

        try:
            text, attempts = await policy.run(
                attempt,
                label=f"Group {index} ({provider_name})",
                sleep=self._sleep,
                should_stop=lambda: state.stopped,
            )
        except RetryExhausted as e:
            if e.reason == "non_retryable":
                reason = f"non-retryable error: {e.last_error}"
            else:
                reason = f"retries exhausted: {e.last_error}"
            logger.warning("Group %d failed after %d attempt(s): %s", index, e.attempts, reason)
            return _failed(index, group, reason, e.attempts)
        except RetryAborted as e:
            return _failed(index, group, state.stop_reason or CANCELLED, e.attempts)

        analysis, parsed = extract_analysis_checked(text, provider_name, model_name)
        if not parsed:
            logger.info("Group %d: unstructured response, not cached", index)
        elif cache is not None:
            await cache.set(provider_name, model_name, group.fingerprint, analysis)
        return _settled(index, group, AnalysisStatus.FRESH, analysis, attempts)

    def _notify(self, state: _RunState, group: ErrorGroup) -> None:
        if state.progress_callback is None:
            return
        try:
            state.progress_callback(state.tracker.snapshot(pattern=group.pattern))
        except Exception as e:
            logger.warning("Progress callback raised: %s", e)


def _settled(
    index: int,
    group: ErrorGroup,
    status: AnalysisStatus,
    analysis: AnalysisResult,
    attempts: int,
) -> AnalyzedGroup:
    return AnalyzedGroup(
        index=index,
        group=group.model_copy(update={"analysis": analysis}),
        status=status,
        analysis=analysis,
        attempts=attempts,
    )


def _failed(index: int, group: ErrorGroup, reason: str, attempts: int) -> AnalyzedGroup:
    return AnalyzedGroup(
        index=index,
        group=group.model_copy(update={"analysis": None}),
        status=AnalysisStatus.FAILED,
        error=reason,
        attempts=attempts,
    )
