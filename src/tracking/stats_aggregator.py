# src/tracking/stats_aggregator.py — v2
"""Run statistics assembled after an analysis run settles.

Combines the per-group outcomes, the progress counters and the provider
call records into one AnalysisStatistics record, and renders it for the
terminal.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Sequence

from logsage.core.models import AnalysisStatus, AnalyzedGroup
from logsage.tracking.models import (
    AnalysisStatistics,
    FailedGroup,
    ProviderCacheStats,
    ProviderCallRecord,
)
from logsage.tracking.progress import ProgressUpdate

logger = logging.getLogger(__name__)

_MAX_REASON_LEN = 60
_MAX_REASONS_SHOWN = 5


def build_statistics(
    results: Sequence[AnalyzedGroup],
    progress: ProgressUpdate,
    records: Sequence[ProviderCallRecord],
    provider: str,
    duration_s: float,
) -> AnalysisStatistics:
    """Aggregate one run.

    Args:
        results: Settled slots, one per input group.
        progress: Final progress snapshot (cache hit/miss counters).
        records: Provider attempts of the run.
        provider: Provider identifier the run was keyed on.
        duration_s: Wall-clock run duration.

    Returns:
        AnalysisStatistics for display or JSON emission.
    """
    status_counts = Counter(r.status for r in results)
    failed_groups = [
        FailedGroup(
            index=r.index,
            fingerprint=r.group.fingerprint,
            pattern=r.group.pattern,
            reason=r.error or "unknown error",
            attempts=r.attempts,
        )
        for r in results
        if r.status is AnalysisStatus.FAILED
    ]
    retry_counts = Counter(r.attempts for r in results if r.attempts > 1)
    failure_reasons = Counter(f.reason for f in failed_groups)

    latencies = [rec.latency_ms for rec in records]
    settled = len(results)

    by_provider: dict[str, ProviderCacheStats] = {}
    if progress.cache_hits or progress.cache_misses:
        by_provider[provider] = ProviderCacheStats(
            provider=provider, hits=progress.cache_hits, misses=progress.cache_misses,
        )

    return AnalysisStatistics(
        total_groups=settled,
        fresh=status_counts.get(AnalysisStatus.FRESH, 0),
        cached=status_counts.get(AnalysisStatus.CACHED, 0),
        failed=status_counts.get(AnalysisStatus.FAILED, 0),
        cache_hits=progress.cache_hits,
        cache_misses=progress.cache_misses,
        by_provider=by_provider,
        provider_calls=len(records),
        total_retries=sum(max(r.attempts - 1, 0) for r in results),
        average_latency_ms=sum(latencies) / len(latencies) if latencies else 0.0,
        duration_s=duration_s,
        throughput=settled / duration_s if duration_s > 0 else 0.0,
        retry_counts=dict(sorted(retry_counts.items())),
        failure_reasons=dict(failure_reasons.most_common()),
        failed_groups=failed_groups,
    )


def format_duration(seconds: float) -> str:
    """Human-readable duration: ``45s``, ``2m 5s``, ``1h 1m 5s``."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_summary(stats: AnalysisStatistics) -> str:
    """Multi-line terminal summary of a run."""
    lines = [
        "Analysis Statistics:",
        f"  Total groups: {stats.total_groups}",
        f"  Successful: {stats.successful} ({stats.fresh} fresh, {stats.cached} cached)",
        f"  Failed: {stats.failed}",
    ]
    if stats.cache_hits or stats.cache_misses:
        lines.append(
            f"  Cache: {stats.cache_hits} hits, {stats.cache_misses} misses "
            f"({stats.cache_hit_rate:.1f}% hit rate)"
        )
    lines.append(f"  Provider calls: {stats.provider_calls} ({stats.total_retries} retries)")
    if stats.provider_calls:
        lines.append(f"  Average latency: {stats.average_latency_ms:.0f}ms")
    lines.append(f"  Duration: {format_duration(stats.duration_s)}")
    lines.append(f"  Throughput: {stats.throughput:.2f} groups/sec")

    if stats.retry_counts:
        lines.append("")
        lines.append("  Retry attempts:")
        for attempts, count in sorted(stats.retry_counts.items()):
            lines.append(f"    {attempts} attempts: {count} times")

    if stats.failure_reasons:
        lines.append("")
        lines.append("  Failure reasons:")
        ranked = sorted(stats.failure_reasons.items(), key=lambda kv: (-kv[1], kv[0]))
        for reason, count in ranked[:_MAX_REASONS_SHOWN]:
            if len(reason) > _MAX_REASON_LEN:
                reason = reason[:_MAX_REASON_LEN] + "..."
            lines.append(f"    {reason}: {count} times")

    return "\n".join(lines)
