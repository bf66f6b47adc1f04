# src/tracking/models.py — v2
"""Tracking domain models: ProviderCallRecord, FailedGroup, ProviderCacheStats,
AnalysisStatistics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ProviderCallRecord(BaseModel):
    """One provider attempt for one group."""

    call_id: str
    timestamp: datetime
    provider: str
    model: str
    group_index: int
    fingerprint: str
    attempt: int
    latency_ms: int
    status: Literal["success", "retry", "failed"]
    error: str | None = None


class FailedGroup(BaseModel):
    """A group that ended the run without an analysis."""

    index: int
    fingerprint: str
    pattern: str
    reason: str
    attempts: int = 0


class ProviderCacheStats(BaseModel):
    """Cache effectiveness for one provider."""

    provider: str
    hits: int = 0
    misses: int = 0

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class AnalysisStatistics(BaseModel):
    """Summary of one analyze_all() call."""

    total_groups: int = 0
    fresh: int = 0
    cached: int = 0
    failed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    by_provider: dict[str, ProviderCacheStats] = Field(default_factory=dict)
    provider_calls: int = 0
    total_retries: int = 0
    average_latency_ms: float = 0.0
    duration_s: float = 0.0
    throughput: float = 0.0
    retry_counts: dict[int, int] = Field(default_factory=dict)
    failure_reasons: dict[str, int] = Field(default_factory=dict)
    failed_groups: list[FailedGroup] = Field(default_factory=list)

    @property
    def successful(self) -> int:
        return self.fresh + self.cached

    @property
    def success_rate(self) -> float:
        """Percentage of groups with an analysis."""
        return self.successful / self.total_groups * 100.0 if self.total_groups else 0.0

    @property
    def cache_hit_rate(self) -> float:
        """Percentage of cache lookups that hit."""
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups * 100.0 if lookups else 0.0
