# src/cache/models.py — v2
"""Cache domain models: CacheEntry, CacheStats."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from logsage.cache.fingerprint import cache_key
from logsage.core.models import AnalysisResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    """One cached analysis, addressed by (provider, model, fingerprint).

    Entries never expire; they are removed only by explicit clearing.
    """

    provider: str
    model: str
    fingerprint: str
    result: AnalysisResult
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def key(self) -> str:
        return cache_key(self.provider, self.model, self.fingerprint)


class CacheStats(BaseModel):
    """Operator view of the store contents."""

    backend: str
    location: str = ""
    total_entries: int = 0
    by_provider: dict[str, int] = Field(default_factory=dict)
    oldest: datetime | None = None
    newest: datetime | None = None

    @classmethod
    def from_entries(cls, backend: str, location: str, entries: list[CacheEntry]) -> CacheStats:
        by_provider: dict[str, int] = {}
        for entry in entries:
            by_provider[entry.provider] = by_provider.get(entry.provider, 0) + 1
        stamps = [e.created_at for e in entries]
        return cls(
            backend=backend,
            location=location,
            total_entries=len(entries),
            by_provider=dict(sorted(by_provider.items())),
            oldest=min(stamps) if stamps else None,
            newest=max(stamps) if stamps else None,
        )
