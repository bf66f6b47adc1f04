# src/tracking/call_logger.py — v2
"""Provider call logging — records every attempt of an analysis run.

Feeds latency and retry figures into the run statistics and can be written
out as JSON Lines for post-run analysis.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from logsage.tracking.models import ProviderCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates provider call records during an analysis run."""

    def __init__(self) -> None:
        self._records: list[ProviderCallRecord] = []

    def record(
        self,
        provider: str,
        model: str,
        group_index: int,
        fingerprint: str,
        attempt: int,
        latency_ms: int,
        status: str = "success",
        error: str | None = None,
    ) -> ProviderCallRecord:
        """Record one provider attempt.

        Args:
            provider: Provider identifier.
            model: Model identifier.
            group_index: Input index of the analyzed group.
            fingerprint: Group fingerprint.
            attempt: 1-based attempt number.
            latency_ms: Wall-clock duration of the attempt.
            status: success, retry (failed but retried) or failed.
            error: Error text for unsuccessful attempts.

        Returns:
            The recorded ProviderCallRecord.
        """
        record = ProviderCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            provider=provider,
            model=model,
            group_index=group_index,
            fingerprint=fingerprint,
            attempt=attempt,
            latency_ms=latency_ms,
            status=status,
            error=error,
        )
        self._records.append(record)
        return record

    @property
    def records(self) -> list[ProviderCallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_calls(self) -> int:
        """Total number of provider calls."""
        return len(self._records)

    @property
    def average_latency_ms(self) -> float:
        if not self._records:
            return 0.0
        return sum(r.latency_ms for r in self._records) / len(self._records)

    def count(self, status: str) -> int:
        return sum(1 for r in self._records if r.status == status)

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(mode="json")) + "\n")
        logger.debug("Wrote %d call records to %s", len(self._records), path)
