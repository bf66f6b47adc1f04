# src/tracking/progress.py — v1
"""Progress counters for one analysis run.

Counters are updated under a lock so they stay consistent if a callback
reads them from another thread. Throughput, percentage and ETA are derived
from the counters on every snapshot, never stored.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

BAR_WIDTH = 30


@dataclass(frozen=True)
class ProgressUpdate:
    """Immutable view of the counters at one instant."""

    total: int
    completed: int
    cache_hits: int
    cache_misses: int
    failed: int
    in_flight: int
    elapsed_s: float
    pattern: str = ""

    @property
    def throughput(self) -> float:
        """Settled groups per second."""
        return self.completed / self.elapsed_s if self.elapsed_s > 0 else 0.0

    @property
    def percentage(self) -> float:
        return self.completed / self.total * 100.0 if self.total else 0.0

    @property
    def eta_s(self) -> float | None:
        """Seconds until all groups settle at the current rate."""
        if self.throughput <= 0 or self.completed >= self.total:
            return None
        return (self.total - self.completed) / self.throughput

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.total

    def format_terminal(self) -> str:
        """One-line bar, e.g. ``[█████░░░] 5/10 (50%) - ETA 12s``."""
        filled = (BAR_WIDTH * self.completed) // self.total if self.total else 0
        filled = min(filled, BAR_WIDTH)
        bar = "█" * filled + "░" * (BAR_WIDTH - filled)
        line = f"[{bar}] {self.completed}/{self.total} ({int(self.percentage)}%)"
        eta = self.eta_s
        if eta is not None:
            minutes, seconds = divmod(int(eta), 60)
            line += f" - ETA {minutes}m{seconds}s" if minutes else f" - ETA {seconds}s"
        return line


class ProgressTracker:
    """Shared counters for one analyze_all() call."""

    def __init__(self, total: int) -> None:
        self._lock = threading.Lock()
        self._total = total
        self._completed = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._failed = 0
        self._in_flight = 0
        self._start = time.monotonic()

    def started(self) -> None:
        with self._lock:
            self._in_flight += 1

    def cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def cache_miss(self) -> None:
        with self._lock:
            self._cache_misses += 1

    def finished(self, failed: bool = False, was_started: bool = True) -> None:
        """Settle one group. ``was_started`` is False for groups that never ran."""
        with self._lock:
            self._completed += 1
            if failed:
                self._failed += 1
            if was_started:
                self._in_flight = max(self._in_flight - 1, 0)

    def snapshot(self, pattern: str = "") -> ProgressUpdate:
        with self._lock:
            return ProgressUpdate(
                total=self._total,
                completed=self._completed,
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                failed=self._failed,
                in_flight=self._in_flight,
                elapsed_s=time.monotonic() - self._start,
                pattern=pattern,
            )
