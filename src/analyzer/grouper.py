# src/analyzer/grouper.py — v1
"""Error grouper — fold a stream of LogEntry into ErrorGroups.

One sequential pass, no state kept between calls. Each entry is normalized,
its grouping key looked up (or a group created), and the group's count,
first/last-seen and capped examples updated.

Output order is fully deterministic:
  severity desc, count desc, first_seen asc (groups without any timestamp
  last), then pattern and fingerprint asc.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from logsage.analyzer.normalizer import Normalizer
from logsage.cache.fingerprint import compute_fingerprint
from logsage.core.models import ErrorGroup, LogEntry, Severity

logger = logging.getLogger(__name__)

DEFAULT_MAX_EXAMPLES = 3


class ErrorGrouper:
    """Group log entries by normalized pattern (and severity by default).

    Args:
        normalizer: Normalizer instance, default rule set when None.
        group_by_severity: Key on (severity, pattern) when True, on pattern
            alone when False. Pattern-only groups report the highest
            severity observed.
        max_examples: Cap on stored examples per group.
        min_severity: Drop entries ranked below this severity.
    """

    def __init__(
        self,
        normalizer: Normalizer | None = None,
        group_by_severity: bool = True,
        max_examples: int = DEFAULT_MAX_EXAMPLES,
        min_severity: Severity | str | None = None,
    ) -> None:
        if max_examples < 0:
            raise ValueError(f"max_examples must be >= 0, got {max_examples}")
        self._normalizer = normalizer or Normalizer()
        self._group_by_severity = group_by_severity
        self._max_examples = max_examples
        self._min_severity = Severity.parse(min_severity) if min_severity is not None else None

    def group(self, entries: Iterable[LogEntry]) -> list[ErrorGroup]:
        """Fold ``entries`` into ordered ErrorGroups."""
        groups: dict[tuple[str, str], ErrorGroup] = {}
        seen = skipped = 0

        for entry in entries:
            seen += 1
            if self._min_severity is not None and entry.severity.rank < self._min_severity.rank:
                skipped += 1
                continue

            pattern = self._normalizer.normalize(entry.message)
            key = (entry.severity.value if self._group_by_severity else "", pattern)
            group = groups.get(key)
            if group is None:
                group = ErrorGroup(
                    fingerprint=compute_fingerprint(
                        pattern, entry.severity if self._group_by_severity else None,
                    ),
                    severity=entry.severity,
                    pattern=pattern,
                )
                groups[key] = group
            self._absorb(group, entry)

        ordered = sorted(groups.values(), key=_sort_key)
        logger.debug(
            "Grouped %d entries into %d groups (%d below min severity)",
            seen, len(ordered), skipped,
        )
        return ordered

    def _absorb(self, group: ErrorGroup, entry: LogEntry) -> None:
        group.count += 1
        if entry.severity.rank > group.severity.rank:
            group.severity = entry.severity
        ts = entry.timestamp
        if ts is not None:
            if group.first_seen is None or ts < group.first_seen:
                group.first_seen = ts
            if group.last_seen is None or ts > group.last_seen:
                group.last_seen = ts
        if len(group.examples) < self._max_examples:
            group.examples.append(entry)


def _sort_key(group: ErrorGroup) -> tuple:
    first_seen = group.first_seen
    return (
        -group.severity.rank,
        -group.count,
        first_seen is None,
        first_seen.timestamp() if isinstance(first_seen, datetime) else 0.0,
        group.pattern,
        group.fingerprint,
    )


def group_entries(
    entries: Iterable[LogEntry],
    group_by_severity: bool = True,
    max_examples: int = DEFAULT_MAX_EXAMPLES,
    min_severity: Severity | str | None = None,
) -> list[ErrorGroup]:
    """Convenience wrapper around ErrorGrouper with the default normalizer."""
    grouper = ErrorGrouper(
        group_by_severity=group_by_severity,
        max_examples=max_examples,
        min_severity=min_severity,
    )
    return grouper.group(entries)
