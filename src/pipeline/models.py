# src/pipeline/models.py — v1
"""Analysis run output: AnalysisRun."""

from __future__ import annotations

from pydantic import BaseModel, Field

from logsage.core.models import AnalysisStatus, AnalyzedGroup, ErrorGroup
from logsage.tracking.models import AnalysisStatistics


class AnalysisRun(BaseModel):
    """Ordered per-group outcomes plus run statistics.

    ``results[i]`` always corresponds to input group ``i``.
    ``interrupted`` is set when a deadline or cancel signal cut the run short.
    """

    run_id: str
    provider: str
    model: str
    results: list[AnalyzedGroup] = Field(default_factory=list)
    statistics: AnalysisStatistics = Field(default_factory=AnalysisStatistics)
    interrupted: str | None = None

    @property
    def groups(self) -> list[ErrorGroup]:
        """Input groups with their analysis attached (None when failed)."""
        return [r.group for r in self.results]

    def by_status(self, status: AnalysisStatus) -> list[AnalyzedGroup]:
        return [r for r in self.results if r.status is status]
