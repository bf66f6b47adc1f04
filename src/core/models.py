# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Covers log input (Severity, LogEntry), grouping output (ErrorGroup) and
analysis output (SuggestedFix, AnalysisResult, AnalyzedGroup).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# === SEVERITY ===


class Severity(str, Enum):
    """Log severity. Ordered by ``rank``; UNKNOWN ranks below TRACE."""

    UNKNOWN = "unknown"
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: object) -> Severity:
        """Map a free-form level name to a Severity. Never raises."""
        if isinstance(value, Severity):
            return value
        if value is None:
            return cls.UNKNOWN
        key = str(value).strip().lower()
        return _SEVERITY_ALIASES.get(key, cls.UNKNOWN)


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.UNKNOWN: 0,
    Severity.TRACE: 1,
    Severity.DEBUG: 2,
    Severity.INFO: 3,
    Severity.WARN: 4,
    Severity.ERROR: 5,
    Severity.FATAL: 6,
}

_SEVERITY_ALIASES: dict[str, Severity] = {
    "trace": Severity.TRACE,
    "finest": Severity.TRACE,
    "debug": Severity.DEBUG,
    "dbg": Severity.DEBUG,
    "fine": Severity.DEBUG,
    "info": Severity.INFO,
    "information": Severity.INFO,
    "notice": Severity.INFO,
    "warn": Severity.WARN,
    "warning": Severity.WARN,
    "error": Severity.ERROR,
    "err": Severity.ERROR,
    "severe": Severity.ERROR,
    "fatal": Severity.FATAL,
    "critical": Severity.FATAL,
    "crit": Severity.FATAL,
    "alert": Severity.FATAL,
    "emerg": Severity.FATAL,
    "emergency": Severity.FATAL,
    "panic": Severity.FATAL,
    "unknown": Severity.UNKNOWN,
}


# === LOG INPUT ===


class LogEntry(BaseModel):
    """One parsed log line as handed over by the parsing layer."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime | None = None
    severity: Severity = Severity.UNKNOWN
    message: str
    metadata: dict[str, str] = Field(default_factory=dict)
    raw: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, v: Any) -> Severity:
        return Severity.parse(v)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> datetime | None:
        """Unparsable timestamps become None; naive ones are taken as UTC."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            try:
                v = datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
            except ValueError:
                return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            try:
                v = datetime.fromtimestamp(v, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        if not isinstance(v, datetime):
            return None
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def _stringify_metadata(cls, v: Any) -> dict[str, str]:
        if not v:
            return {}
        return {str(k): str(val) for k, val in dict(v).items() if val is not None}


# === ANALYSIS OUTPUT ===


class SuggestedFix(BaseModel):
    """Single remediation step proposed by the model."""

    description: str
    code_example: str | None = None
    priority: int | None = Field(default=None, ge=1, le=5)


class AnalysisResult(BaseModel):
    """Structured explanation for one error pattern."""

    root_cause: str = ""
    impact: str = ""
    explanation: str = ""
    fixes: list[SuggestedFix] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    provider: str = ""
    model: str = ""
    origin: Literal["fresh", "cached"] = "fresh"

    @property
    def solution(self) -> list[str]:
        """Fix descriptions, in order."""
        return [f.description for f in self.fixes]


# === GROUPING OUTPUT ===


class ErrorGroup(BaseModel):
    """All entries sharing one grouping key.

    Mutated only by the grouper during its single pass; read-only afterward.
    ``examples`` is capped, so memory does not grow with ``count``.
    """

    fingerprint: str
    severity: Severity
    pattern: str
    count: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    examples: list[LogEntry] = Field(default_factory=list)
    analysis: AnalysisResult | None = None


class AnalysisStatus(str, Enum):
    """Per-group outcome of an analysis run."""

    CACHED = "cached"
    FRESH = "fresh"
    FAILED = "failed"


class AnalyzedGroup(BaseModel):
    """One slot of an analysis run, aligned with the input index."""

    index: int
    group: ErrorGroup
    status: AnalysisStatus
    analysis: AnalysisResult | None = None
    error: str | None = None
    attempts: int = 0
    latency_ms: int = 0
