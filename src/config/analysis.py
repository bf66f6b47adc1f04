# src/config/analysis.py — v1
"""Per-run analysis configuration consumed by the orchestrator.

Built from Settings (or directly in tests). Validation happens at
construction, before any work starts: a non-positive concurrency is a
ConfigurationError, a concurrency above MAX_CONCURRENCY is clamped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from logsage.config.settings import MAX_CONCURRENCY, ConfigurationError, Settings
from logsage.llm.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisConfig:
    """Values steering one analyze_all() call."""

    concurrency: int = 5
    cache_enabled: bool = True
    max_retries: int = 3
    initial_backoff_s: float = 1.0
    max_backoff_s: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True
    request_timeout_s: float | None = 60.0
    deadline_s: float | None = None
    cancel_grace_s: float = 5.0
    max_examples: int = 3
    truncate_length: int = 2000

    def __post_init__(self) -> None:
        errors: list[str] = []
        if self.concurrency <= 0:
            errors.append(f"concurrency must be > 0, got {self.concurrency}")
        if self.max_retries < 0:
            errors.append(f"max_retries must be >= 0, got {self.max_retries}")
        if self.initial_backoff_s < 0:
            errors.append("initial_backoff_s must be >= 0")
        if self.max_backoff_s < self.initial_backoff_s:
            errors.append("max_backoff_s must be >= initial_backoff_s")
        if self.backoff_multiplier < 1.0:
            errors.append("backoff_multiplier must be >= 1.0")
        if self.deadline_s is not None and self.deadline_s <= 0:
            errors.append("deadline_s must be > 0 when set")
        if self.cancel_grace_s < 0:
            errors.append("cancel_grace_s must be >= 0")
        if errors:
            raise ConfigurationError("; ".join(errors))

        if self.concurrency > MAX_CONCURRENCY:
            logger.warning(
                "Concurrency %d exceeds maximum, clamping to %d",
                self.concurrency, MAX_CONCURRENCY,
            )
            object.__setattr__(self, "concurrency", MAX_CONCURRENCY)

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> AnalysisConfig:
        """Build from Settings; keyword overrides win (CLI flags)."""
        values: dict[str, Any] = {
            "concurrency": settings.analysis_concurrency,
            "cache_enabled": settings.cache_enabled,
            "max_retries": settings.retry_max_retries,
            "initial_backoff_s": settings.retry_initial_backoff_s,
            "max_backoff_s": settings.retry_max_backoff_s,
            "backoff_multiplier": settings.retry_backoff_multiplier,
            "jitter": settings.retry_jitter,
            "request_timeout_s": settings.request_timeout_s,
            "deadline_s": settings.analysis_deadline_s,
            "cancel_grace_s": settings.cancel_grace_s,
            "max_examples": settings.group_max_examples,
            "truncate_length": settings.prompt_truncate_length,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_backoff_s=self.initial_backoff_s,
            max_backoff_s=self.max_backoff_s,
            multiplier=self.backoff_multiplier,
            jitter=self.jitter,
        )
