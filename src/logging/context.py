# src/logging/context.py — v2
"""Contextual logging support — attach run_id, provider and group to log records.

Context variables are copied into every asyncio task at creation, so
values set inside one group's task never leak into a sibling's records.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_group_index: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "group_index", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    run_id: str | None = None
    provider: str | None = None
    fingerprint: str | None = None
    group_index: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        provider=_provider.get(),
        fingerprint=_fingerprint.get(),
        group_index=_group_index.get(),
    )


def set_run_context(run_id: str, provider: str | None = None) -> None:
    """Set run-level context (called once per analyze_all)."""
    _run_id.set(run_id)
    _provider.set(provider)


def set_group_context(fingerprint: str, group_index: int | None = None) -> None:
    """Set group-level context (called inside each group's task)."""
    _fingerprint.set(fingerprint)
    _group_index.set(group_index)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _provider.set(None)
    _fingerprint.set(None)
    _group_index.set(None)
