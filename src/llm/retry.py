# src/llm/retry.py — v2
"""Retry policy with exponential backoff for provider calls.

Each attempt ends in one of four transitions:
  Success, Retryable(delay) -> next attempt, NonRetryable, ExhaustedRetries.
RetryPolicy.decide() is the pure transition function; RetryPolicy.run()
drives it on the event loop, suspending with asyncio.sleep between attempts
so sibling tasks keep running.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from logsage.llm.errors import (
    RETRYABLE_KINDS,
    ProviderError,
    ProviderErrorKind,
    kind_for_status,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class RetryExhausted(Exception):
    """Terminal failure of a retried call.

    ``reason`` is "non_retryable" when the last error was classified as
    permanent, "exhausted" when the attempt budget ran out.
    """

    def __init__(self, attempts: int, last_error: BaseException, reason: str):
        self.attempts = attempts
        self.last_error = last_error
        self.reason = reason
        super().__init__(f"Failed after {attempts} attempt(s) ({reason}): {last_error}")


class RetryAborted(Exception):
    """The stop predicate fired before the next attempt could start."""

    def __init__(self, attempts: int, last_error: BaseException | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Aborted after {attempts} attempt(s)")


class Transition(str, Enum):
    RETRY = "retry"
    NON_RETRYABLE = "non_retryable"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of a failed attempt."""

    transition: Transition
    delay_s: float = 0.0


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff configuration plus the attempt state machine.

    Attributes:
        max_retries: Retries after the first attempt; total attempts are
            at most max_retries + 1.
        initial_backoff_s: Delay after the first failed attempt.
        max_backoff_s: Upper bound for any delay.
        multiplier: Growth factor between consecutive delays.
        jitter: Perturb delays uniformly within +/- jitter_ratio.
        jitter_ratio: Fraction of the delay used as jitter bound.
    """

    max_retries: int = 3
    initial_backoff_s: float = 1.0
    max_backoff_s: float = 30.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_ratio: float = 0.2

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.initial_backoff_s < 0 or self.max_backoff_s < 0:
            raise ValueError("backoff durations must be >= 0")
        if self.multiplier < 1.0:
            raise ValueError(f"multiplier must be >= 1.0, got {self.multiplier}")
        if not 0.0 <= self.jitter_ratio <= 1.0:
            raise ValueError(f"jitter_ratio must be within [0, 1], got {self.jitter_ratio}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def compute_delay(
        self,
        attempt: int,
        retry_after: float | None = None,
        rng: random.Random | None = None,
    ) -> float:
        """Delay to wait after failed attempt ``attempt`` (1-based)."""
        exponent = max(attempt - 1, 0)
        delay = min(self.max_backoff_s, self.initial_backoff_s * (self.multiplier ** exponent))
        if self.jitter and delay > 0:
            spread = delay * self.jitter_ratio
            delay += (rng or random).uniform(-spread, spread)  # noqa: S311
        delay = max(delay, 0.0)
        if retry_after is not None and retry_after > delay:
            delay = min(retry_after, self.max_backoff_s)
        return delay

    def decide(
        self,
        attempt: int,
        error: BaseException,
        rng: random.Random | None = None,
    ) -> RetryDecision:
        """Transition after failed attempt ``attempt`` (1-based)."""
        kind = classify_error(error)
        if kind not in RETRYABLE_KINDS:
            return RetryDecision(Transition.NON_RETRYABLE)
        if attempt >= self.max_attempts:
            return RetryDecision(Transition.EXHAUSTED)
        retry_after = error.retry_after if isinstance(error, ProviderError) else None
        return RetryDecision(Transition.RETRY, self.compute_delay(attempt, retry_after, rng))

    async def run(
        self,
        fn: Callable[[], Awaitable[Any]],
        *,
        label: str = "call",
        sleep: SleepFn | None = None,
        should_stop: Callable[[], bool] | None = None,
        on_retry: Callable[[int, BaseException, float], None] | None = None,
    ) -> tuple[Any, int]:
        """Call ``fn`` until it succeeds or the policy gives up.

        Returns:
            (result, attempts) on success.

        Raises:
            RetryExhausted: Non-retryable error or attempt budget exhausted.
            RetryAborted: ``should_stop`` returned True before an attempt.
        """
        do_sleep = sleep or asyncio.sleep
        attempt = 0
        last_error: BaseException | None = None

        while True:
            if should_stop is not None and should_stop():
                raise RetryAborted(attempt, last_error)
            attempt += 1
            try:
                return await fn(), attempt
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                decision = self.decide(attempt, e)

            if decision.transition is Transition.NON_RETRYABLE:
                raise RetryExhausted(attempt, last_error, "non_retryable") from last_error
            if decision.transition is Transition.EXHAUSTED:
                raise RetryExhausted(attempt, last_error, "exhausted") from last_error

            logger.warning(
                "%s failed (attempt %d/%d): %s, retrying in %.2fs",
                label, attempt, self.max_attempts, last_error, decision.delay_s,
            )
            if on_retry is not None:
                on_retry(attempt, last_error, decision.delay_s)
            await do_sleep(decision.delay_s)


_STATUS_RE = re.compile(r"\b([45]\d\d)\b")


def classify_error(error: BaseException) -> ProviderErrorKind:
    """Classify an exception into a provider failure class.

    ProviderError carries its kind. Other exceptions are classified by type,
    then by message heuristics. Anything unrecognized is UNKNOWN (retryable).
    """
    if isinstance(error, ProviderError):
        return error.kind
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return ProviderErrorKind.NETWORK

    msg = str(error).lower()
    name = type(error).__name__.lower()

    if "rate limit" in msg or "too many requests" in msg or "ratelimit" in name:
        return ProviderErrorKind.RATE_LIMITED
    if "unauthorized" in msg or "forbidden" in msg or "api key" in msg or "authentication" in name:
        return ProviderErrorKind.AUTH_FAILURE
    if "timeout" in name or "timed out" in msg or "timeout" in msg:
        return ProviderErrorKind.NETWORK
    if "connection" in msg or "connection" in name or "network" in msg:
        return ProviderErrorKind.NETWORK
    match = _STATUS_RE.search(msg)
    if match:
        return kind_for_status(int(match.group(1)))
    if "invalid request" in msg or "bad request" in msg:
        return ProviderErrorKind.INVALID_REQUEST
    return ProviderErrorKind.UNKNOWN


def is_retryable(error: BaseException) -> bool:
    return classify_error(error) in RETRYABLE_KINDS
