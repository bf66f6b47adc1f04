# src/llm/errors.py — v1
"""Provider error taxonomy.

Adapters translate SDK exceptions into ProviderError so the retry policy can
classify failures without knowing which backend produced them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ProviderErrorKind(str, Enum):
    """Failure classes reported by a provider call."""

    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"
    INVALID_REQUEST = "invalid_request"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({
    ProviderErrorKind.NETWORK,
    ProviderErrorKind.RATE_LIMITED,
    ProviderErrorKind.SERVER_ERROR,
    ProviderErrorKind.UNKNOWN,
})


class ProviderError(Exception):
    """Failure of a single provider call.

    Args:
        kind: Failure class.
        message: Human-readable detail.
        provider: Provider identifier, when known.
        status_code: Upstream HTTP status, when known.
        retry_after: Server-suggested delay in seconds (rate limiting).
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str = "",
        provider: str = "",
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.retry_after = retry_after
        prefix = f"[{provider}] " if provider else ""
        super().__init__(f"{prefix}{kind.value}: {message}" if message else f"{prefix}{kind.value}")

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @classmethod
    def from_status(
        cls,
        status_code: int,
        message: str = "",
        provider: str = "",
        retry_after: float | None = None,
    ) -> ProviderError:
        """Build an error from an upstream HTTP status code."""
        return cls(
            kind_for_status(status_code),
            message,
            provider=provider,
            status_code=status_code,
            retry_after=retry_after,
        )


def kind_for_status(status_code: int) -> ProviderErrorKind:
    """Map an HTTP status code to a failure class."""
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code in (401, 403):
        return ProviderErrorKind.AUTH_FAILURE
    if 400 <= status_code < 500:
        return ProviderErrorKind.INVALID_REQUEST
    if status_code >= 500:
        return ProviderErrorKind.SERVER_ERROR
    return ProviderErrorKind.UNKNOWN


def parse_retry_after(value: object) -> float | None:
    """Parse a Retry-After header value given in seconds."""
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def map_api_error(exc: Exception, sdk: Any, provider: str) -> ProviderError:
    """Translate an ``anthropic``/``openai`` SDK exception.

    Both SDKs expose the same hierarchy: APITimeoutError and
    APIConnectionError for transport failures, APIStatusError (with
    ``status_code`` and the raw ``response``) for HTTP errors.
    """
    if isinstance(exc, sdk.APITimeoutError):
        return ProviderError(ProviderErrorKind.NETWORK, "request timed out", provider=provider)
    if isinstance(exc, sdk.APIConnectionError):
        return ProviderError(ProviderErrorKind.NETWORK, str(exc), provider=provider)
    if isinstance(exc, sdk.APIStatusError):
        response = getattr(exc, "response", None)
        headers = getattr(response, "headers", None) or {}
        return ProviderError.from_status(
            exc.status_code,
            getattr(exc, "message", "") or str(exc),
            provider=provider,
            retry_after=parse_retry_after(headers.get("retry-after")),
        )
    return ProviderError(ProviderErrorKind.UNKNOWN, str(exc), provider=provider)
