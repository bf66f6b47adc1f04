# tests/unit/llm/test_unit_errors.py — v1
"""Tests for llm/errors.py — status mapping and SDK exception translation."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from logsage.llm.errors import (
    ProviderError,
    ProviderErrorKind,
    kind_for_status,
    map_api_error,
    parse_retry_after,
)


class _ConnectionError(Exception):
    pass


class _TimeoutError(_ConnectionError):
    pass


class _StatusError(Exception):
    def __init__(self, status_code: int, message: str = "", headers: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.response = SimpleNamespace(headers=headers or {})


_FAKE_SDK = SimpleNamespace(
    APITimeoutError=_TimeoutError,
    APIConnectionError=_ConnectionError,
    APIStatusError=_StatusError,
)


class TestKindForStatus:
    @pytest.mark.parametrize(
        "status,kind",
        [
            (429, ProviderErrorKind.RATE_LIMITED),
            (401, ProviderErrorKind.AUTH_FAILURE),
            (403, ProviderErrorKind.AUTH_FAILURE),
            (400, ProviderErrorKind.INVALID_REQUEST),
            (404, ProviderErrorKind.INVALID_REQUEST),
            (408, ProviderErrorKind.INVALID_REQUEST),
            (500, ProviderErrorKind.SERVER_ERROR),
            (503, ProviderErrorKind.SERVER_ERROR),
            (302, ProviderErrorKind.UNKNOWN),
        ],
    )
    def test_mapping(self, status, kind):
        assert kind_for_status(status) is kind


class TestProviderError:
    def test_message_format(self):
        err = ProviderError(ProviderErrorKind.NETWORK, "reset", provider="openai")
        assert str(err) == "[openai] network: reset"

    def test_retryable(self):
        assert ProviderError(ProviderErrorKind.RATE_LIMITED).retryable is True
        assert ProviderError(ProviderErrorKind.AUTH_FAILURE).retryable is False

    def test_from_status(self):
        err = ProviderError.from_status(429, "slow down", provider="anthropic", retry_after=2.0)
        assert err.kind is ProviderErrorKind.RATE_LIMITED
        assert err.status_code == 429
        assert err.retry_after == 2.0


class TestParseRetryAfter:
    def test_values(self):
        assert parse_retry_after("3") == 3.0
        assert parse_retry_after(" 1.5 ") == 1.5
        assert parse_retry_after(None) is None
        assert parse_retry_after("Wed, 21 Oct 2026 07:28:00 GMT") is None
        assert parse_retry_after("-1") is None


class TestMapApiError:
    def test_timeout(self):
        err = map_api_error(_TimeoutError("t"), _FAKE_SDK, "openai")
        assert err.kind is ProviderErrorKind.NETWORK
        assert err.provider == "openai"

    def test_connection(self):
        err = map_api_error(_ConnectionError("refused"), _FAKE_SDK, "anthropic")
        assert err.kind is ProviderErrorKind.NETWORK

    def test_status_with_retry_after(self):
        exc = _StatusError(429, "rate limited", headers={"retry-after": "4"})
        err = map_api_error(exc, _FAKE_SDK, "anthropic")
        assert err.kind is ProviderErrorKind.RATE_LIMITED
        assert err.retry_after == 4.0
        assert err.status_code == 429

    def test_status_server_error(self):
        err = map_api_error(_StatusError(502, "bad gateway"), _FAKE_SDK, "openai")
        assert err.kind is ProviderErrorKind.SERVER_ERROR

    def test_unrecognized(self):
        err = map_api_error(RuntimeError("huh"), _FAKE_SDK, "openai")
        assert err.kind is ProviderErrorKind.UNKNOWN
