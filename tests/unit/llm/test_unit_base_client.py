# tests/unit/llm/test_unit_base_client.py — v3
"""Tests for llm/base_client.py — ABC contract and analyze()."""

from __future__ import annotations

import pytest

from logsage.core.models import Severity
from logsage.llm.base_client import BaseLLMClient
from logsage.llm.errors import ProviderError, ProviderErrorKind
from logsage.llm.prompts import TRUNCATION_MARKER


class TestBaseLLMClient:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            BaseLLMClient()  # type: ignore[abstract]

    def test_has_required_methods(self):
        assert hasattr(BaseLLMClient, "complete")
        assert hasattr(BaseLLMClient, "analyze")
        assert hasattr(BaseLLMClient, "provider_name")
        assert hasattr(BaseLLMClient, "model_name")


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_returns_response_text(self, make_provider):
        provider = make_provider(default='  {"root_cause": "x"}  ')
        text = await provider.analyze("pattern <NUM>", Severity.ERROR, ["pattern 12345"])
        assert text == '{"root_cause": "x"}'
        assert "pattern <NUM>" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_examples_respect_client_cap(self, make_provider):
        provider = make_provider()
        provider.max_prompt_examples = 1
        await provider.analyze("p", Severity.ERROR, ["first example", "second example"])
        assert "first example" in provider.prompts[0]
        assert "second example" not in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_per_call_truncate_length_overrides_client(self, make_provider):
        provider = make_provider()
        provider.truncate_length = 5000
        long_example = "connection reset by peer " * 10
        await provider.analyze("p", Severity.ERROR, [long_example], truncate_length=30)
        assert long_example[:30] + TRUNCATION_MARKER in provider.prompts[0]
        assert long_example not in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, make_provider):
        provider = make_provider(delay=1.0)
        with pytest.raises(ProviderError) as exc_info:
            await provider.analyze("p", Severity.ERROR, [], timeout_s=0.01)
        assert exc_info.value.kind is ProviderErrorKind.NETWORK

    @pytest.mark.asyncio
    async def test_empty_response(self, make_provider):
        provider = make_provider(default="   ")
        with pytest.raises(ProviderError) as exc_info:
            await provider.analyze("p", Severity.ERROR, [])
        assert exc_info.value.kind is ProviderErrorKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_provider_errors_pass_through(self, make_provider):
        err = ProviderError(ProviderErrorKind.AUTH_FAILURE, "bad key")
        provider = make_provider(default=err)
        with pytest.raises(ProviderError) as exc_info:
            await provider.analyze("p", Severity.ERROR, [])
        assert exc_info.value is err
