# src/llm/base_client.py — v3
"""Abstract LLM client interface.

Adapters implement complete(). analyze() is the provider capability the
orchestrator depends on: it renders the analysis prompt for one error
group, bounds the call with a timeout and returns the raw response text,
or raises ProviderError.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from logsage.core.models import LogEntry, Severity
from logsage.llm.errors import ProviderError, ProviderErrorKind
from logsage.llm.models import LLMResponse, Message
from logsage.llm.prompts import (
    DEFAULT_PROMPT_EXAMPLES,
    DEFAULT_TRUNCATE_LENGTH,
    SYSTEM_PROMPT,
    build_analysis_prompt,
)

logger = logging.getLogger(__name__)


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    truncate_length: int = DEFAULT_TRUNCATE_LENGTH
    max_prompt_examples: int = DEFAULT_PROMPT_EXAMPLES
    temperature: float = 0.2
    max_tokens: int = 2048

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Text completion. Raises ProviderError on failure."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai, google, ollama, bedrock)."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier used for requests and cache keys."""

    async def analyze(
        self,
        pattern: str,
        severity: Severity | str,
        examples: Sequence[LogEntry | str],
        timeout_s: float | None = None,
        occurrences: int | None = None,
        truncate_length: int | None = None,
    ) -> str:
        """Ask the model to explain one error pattern.

        ``truncate_length`` overrides the client-wide ``truncate_length`` for
        this call.

        Returns:
            Raw response text, to be fed to the JSON extractor.

        Raises:
            ProviderError: On timeout, empty response or any mapped SDK failure.
        """
        prompt = build_analysis_prompt(
            pattern,
            severity,
            examples,
            occurrences=occurrences,
            truncate_length=truncate_length or self.truncate_length,
            max_examples=self.max_prompt_examples,
        )
        call = self.complete(
            messages=[Message(role="user", content=prompt)],
            system=SYSTEM_PROMPT,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        try:
            if timeout_s is not None and timeout_s > 0:
                response = await asyncio.wait_for(call, timeout=timeout_s)
            else:
                response = await call
        except asyncio.TimeoutError as e:
            raise ProviderError(
                ProviderErrorKind.NETWORK,
                f"request timed out after {timeout_s}s",
                provider=self.provider_name,
            ) from e

        content = (response.content or "").strip()
        if not content:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, "empty response", provider=self.provider_name,
            )
        logger.debug(
            "%s/%s answered in %dms (%d in, %d out tokens)",
            self.provider_name, self.model_name, response.latency_ms,
            response.input_tokens, response.output_tokens,
        )
        return content
