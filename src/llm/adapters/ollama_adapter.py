# src/llm/adapters/ollama_adapter.py — v2
"""Ollama local LLM adapter implementing BaseLLMClient.

Uses the ollama Python SDK in JSON format mode.
"""

from __future__ import annotations

import time
from typing import Any

from logsage.llm.base_client import BaseLLMClient
from logsage.llm.errors import ProviderError, ProviderErrorKind
from logsage.llm.models import LLMResponse, Message

DEFAULT_MODEL = "llama3"
DEFAULT_HOST = "http://localhost:11434"


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_HOST,
        client: Any = None,
        **kwargs: Any,
    ):
        self._model = model
        self._host = base_url or DEFAULT_HOST
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            import ollama

            self._client = ollama.AsyncClient(host=self._host)
        return self._client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        import httpx
        import ollama

        msgs: list[dict[str, str]] = []
        if system:
            msgs.append({"role": "system", "content": system})
        for m in messages:
            msgs.append({"role": m.role, "content": m.content})

        options: dict[str, Any] = {
            "num_predict": max_tokens,
            "temperature": temperature,
        }

        t0 = time.monotonic()
        try:
            resp = await self._get_client().chat(
                model=self._model, messages=msgs, options=options, format="json",
            )
        except ollama.ResponseError as e:
            raise ProviderError.from_status(
                e.status_code, e.error, provider=self.provider_name,
            ) from e
        except (ConnectionError, httpx.TransportError) as e:
            raise ProviderError(
                ProviderErrorKind.NETWORK, f"cannot reach {self._host}: {e}",
                provider=self.provider_name,
            ) from e
        latency = int((time.monotonic() - t0) * 1000)

        return LLMResponse(
            content=resp["message"]["content"],
            input_tokens=resp.get("prompt_eval_count", 0) or 0,
            output_tokens=resp.get("eval_count", 0) or 0,
            model=self._model,
            provider="ollama",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model
