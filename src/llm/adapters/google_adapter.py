# src/llm/adapters/google_adapter.py — v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses google-generativeai SDK with a JSON response MIME type.
API-core exceptions carry an HTTP status in ``code``.
"""

from __future__ import annotations

import time
from typing import Any

from logsage.llm.base_client import BaseLLMClient
from logsage.llm.errors import ProviderError, ProviderErrorKind
from logsage.llm.models import LLMResponse, Message

DEFAULT_MODEL = "gemini-1.5-flash"


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(self, model: str = DEFAULT_MODEL, api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        import google.generativeai as genai
        from google.api_core import exceptions as gexc

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(
            self._model,
            system_instruction=system,
        )

        gen_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
            "response_mime_type": "application/json",
        }

        # Convert messages to Gemini format
        contents = []
        for m in messages:
            role = "model" if m.role == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": m.content}]})

        t0 = time.monotonic()
        try:
            resp = await model.generate_content_async(
                contents, generation_config=gen_config,
            )
            text = resp.text or ""
        except gexc.RetryError as e:
            raise ProviderError(
                ProviderErrorKind.NETWORK, str(e), provider=self.provider_name,
            ) from e
        except gexc.GoogleAPICallError as e:
            if e.code is None:
                raise ProviderError(
                    ProviderErrorKind.UNKNOWN, str(e), provider=self.provider_name,
                ) from e
            raise ProviderError.from_status(
                int(e.code), e.message or str(e), provider=self.provider_name,
            ) from e
        except ValueError as e:
            # resp.text raises when the candidate was blocked or empty
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, f"no text in response: {e}",
                provider=self.provider_name,
            ) from e
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=text,
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            model=self._model,
            provider="google",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def model_name(self) -> str:
        return self._model
