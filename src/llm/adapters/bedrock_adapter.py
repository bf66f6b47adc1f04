# src/llm/adapters/bedrock_adapter.py — v1
"""AWS Bedrock adapter implementing BaseLLMClient.

Requires 'boto3' package: pip install boto3.
Calls the bedrock-runtime Converse API. boto3 is synchronous, so each call
runs in a worker thread. Credentials come from settings when given,
otherwise from the standard AWS chain (environment, ~/.aws, instance role).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from logsage.llm.base_client import BaseLLMClient
from logsage.llm.errors import ProviderError, ProviderErrorKind, kind_for_status
from logsage.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "anthropic.claude-3-5-sonnet-20241022-v2:0"

_CODE_KINDS: dict[str, ProviderErrorKind] = {
    "ThrottlingException": ProviderErrorKind.RATE_LIMITED,
    "TooManyRequestsException": ProviderErrorKind.RATE_LIMITED,
    "ServiceQuotaExceededException": ProviderErrorKind.RATE_LIMITED,
    "AccessDeniedException": ProviderErrorKind.AUTH_FAILURE,
    "UnrecognizedClientException": ProviderErrorKind.AUTH_FAILURE,
    "ExpiredTokenException": ProviderErrorKind.AUTH_FAILURE,
    "ValidationException": ProviderErrorKind.INVALID_REQUEST,
    "ResourceNotFoundException": ProviderErrorKind.INVALID_REQUEST,
    "ModelNotReadyException": ProviderErrorKind.SERVER_ERROR,
    "ModelTimeoutException": ProviderErrorKind.SERVER_ERROR,
    "InternalServerException": ProviderErrorKind.SERVER_ERROR,
    "ServiceUnavailableException": ProviderErrorKind.SERVER_ERROR,
}


def map_client_error(exc: Exception, provider: str = "bedrock") -> ProviderError:
    """Translate a botocore exception into a ProviderError.

    ClientError carries the service error code and HTTP status; the code
    decides first, the status is the fallback. Missing credentials are an
    auth failure, every other botocore error is a transport failure.
    """
    from botocore.exceptions import (
        BotoCoreError,
        ClientError,
        NoCredentialsError,
        PartialCredentialsError,
    )

    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        kind = _CODE_KINDS.get(code)
        if kind is None:
            kind = kind_for_status(status) if status else ProviderErrorKind.UNKNOWN
        return ProviderError(
            kind,
            f"{code}: {error.get('Message', '')}" if code else str(exc),
            provider=provider,
            status_code=status,
        )
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return ProviderError(ProviderErrorKind.AUTH_FAILURE, str(exc), provider=provider)
    if isinstance(exc, BotoCoreError):
        return ProviderError(ProviderErrorKind.NETWORK, str(exc), provider=provider)
    return ProviderError(ProviderErrorKind.UNKNOWN, str(exc), provider=provider)


class BedrockAdapter(BaseLLMClient):
    """Adapter for models served through AWS Bedrock."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        region: str = "",
        access_key_id: str = "",
        secret_access_key: str = "",
        session_token: str = "",
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        self._model = model
        self._region = region
        self._credentials = {
            "aws_access_key_id": access_key_id,
            "aws_secret_access_key": secret_access_key,
            "aws_session_token": session_token,
        }
        self.__client = client

    @property
    def _client(self):
        """Lazy-init bedrock-runtime client (only on first API call)."""
        if self.__client is None:
            try:
                import boto3
            except ImportError as e:
                raise ImportError(
                    "boto3 package required for Bedrock: pip install boto3"
                ) from e
            kwargs: dict[str, str] = {k: v for k, v in self._credentials.items() if v}
            if self._region:
                kwargs["region_name"] = self._region
            self.__client = boto3.client("bedrock-runtime", **kwargs)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
    ) -> LLMResponse:
        """Text completion via the Converse API."""
        request: dict[str, Any] = {
            "modelId": self._model,
            "messages": [
                {"role": m.role, "content": [{"text": m.content}]}
                for m in messages if m.role != "system"
            ],
            "inferenceConfig": {"maxTokens": max_tokens, "temperature": temperature},
        }
        if system:
            request["system"] = [{"text": system}]

        client = self._client
        from botocore.exceptions import BotoCoreError, ClientError

        start = time.monotonic()
        try:
            response = await asyncio.to_thread(client.converse, **request)
        except (BotoCoreError, ClientError) as e:
            raise map_client_error(e, self.provider_name) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        usage = response.get("usage", {})
        return LLMResponse(
            content=self._extract_content(response),
            input_tokens=usage.get("inputTokens", 0),
            output_tokens=usage.get("outputTokens", 0),
            model=self._model,
            provider="bedrock",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "bedrock"

    @property
    def model_name(self) -> str:
        return self._model

    @staticmethod
    def _extract_content(response: dict[str, Any]) -> str:
        blocks = response.get("output", {}).get("message", {}).get("content", [])
        return "".join(block.get("text", "") for block in blocks)
