# src/llm/client_factory.py — v4
"""Provider registry for analysis clients.

Maps a provider name (the first half of LLM_PROVIDER/--model
``provider:model``) to the adapter that talks to it. Adapter modules are
only imported when their provider is requested, so each SDK is needed only
by the runs that use it.

Settings reach an adapter in two ways: connection settings (keys,
endpoints, AWS region and credentials) become constructor arguments, and
the prompt/sampling knobs shared by every provider (PROMPT_TRUNCATE_LENGTH,
LLM_TEMPERATURE, LLM_MAX_TOKENS) are set on the built client.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable

from logsage.config.settings import Settings
from logsage.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "logsage.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "logsage.llm.adapters.openai_adapter.OpenAIAdapter",
    "google": "logsage.llm.adapters.google_adapter.GoogleAdapter",
    "ollama": "logsage.llm.adapters.ollama_adapter.OllamaAdapter",
    "bedrock": "logsage.llm.adapters.bedrock_adapter.BedrockAdapter",
}


def _openai_kwargs(settings: Settings) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"api_key": settings.openai_api_key}
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    return kwargs


def _bedrock_kwargs(settings: Settings) -> dict[str, Any]:
    return {
        "region": settings.aws_region,
        "access_key_id": settings.aws_access_key_id,
        "secret_access_key": settings.aws_secret_access_key,
        "session_token": settings.aws_session_token,
    }


_CONNECTION_SETTINGS: dict[str, Callable[[Settings], dict[str, Any]]] = {
    "anthropic": lambda s: {"api_key": s.anthropic_api_key},
    "openai": _openai_kwargs,
    "google": lambda s: {"api_key": s.google_api_key},
    "ollama": lambda s: {"base_url": s.ollama_base_url},
    "bedrock": _bedrock_kwargs,
}


class UnsupportedProviderError(ValueError):
    """No adapter is registered under the requested provider name."""


def available_providers() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Build the analysis client for ``provider`` serving ``model``.

    Explicit ``kwargs`` win over values derived from ``settings``. Without
    settings the adapter keeps its own defaults and the SDK's usual
    environment lookup.

    Raises:
        UnsupportedProviderError: ``provider`` is not in the registry.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(available_providers())}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if settings is not None and provider in _CONNECTION_SETTINGS:
        for key, value in _CONNECTION_SETTINGS[provider](settings).items():
            init_kwargs.setdefault(key, value)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    client = adapter_cls(**init_kwargs)
    if settings is not None:
        client.truncate_length = settings.prompt_truncate_length
        client.temperature = settings.llm_temperature
        client.max_tokens = settings.llm_max_tokens
    return client


def register_provider(name: str, class_path: str) -> None:
    """Expose a BaseLLMClient subclass under ``name``.

    ``class_path`` is a dotted ``module.Class`` path, resolved on first use.
    Registered providers get no connection settings; pass what they need
    as ``create_llm_client`` keyword arguments.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    module_path, class_name = class_path.rsplit(".", 1)
    return getattr(importlib.import_module(module_path), class_name)
