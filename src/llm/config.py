# src/llm/config.py — v3
"""Provider/model resolution.

Resolution order:
  1. Explicit arguments (CLI --provider / --model)
  2. LLM_PROVIDER + LLM_MODEL from settings
  3. Per-provider default model when no model is configured
"""

from __future__ import annotations

from dataclasses import dataclass

from logsage.config.settings import Settings

_FALLBACK_PROVIDER = "anthropic"

DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
    "google": "gemini-1.5-flash",
    "ollama": "llama3",
    "bedrock": "anthropic.claude-3-5-sonnet-20241022-v2:0",
}


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved provider:model pair."""

    provider: str
    model: str
    source: str  # "explicit", "settings", or "default"

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty or malformed."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    provider, model = provider.strip(), model.strip()
    if not provider or not model:
        return None
    return (provider, model)


def resolve_llm(
    settings: Settings,
    provider: str | None = None,
    model: str | None = None,
) -> LLMAssignment:
    """Resolve the provider and model used for an analysis run.

    Args:
        settings: Application settings.
        provider: Explicit provider override.
        model: Explicit model override, or a 'provider:model' string.

    Returns:
        Resolved LLMAssignment with provider, model, and resolution source.
    """
    if model and provider is None:
        parsed = parse_assignment(model)
        if parsed and parsed[0] in DEFAULT_MODELS:
            return LLMAssignment(provider=parsed[0], model=parsed[1], source="explicit")

    explicit = bool(provider or model)
    resolved_provider = (provider or settings.llm_provider or _FALLBACK_PROVIDER).strip().lower()
    resolved_model = model or settings.llm_model
    if resolved_model:
        return LLMAssignment(
            provider=resolved_provider,
            model=resolved_model,
            source="explicit" if explicit else "settings",
        )

    return LLMAssignment(
        provider=resolved_provider,
        model=DEFAULT_MODELS.get(resolved_provider, ""),
        source="default",
    )
