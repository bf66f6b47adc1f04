# src/config/settings.py — v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings. Every field
maps to an upper-case environment variable of the same name
(ANALYSIS_CONCURRENCY, CACHE_BACKEND, RETRY_MAX_RETRIES, ...).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_CONCURRENCY = 20


class ConfigurationError(Exception):
    """Raised when configuration is invalid or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_provider: str = "anthropic"
    llm_model: str = ""
    llm_temperature: float = 0.2
    llm_max_tokens: int = 2048

    # Provider API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""
    google_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # AWS Bedrock (blank values fall back to the standard AWS credential chain)
    aws_region: str = ""
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_session_token: str = ""

    # === Analysis ===
    analysis_concurrency: int = 5
    request_timeout_s: float = 60.0
    analysis_deadline_s: float | None = None
    cancel_grace_s: float = 5.0

    # === Retry ===
    retry_max_retries: int = 3
    retry_initial_backoff_s: float = 1.0
    retry_max_backoff_s: float = 30.0
    retry_backoff_multiplier: float = 2.0
    retry_jitter: bool = True

    # === Grouping ===
    group_by_severity: bool = True
    group_max_examples: int = 3
    group_min_severity: str = ""

    # === Prompt ===
    prompt_truncate_length: int = 2000

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["sqlite", "json", "redis"] = "sqlite"
    cache_root: Path = Path("~/.logsage/cache")
    cache_redis_url: str = ""
    cache_io_timeout_s: float = 2.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("analysis_deadline_s", "log_file", mode="before")
    @classmethod
    def _blank_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate value ranges and cross-field consistency rules."""
        errors: list[str] = []

        if self.analysis_concurrency <= 0:
            errors.append("ANALYSIS_CONCURRENCY must be > 0")
        if self.retry_max_retries < 0:
            errors.append("RETRY_MAX_RETRIES must be >= 0")
        if self.retry_initial_backoff_s < 0:
            errors.append("RETRY_INITIAL_BACKOFF_S must be >= 0")
        if self.retry_max_backoff_s < self.retry_initial_backoff_s:
            errors.append("RETRY_MAX_BACKOFF_S must be >= RETRY_INITIAL_BACKOFF_S")
        if self.retry_backoff_multiplier < 1.0:
            errors.append("RETRY_BACKOFF_MULTIPLIER must be >= 1.0")
        if self.request_timeout_s <= 0:
            errors.append("REQUEST_TIMEOUT_S must be > 0")
        if self.analysis_deadline_s is not None and self.analysis_deadline_s <= 0:
            errors.append("ANALYSIS_DEADLINE_S must be > 0 when set")
        if self.cancel_grace_s < 0:
            errors.append("CANCEL_GRACE_S must be >= 0")
        if self.cache_io_timeout_s <= 0:
            errors.append("CACHE_IO_TIMEOUT_S must be > 0")
        if self.group_max_examples < 0:
            errors.append("GROUP_MAX_EXAMPLES must be >= 0")
        if self.prompt_truncate_length <= 0:
            errors.append("PROMPT_TRUNCATE_LENGTH must be > 0")
        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")
        if bool(self.aws_access_key_id) != bool(self.aws_secret_access_key):
            errors.append("AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together")
        if self.aws_region and "-" not in self.aws_region:
            errors.append(f"AWS_REGION {self.aws_region!r} is not a region name like us-east-1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
