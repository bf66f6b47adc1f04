# tests/unit/config/test_unit_settings.py — v3
"""Tests for config/settings.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from logsage.config.settings import ConfigurationError, Settings, load_settings


class TestDefaults:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.llm_provider == "anthropic"
        assert s.analysis_concurrency == 5
        assert s.retry_max_retries == 3
        assert s.cache_enabled is True
        assert s.cache_backend == "sqlite"
        assert s.analysis_deadline_s is None
        assert s.log_file is None

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_CONCURRENCY", "8")
        monkeypatch.setenv("CACHE_BACKEND", "json")
        monkeypatch.setenv("RETRY_JITTER", "false")
        s = Settings(_env_file=None)
        assert s.analysis_concurrency == 8
        assert s.cache_backend == "json"
        assert s.retry_jitter is False

    def test_blank_deadline_is_none(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_DEADLINE_S", "")
        assert Settings(_env_file=None).analysis_deadline_s is None

    def test_log_level_upper_cased(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("LLM_PROVIDER=openai\nCACHE_ROOT=/tmp/x\n", encoding="utf-8")
        s = Settings(_env_file=env)
        assert s.llm_provider == "openai"
        assert s.cache_root == Path("/tmp/x")


class TestValidation:
    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("analysis_concurrency", 0, "ANALYSIS_CONCURRENCY"),
            ("retry_max_retries", -1, "RETRY_MAX_RETRIES"),
            ("request_timeout_s", 0, "REQUEST_TIMEOUT_S"),
            ("analysis_deadline_s", -5, "ANALYSIS_DEADLINE_S"),
            ("retry_backoff_multiplier", 0.5, "RETRY_BACKOFF_MULTIPLIER"),
            ("cache_io_timeout_s", 0, "CACHE_IO_TIMEOUT_S"),
        ],
    )
    def test_rejects_out_of_range(self, field, value, message):
        with pytest.raises(ConfigurationError, match=message):
            Settings(_env_file=None, **{field: value})

    def test_backoff_bounds(self):
        with pytest.raises(ConfigurationError, match="RETRY_MAX_BACKOFF_S"):
            Settings(_env_file=None, retry_initial_backoff_s=10, retry_max_backoff_s=1)

    def test_all_errors_reported_together(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None, analysis_concurrency=0, retry_max_retries=-1)
        assert "ANALYSIS_CONCURRENCY" in str(exc_info.value)
        assert "RETRY_MAX_RETRIES" in str(exc_info.value)

    def test_aws_keys_set_together(self):
        with pytest.raises(ConfigurationError, match="AWS_SECRET_ACCESS_KEY"):
            Settings(_env_file=None, aws_access_key_id="AKIAEXAMPLE")

    def test_aws_region_format(self):
        with pytest.raises(ConfigurationError, match="AWS_REGION"):
            Settings(_env_file=None, aws_region="virginia")
        assert Settings(_env_file=None, aws_region="eu-west-1").aws_region == "eu-west-1"

    def test_concurrency_above_maximum_is_accepted(self):
        # Clamping happens when the run config is built
        assert Settings(_env_file=None, analysis_concurrency=50).analysis_concurrency == 50


class TestLoadSettings:
    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        s = load_settings(llm_provider="ollama", cache_enabled=False)
        assert s.llm_provider == "ollama"
        assert s.cache_enabled is False
