# tests/unit/config/test_unit_analysis_config.py — v1
"""Tests for config/analysis.py — run config validation and clamping."""

from __future__ import annotations

import logging

import pytest

from logsage.config.analysis import AnalysisConfig
from logsage.config.settings import MAX_CONCURRENCY, ConfigurationError, Settings


class TestAnalysisConfig:
    def test_defaults(self):
        config = AnalysisConfig()
        assert config.concurrency == 5
        assert config.cache_enabled is True
        assert config.deadline_s is None

    def test_concurrency_clamped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="logsage.config.analysis"):
            config = AnalysisConfig(concurrency=100)
        assert config.concurrency == MAX_CONCURRENCY == 20
        assert "clamping" in caplog.text

    def test_concurrency_at_maximum_kept(self):
        assert AnalysisConfig(concurrency=20).concurrency == 20

    @pytest.mark.parametrize("value", [0, -3])
    def test_non_positive_concurrency_rejected(self, value):
        with pytest.raises(ConfigurationError, match="concurrency"):
            AnalysisConfig(concurrency=value)

    def test_negative_retries_rejected(self):
        with pytest.raises(ConfigurationError, match="max_retries"):
            AnalysisConfig(max_retries=-1)

    def test_non_positive_deadline_rejected(self):
        with pytest.raises(ConfigurationError, match="deadline_s"):
            AnalysisConfig(deadline_s=0)

    def test_frozen(self):
        config = AnalysisConfig()
        with pytest.raises(AttributeError):
            config.concurrency = 3  # type: ignore[misc]


class TestFromSettings:
    def test_maps_settings(self):
        settings = Settings(
            _env_file=None,
            analysis_concurrency=7,
            retry_max_retries=1,
            cache_enabled=False,
            analysis_deadline_s=30,
            group_max_examples=2,
        )
        config = AnalysisConfig.from_settings(settings)
        assert config.concurrency == 7
        assert config.max_retries == 1
        assert config.cache_enabled is False
        assert config.deadline_s == 30
        assert config.max_examples == 2

    def test_overrides_win(self):
        config = AnalysisConfig.from_settings(
            Settings(_env_file=None), concurrency=2, cache_enabled=False,
        )
        assert config.concurrency == 2
        assert config.cache_enabled is False

    def test_none_overrides_ignored(self):
        config = AnalysisConfig.from_settings(
            Settings(_env_file=None, analysis_concurrency=4), concurrency=None, max_retries=None,
        )
        assert config.concurrency == 4
        assert config.max_retries == 3

    def test_invalid_override_rejected(self):
        with pytest.raises(ConfigurationError):
            AnalysisConfig.from_settings(Settings(_env_file=None), concurrency=0)


class TestRetryPolicy:
    def test_policy_built_from_config(self):
        policy = AnalysisConfig(max_retries=2, initial_backoff_s=0.5, jitter=False).retry_policy()
        assert policy.max_attempts == 3
        assert policy.initial_backoff_s == 0.5
        assert policy.jitter is False
