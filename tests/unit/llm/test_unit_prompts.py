# tests/unit/llm/test_unit_prompts.py — v1
"""Tests for llm/prompts.py — prompt rendering and example truncation."""

from __future__ import annotations

from logsage.core.models import LogEntry, Severity
from logsage.llm.prompts import (
    TRUNCATION_MARKER,
    build_analysis_prompt,
    truncate_message,
)


class TestTruncateMessage:
    def test_short_message_untouched(self):
        assert truncate_message("short", 10) == "short"

    def test_long_message_cut(self):
        out = truncate_message("x" * 50, 10)
        assert out == "x" * 10 + TRUNCATION_MARKER

    def test_non_positive_limit_disables(self):
        assert truncate_message("abc", 0) == "abc"


class TestBuildAnalysisPrompt:
    def test_contains_group_fields(self):
        prompt = build_analysis_prompt(
            "Connection to <IP> failed",
            Severity.ERROR,
            [LogEntry(message="Connection to 10.0.0.1 failed")],
            occurrences=42,
        )
        assert "Connection to <IP> failed" in prompt
        assert "Severity: ERROR" in prompt
        assert "Occurrences: 42" in prompt
        assert "Connection to 10.0.0.1 failed" in prompt
        assert '"root_cause"' in prompt

    def test_unknown_occurrences(self):
        prompt = build_analysis_prompt("p", "warning", [])
        assert "Occurrences: unknown" in prompt
        assert "Severity: WARN" in prompt

    def test_pattern_stands_in_without_examples(self):
        prompt = build_analysis_prompt("only pattern", Severity.FATAL, [])
        assert prompt.count("only pattern") == 2

    def test_examples_capped_and_truncated(self):
        examples = ["a" * 30, "second", "third", "fourth"]
        prompt = build_analysis_prompt(
            "p", Severity.ERROR, examples, truncate_length=10, max_examples=2,
        )
        assert "a" * 10 + TRUNCATION_MARKER in prompt
        assert "second" in prompt
        assert "third" not in prompt
