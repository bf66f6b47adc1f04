# tests/unit/tracking/test_unit_call_logger.py — v2
"""Tests for tracking/call_logger.py."""

from __future__ import annotations

import json

from logsage.tracking.call_logger import CallLogger


class TestCallLogger:
    def test_record(self):
        cl = CallLogger()
        rec = cl.record("openai", "gpt-4o", 2, "fp", attempt=1, latency_ms=120)
        assert rec.status == "success"
        assert rec.group_index == 2
        assert cl.total_calls == 1

    def test_counts_and_latency(self):
        cl = CallLogger()
        cl.record("p", "m", 0, "fp", 1, 100, status="retry", error="429")
        cl.record("p", "m", 0, "fp", 2, 300)
        assert cl.count("retry") == 1
        assert cl.count("success") == 1
        assert cl.average_latency_ms == 200.0

    def test_empty_latency(self):
        assert CallLogger().average_latency_ms == 0.0

    def test_records_is_a_copy(self):
        cl = CallLogger()
        cl.record("p", "m", 0, "fp", 1, 10)
        cl.records.clear()
        assert cl.total_calls == 1

    def test_save_jsonl(self, tmp_path):
        cl = CallLogger()
        cl.record("p", "m", 0, "fp0", 1, 10)
        cl.record("p", "m", 1, "fp1", 1, 20, status="failed", error="boom")
        path = tmp_path / "out" / "calls.jsonl"
        cl.save(path)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        second = json.loads(lines[1])
        assert second["fingerprint"] == "fp1"
        assert second["status"] == "failed"
        assert second["error"] == "boom"
