# tests/unit/logging/test_unit_logger.py — v2
"""Tests for logging/logger.py."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from logsage.logging.context import clear_context, set_group_context, set_run_context
from logsage.logging.logger import (
    JsonFormatter,
    TextFormatter,
    get_logger,
    parse_size,
    setup_logging,
)


def _record(msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("logsage.test", logging.INFO, __file__, 1, msg, args, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


@pytest.fixture(autouse=True)
def _reset_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger("logsage")
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


class TestParseSize:
    @pytest.mark.parametrize(
        "text,expected",
        [("10MB", 10 * 1024**2), ("512", 512), ("1 gb", 1024**3), ("4KB", 4096)],
    )
    def test_valid(self, text, expected):
        assert parse_size(text) == expected

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size("ten megabytes")


class TestJsonFormatter:
    def test_basic_fields(self):
        data = json.loads(JsonFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "logsage.test"
        assert data["message"] == "hello world"
        assert "context" not in data

    def test_context_injected(self):
        set_run_context("run123", "openai")
        set_group_context("fp-abc", 4)
        data = json.loads(JsonFormatter().format(_record()))
        assert data["context"] == {
            "run_id": "run123", "provider": "openai", "fingerprint": "fp-abc", "group_index": 4,
        }

    def test_extra_data(self):
        data = json.loads(JsonFormatter().format(_record(data={"attempt": 2})))
        assert data["data"] == {"attempt": 2}


class TestTextFormatter:
    def test_includes_run_and_fingerprint(self):
        set_run_context("abcdef123456")
        set_group_context("0123456789abcdef")
        line = TextFormatter().format(_record())
        assert "[INFO    ]" in line
        assert "[run abcdef12]" in line
        assert "(0123456789ab)" in line
        assert line.endswith("- hello world")


class TestSetupLogging:
    def test_console_handler_to_stderr(self, restore_root_logger):
        root = setup_logging(level="debug", log_format="json")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_reinit_does_not_duplicate(self, restore_root_logger):
        setup_logging()
        root = setup_logging()
        assert len(root.handlers) == 1

    def test_file_handler(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "logsage.log"
        root = setup_logging(log_file=log_file, rotation="1KB", retention=2)
        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024
        assert file_handlers[0].backupCount == 2
        get_logger("unit").info("written")
        file_handlers[0].flush()
        assert "written" in log_file.read_text(encoding="utf-8")

    def test_get_logger_namespaced(self):
        assert get_logger("cache").name == "logsage.cache"
