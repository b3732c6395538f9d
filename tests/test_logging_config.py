"""Tests for structured logging configuration."""

import json
import logging
import sys

import pytest

from gcsindex.logging_config import JSONFormatter, configure_logging


def _record(msg="hello %s", args=("world",), **extra):
    record = logging.LogRecord("gcsindex.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "gcsindex.test"
        assert entry["message"] == "hello world"
        assert "timestamp" in entry

    def test_request_extras(self):
        record = _record(method="GET", path="/docs/", status=200, duration_ms=1.5, remote="10.0.0.1")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["method"] == "GET"
        assert entry["path"] == "/docs/"
        assert entry["status"] == 200
        assert entry["duration_ms"] == 1.5
        assert entry["remote"] == "10.0.0.1"
        assert "user_agent" not in entry

    def test_arbitrary_extra_fields(self):
        record = _record(bucket="docs-bucket", attempt=2, _internal="hidden")
        entry = json.loads(JSONFormatter().format(record))
        assert entry["bucket"] == "docs-bucket"
        assert entry["attempt"] == 2
        assert "_internal" not in entry

    def test_standard_attributes_not_copied(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert set(entry) == {"timestamp", "level", "logger", "message"}

    def test_extra_does_not_override_core_fields(self):
        entry = json.loads(JSONFormatter().format(_record(level="fake")))
        assert entry["level"] == "INFO"

    def test_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_format(self, restore_root_logger):
        configure_logging("DEBUG", "json")
        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_text_format(self, restore_root_logger):
        configure_logging("warning", "text")
        assert restore_root_logger.level == logging.WARNING
        assert not isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_defaults_to_info(self, restore_root_logger):
        configure_logging("LOUD")
        assert restore_root_logger.level == logging.INFO
