"""Tests for structured logging configuration."""

import json
import logging
import sys
from unittest.mock import patch

from ratewindow.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
    setup_logging,
)


def make_record(msg="Test message", level=logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Test JSON formatter for structured logging."""

    def test_basic_json_format(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["source"]["file"] == "test.py"
        assert data["source"]["line"] == 1

    def test_json_format_with_context(self):
        record = make_record("Request rejected")
        record.identifier = "user-1"
        record.key = "rl:user-1"
        record.duration_ms = 1.5

        data = json.loads(JSONFormatter().format(record))

        assert data["identifier"] == "user-1"
        assert data["key"] == "rl:user-1"
        assert data["duration_ms"] == 1.5
        assert "extra" not in data

    def test_json_format_with_extra_fields(self):
        record = make_record("Custom event")
        record.custom_field = "custom_value"
        record.another_field = 42

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["custom_field"] == "custom_value"
        assert data["extra"]["another_field"] == 42

    def test_json_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record("Error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        exception_text = "".join(data["exception"])
        assert "ValueError" in exception_text
        assert "Test error" in exception_text


class TestContextFilter:
    """Test context filter for adding default fields."""

    def test_adds_default_fields(self):
        record = make_record()

        assert ContextFilter().filter(record) is True
        for field in ("identifier", "key", "request_id", "path", "method", "status_code", "duration_ms"):
            assert hasattr(record, field)

    def test_preserves_existing_values(self):
        record = make_record()
        record.identifier = "existing"

        ContextFilter().filter(record)

        assert record.identifier == "existing"


class TestGetLoggingConfig:
    """Test logging configuration generation."""

    def test_default_text_format(self):
        with patch("ratewindow.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "text"
            mock_settings.log_level = "INFO"

            config = get_logging_config()

        assert "json" not in config["formatters"]
        assert config["handlers"]["console"]["formatter"] == "standard"

    def test_structured_format(self):
        with patch("ratewindow.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "structured"
            mock_settings.log_level = "DEBUG"

            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "structured"
        assert config["handlers"]["console"]["level"] == "DEBUG"

    def test_json_format(self):
        with patch("ratewindow.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "json"
            mock_settings.log_level = "WARNING"

            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["loggers"]["ratewindow"]["level"] == "WARNING"


class TestHelpers:
    """get_logger and get_log_context."""

    def test_get_logger_default_name(self):
        assert get_logger().name == "ratewindow"

    def test_context_filters_none(self):
        context = get_log_context(identifier="user-1", key=None, path="/ping")

        assert context == {"identifier": "user-1", "path": "/ping"}


class TestIntegration:
    """Integration tests for logging system."""

    def test_json_logging_output(self, capsys):
        with patch("ratewindow.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "json"
            mock_settings.log_level = "INFO"

            setup_logging()
            get_logger("test.integration").info(
                "Integration test",
                extra=get_log_context(identifier="user-1", key="rl:user-1"),
            )

        data = json.loads(capsys.readouterr().out.strip())

        assert data["logger"] == "test.integration"
        assert data["message"] == "Integration test"
        assert data["identifier"] == "user-1"
        assert data["key"] == "rl:user-1"
