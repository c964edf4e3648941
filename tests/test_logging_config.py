"""Tests for logging configuration module."""

from __future__ import annotations

import json
import logging
import os
import sys
from unittest.mock import patch

import pytest

from flowsim.logging_config import (
    JSONFormatter,
    TextFormatter,
    configure_logging,
    get_log_format,
    get_log_level,
    get_logger,
)


@pytest.fixture(autouse=True)
def _restore_loggers():
    """Undo configure_logging() so later tests see default propagation."""
    yield
    for name in ("flowsim", "uvicorn.access"):
        target = logging.getLogger(name)
        target.handlers.clear()
        target.propagate = True
        target.setLevel(logging.NOTSET)


def make_record(level: int = logging.INFO, msg: str = "Test message", args=(), **kwargs):
    """Create a log record for formatter tests."""
    return logging.LogRecord(
        name=kwargs.pop("name", "flowsim.engine.simulation"),
        level=level,
        pathname=kwargs.pop("pathname", "/path/to/simulation.py"),
        lineno=kwargs.pop("lineno", 42),
        msg=msg,
        args=args,
        exc_info=kwargs.pop("exc_info", None),
    )


class TestGetLogLevel:
    """Tests for get_log_level function."""

    def test_default_is_info(self) -> None:
        """Default log level should be INFO."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_level() == logging.INFO

    def test_debug_level(self) -> None:
        """LOG_LEVEL=DEBUG should return logging.DEBUG."""
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            assert get_log_level() == logging.DEBUG

    def test_warn_alias(self) -> None:
        """LOG_LEVEL=WARN should work as alias for WARNING."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARN"}):
            assert get_log_level() == logging.WARNING

    def test_case_insensitive(self) -> None:
        """Log level should be case insensitive."""
        with patch.dict(os.environ, {"LOG_LEVEL": "error"}):
            assert get_log_level() == logging.ERROR

    def test_invalid_level_defaults_to_info(self) -> None:
        """Invalid log level should default to INFO."""
        with patch.dict(os.environ, {"LOG_LEVEL": "VERBOSE"}):
            assert get_log_level() == logging.INFO


class TestGetLogFormat:
    """Tests for get_log_format function."""

    def test_default_is_text(self) -> None:
        """The format defaults to text."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_format() == "text"

    def test_json_format_case_insensitive(self) -> None:
        """LOG_FORMAT is read case-insensitively."""
        with patch.dict(os.environ, {"LOG_FORMAT": "JSON"}):
            assert get_log_format() == "json"

    def test_invalid_format_defaults_to_text(self) -> None:
        """Unknown formats fall back to text."""
        with patch.dict(os.environ, {"LOG_FORMAT": "xml"}):
            assert get_log_format() == "text"


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_formats_as_valid_json(self) -> None:
        """Output should be a single JSON object."""
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["message"] == "Test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "flowsim.engine.simulation"
        assert "timestamp" in data

    def test_includes_source_for_debug(self) -> None:
        """DEBUG records carry their source location."""
        data = json.loads(JSONFormatter().format(make_record(logging.DEBUG, lineno=100)))
        assert data["source"]["line"] == 100
        assert data["source"]["file"] == "/path/to/simulation.py"

    def test_no_source_for_info(self) -> None:
        """INFO records omit the source location."""
        data = json.loads(JSONFormatter().format(make_record(logging.INFO)))
        assert "source" not in data

    def test_formats_message_with_args(self) -> None:
        """The message is formatted with its args."""
        record = make_record(msg="Simulation frame %d: tokens=%d", args=(100, 3))
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "Simulation frame 100: tokens=3"

    def test_extra_fields_included(self) -> None:
        """Extra record attributes are included."""
        record = make_record()
        record.device_id = "conveyor-1"
        data = json.loads(JSONFormatter().format(record))
        assert data["extra"] == {"device_id": "conveyor-1"}

    def test_exception_included(self) -> None:
        """Exception info is rendered into the output."""
        try:
            raise RuntimeError("listener failure")
        except RuntimeError:
            record = make_record(logging.ERROR, exc_info=sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "listener failure" in data["exception"]


class TestTextFormatter:
    """Tests for text log formatter."""

    def test_formats_basic_message(self) -> None:
        """The package prefix is stripped from the logger name."""
        output = TextFormatter(use_colors=False).format(make_record())
        assert "Test message" in output
        assert "INFO" in output
        assert "[engine.simulation]" in output

    def test_debug_includes_location(self) -> None:
        """DEBUG lines show file and line number."""
        output = TextFormatter(use_colors=False).format(make_record(logging.DEBUG, lineno=7))
        assert "(simulation.py:7)" in output

    def test_no_colors_when_disabled(self) -> None:
        """No ANSI codes are emitted when colours are off."""
        output = TextFormatter(use_colors=False).format(make_record())
        assert "\033[" not in output


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_sets_level_and_single_handler(self) -> None:
        """Reconfiguring sets the level and keeps a single handler."""
        configure_logging(level=logging.DEBUG, format_type="text")
        configure_logging(level=logging.WARNING, format_type="text")
        package_logger = logging.getLogger("flowsim")
        assert package_logger.level == logging.WARNING
        assert len(package_logger.handlers) == 1
        assert package_logger.propagate is False

    def test_json_format_handler(self) -> None:
        """The json format installs a JSONFormatter."""
        configure_logging(level=logging.INFO, format_type="json")
        handler = logging.getLogger("flowsim").handlers[0]
        assert isinstance(handler.formatter, JSONFormatter)

    def test_reads_environment(self) -> None:
        """Level and format are read from the environment."""
        with patch.dict(os.environ, {"LOG_LEVEL": "ERROR", "LOG_FORMAT": "json"}):
            configure_logging()
        package_logger = logging.getLogger("flowsim")
        assert package_logger.level == logging.ERROR
        assert isinstance(package_logger.handlers[0].formatter, JSONFormatter)

    def test_uvicorn_access_shares_handler(self) -> None:
        """uvicorn access logs go through the package handler."""
        configure_logging(level=logging.INFO, format_type="text")
        assert logging.getLogger("uvicorn.access").handlers == logging.getLogger(
            "flowsim"
        ).handlers


class TestGetLogger:
    """Tests for get_logger function."""

    def test_adds_namespace(self) -> None:
        """Short names get the flowsim prefix."""
        assert get_logger("server").name == "flowsim.server"

    def test_keeps_namespaced_name(self) -> None:
        """Names already under flowsim are kept."""
        assert get_logger("flowsim.engine").name == "flowsim.engine"
