"""Tests for logger_config module."""

import logging
import logging.handlers
import os
from pathlib import Path
from unittest import mock

import pytest

from chatgraph.logger_config import get_driver_log_level, get_log_level, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the global handler changes setup_logging makes."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    neo4j_level = logging.getLogger("neo4j").level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("neo4j").setLevel(neo4j_level)


class TestGetLogLevel:
    """Tests for get_log_level function."""

    def test_default_is_info(self):
        """Test that default log level is INFO when env var not set."""
        with mock.patch.dict(os.environ, {}, clear=True):
            assert get_log_level() == logging.INFO

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("DEBUG", logging.DEBUG),
            ("warning", logging.WARNING),
            ("Error", logging.ERROR),
            ("CRITICAL", logging.CRITICAL),
        ],
    )
    def test_levels_case_insensitive(self, value, expected):
        with mock.patch.dict(os.environ, {"LOG_LEVEL": value}):
            assert get_log_level() == expected

    @pytest.mark.parametrize("value", ["INVALID", "", "basic_format"])
    def test_invalid_level_falls_back_to_info(self, value):
        """Unknown names, and logging attributes that are not levels, are ignored."""
        with mock.patch.dict(os.environ, {"LOG_LEVEL": value}):
            assert get_log_level() == logging.INFO


class TestGetDriverLogLevel:
    def test_default_is_warning(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            assert get_driver_log_level() == logging.WARNING

    def test_from_environment(self):
        with mock.patch.dict(os.environ, {"NEO4J_LOG_LEVEL": "debug"}):
            assert get_driver_log_level() == logging.DEBUG


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_custom_level(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_environment(self):
        with mock.patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}):
            setup_logging()
        assert logging.getLogger().level == logging.ERROR

    def test_console_writes_to_stderr(self, capsys):
        setup_logging(level=logging.INFO)
        logging.getLogger("chatgraph.test").info("to stderr")

        captured = capsys.readouterr()
        assert "to stderr" not in captured.out
        assert "to stderr" in captured.err

    def test_driver_logger_level(self):
        with mock.patch.dict(os.environ, {"NEO4J_LOG_LEVEL": "ERROR"}):
            setup_logging(level=logging.DEBUG)
        assert logging.getLogger("neo4j").level == logging.ERROR

    def test_log_file(self, tmp_path: Path):
        log_file = tmp_path / "chat-graph.log"
        setup_logging(level=logging.INFO, format_string="%(levelname)s %(message)s", log_file=str(log_file))

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1

        logging.getLogger("chatgraph.test").info("hello file")
        file_handlers[0].flush()
        assert "INFO hello file" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging(level=logging.INFO)
        setup_logging(level=logging.INFO)
        stream_handlers = [
            h
            for h in logging.getLogger().handlers
            if type(h) is logging.StreamHandler
        ]
        assert len(stream_handlers) == 1
