#!/usr/bin/env python3
"""Tests for the Logger module."""

import logging
import logging.handlers
import threading
from unittest.mock import MagicMock

import pytest

from shrinktask.infrastructure.config_manager import ConfigManager
from shrinktask.infrastructure.logger import (
    LogLevel,
    Logger,
    configure_logger,
    get_logger,
    set_global_logger,
)


@pytest.fixture
def logger_with_mock_handler():
    """Create logger with mock handler."""
    logger = Logger(name="test", level=LogLevel.DEBUG)
    mock_handler = MagicMock(spec=logging.Handler)
    mock_handler.level = logging.DEBUG
    logger.logger.handlers = [mock_handler]
    return logger, mock_handler


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_log_levels(self):
        """Test log level values match Python logging."""
        assert LogLevel.DEBUG == logging.DEBUG
        assert LogLevel.INFO == logging.INFO
        assert LogLevel.WARNING == logging.WARNING
        assert LogLevel.ERROR == logging.ERROR
        assert LogLevel.CRITICAL == logging.CRITICAL


class TestLogger:
    """Tests for Logger class."""

    def test_logger_creation(self):
        """Test creating a logger."""
        logger = Logger(name="test", level=LogLevel.DEBUG)
        assert logger.name == "test"
        assert logger.get_level() == LogLevel.DEBUG
        assert logger.logger.propagate is False

    def test_default_console_handler(self):
        """Test a console handler is installed by default."""
        logger = Logger(name="test")
        assert len(logger.logger.handlers) == 1
        assert isinstance(logger.logger.handlers[0], logging.StreamHandler)

    def test_string_level(self):
        """Test levels may be given by name."""
        logger = Logger(name="test", level="warning")
        assert logger.get_level() == LogLevel.WARNING
        logger.set_level("ERROR")
        assert logger.get_level() == LogLevel.ERROR

    def test_add_and_remove_handler(self):
        """Test handler management."""
        handler = logging.NullHandler()
        logger = Logger(name="test", handlers=[])
        logger.add_handler(handler)
        assert handler in logger.logger.handlers
        logger.remove_handler(handler)
        assert handler not in logger.logger.handlers

    def test_create_file_handler(self, temp_dir):
        """Test creating a rotating file handler."""
        logger = Logger(name="test")
        handler = logger.create_file_handler(temp_dir / "shrink.log", max_bytes=1000, backup_count=3)
        try:
            assert isinstance(handler, logging.handlers.RotatingFileHandler)
            assert handler.maxBytes == 1000
            assert handler.backupCount == 3
        finally:
            handler.close()

    def test_is_enabled_for(self):
        """Test level checks."""
        logger = Logger(name="test", level=LogLevel.INFO)
        assert not logger.is_enabled_for(LogLevel.DEBUG)
        assert not logger.is_enabled_for("DEBUG")
        assert logger.is_enabled_for("INFO")


class TestLoggingMethods:
    """Tests for logging methods."""

    @pytest.mark.parametrize("method", ["debug", "info", "warning", "error"])
    def test_context_in_message(self, logger_with_mock_handler, method):
        """Test key-value context is appended to the message."""
        logger, mock_handler = logger_with_mock_handler
        getattr(logger, method)("Registered input", location="a.jar", index=0)
        mock_handler.handle.assert_called_once()
        record = mock_handler.handle.call_args[0][0]
        assert record.getMessage() == "Registered input | location=a.jar index=0"

    def test_plain_message(self, logger_with_mock_handler):
        """Test logging without context."""
        logger, mock_handler = logger_with_mock_handler
        logger.info("Plain message")
        record = mock_handler.handle.call_args[0][0]
        assert record.getMessage() == "Plain message"

    def test_disabled_level(self, logger_with_mock_handler):
        """Test messages below the level are dropped."""
        logger, mock_handler = logger_with_mock_handler
        logger.set_level(LogLevel.WARNING)
        logger.debug("Debug message")
        logger.info("Info message")
        mock_handler.handle.assert_not_called()

    def test_exception_logging(self, logger_with_mock_handler):
        """Test exception details are added to the context."""
        logger, mock_handler = logger_with_mock_handler
        logger.exception("Failed", ValueError("bad rule"), rule="keep")
        record = mock_handler.handle.call_args[0][0]
        assert "exception_type=ValueError" in record.getMessage()
        assert "exception_message=bad rule" in record.getMessage()
        assert "rule=keep" in record.getMessage()


class TestContextManager:
    """Tests for context manager functionality."""

    def test_nested_context(self, logger_with_mock_handler):
        """Test nested context is merged."""
        logger, mock_handler = logger_with_mock_handler
        with logger.add_context(task="release"):
            with logger.add_context(phase="print"):
                logger.info("Nested")
        msg = mock_handler.handle.call_args[0][0].getMessage()
        assert "task=release" in msg
        assert "phase=print" in msg

    def test_context_cleanup_on_exception(self):
        """Test context is popped when the block raises."""
        logger = Logger(name="test")
        with pytest.raises(ValueError):
            with logger.add_context(error="context"):
                raise ValueError("boom")
        assert "error" not in logger._get_context()

    def test_thread_local_context(self):
        """Test context is thread-local."""
        logger = Logger(name="test")
        results = []

        def thread_func(value):
            with logger.add_context(thread_id=value):
                results.append(logger._get_context().get("thread_id"))

        threads = [threading.Thread(target=thread_func, args=(i,)) for i in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == [0, 1, 2]


class TestGlobalLogger:
    """Tests for global logger helpers."""

    def test_get_logger_is_cached(self):
        """Test the global logger is reused."""
        assert get_logger() is get_logger()

    def test_get_logger_new_name(self):
        """Test a different name replaces the global logger."""
        first = get_logger("shrinktask")
        second = get_logger("other")
        assert second is not first
        assert second.name == "other"

    def test_set_global_logger(self):
        """Test installing and clearing the global logger."""
        custom = Logger(name="shrinktask")
        set_global_logger(custom)
        assert get_logger() is custom
        set_global_logger(None)
        assert get_logger() is not custom

    def test_configure_logger(self, config, temp_dir):
        """Test level and log file come from the config manager."""
        log_file = temp_dir / "shrink.log"
        config.set("shrinktask.logging.level", "DEBUG")
        config.set("shrinktask.logging.file", str(log_file))

        logger = configure_logger(config)
        try:
            assert logger.get_level() == LogLevel.DEBUG
            assert any(
                isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.logger.handlers
            )
            assert get_logger() is logger
        finally:
            for handler in list(logger.logger.handlers):
                handler.close()
                logger.remove_handler(handler)

    def test_configure_logger_defaults(self, config):
        """Test defaults give an INFO console logger."""
        logger = configure_logger(config)
        assert logger.get_level() == LogLevel.INFO
        assert len(logger.logger.handlers) == 1

    def test_configure_logger_unknown_config(self):
        """Test a bare config manager object works."""
        config = MagicMock(spec=ConfigManager)
        config.get.side_effect = lambda key, default=None: default
        logger = configure_logger(config)
        assert logger.get_level() == LogLevel.INFO
