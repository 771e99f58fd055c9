#!/usr/bin/env python3
"""Structured logging system for ShrinkTask.

This module provides a structured logging system with:
- Multiple log levels (DEBUG, INFO, WARNING, ERROR)
- Structured context (key-value pairs)
- Console and rotating file handlers
- Thread-local context management

Example:
    >>> logger = Logger(level=LogLevel.DEBUG)
    >>> logger.debug("Registered input", location="in.jar", index=0)
    >>> with logger.add_context(task="release"):
    ...     logger.info("Loading configuration file")
"""

import logging
import logging.handlers
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from shrinktask.core.constants import ConfigKey


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG  # 10
    INFO = logging.INFO  # 20
    WARNING = logging.WARNING  # 30
    ERROR = logging.ERROR  # 40
    CRITICAL = logging.CRITICAL  # 50


class Logger:
    """Structured logger with context support.

    Wraps a standard library logger and appends key-value context to every
    message. Context pushed with add_context() is thread-local.
    """

    # Thread-local storage for context
    _context_stack = threading.local()

    def __init__(
        self,
        name: str = "shrinktask",
        level: Union[LogLevel, str] = LogLevel.INFO,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        """Initialize logger.

        Args:
            name: Logger name for identification
            level: Minimum log level to output
            handlers: Optional list of logging handlers
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.set_level(level)

        if handlers is None:
            handlers = [self._create_console_handler()]

        # Clear existing handlers and add new ones
        self.logger.handlers.clear()
        for handler in handlers:
            self.logger.addHandler(handler)

        self.logger.propagate = False

    def _create_console_handler(self) -> logging.StreamHandler:
        """Create default console handler with formatting."""
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        return handler

    def create_file_handler(
        self,
        filename: Union[str, Path],
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
    ) -> logging.handlers.RotatingFileHandler:
        """Create rotating file handler.

        Args:
            filename: Path to log file
            max_bytes: Maximum size before rotation
            backup_count: Number of backup files to keep

        Returns:
            Configured rotating file handler
        """
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count
        )
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        return handler

    def add_handler(self, handler: logging.Handler) -> None:
        """Add a new output handler."""
        self.logger.addHandler(handler)

    def remove_handler(self, handler: logging.Handler) -> None:
        """Remove an output handler."""
        self.logger.removeHandler(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        """Set the minimum log level.

        Args:
            level: New log level (LogLevel or string)
        """
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        self.logger.setLevel(level)

    def get_level(self) -> LogLevel:
        """Get current log level."""
        return LogLevel(self.logger.level)

    def _get_context(self) -> Dict[str, Any]:
        """Merge all thread-local context levels."""
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = [{}]

        context = {}
        for ctx in self._context_stack.stack:
            context.update(ctx)
        return context

    def _format_message(self, msg: str, context: Dict[str, Any]) -> str:
        if context:
            ctx_str = " ".join(f"{k}={v}" for k, v in context.items())
            return f"{msg} | {ctx_str}"
        return msg

    @contextmanager
    def add_context(self, **kwargs):
        """Context manager to add temporary context.

        Args:
            **kwargs: Key-value pairs to add to context

        Example:
            >>> with logger.add_context(task="release"):
            ...     logger.info("Writing configuration")
        """
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = [{}]

        self._context_stack.stack.append(kwargs)
        try:
            yield
        finally:
            self._context_stack.stack.pop()

    def _log(self, level: LogLevel, msg: str, context: Dict[str, Any]) -> None:
        if self.logger.isEnabledFor(level):
            combined_context = self._get_context()
            combined_context.update(context)
            formatted_msg = self._format_message(msg, combined_context)
            self.logger.log(level, formatted_msg, extra={"context": combined_context})

    def debug(self, msg: str, **context) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, msg, context)

    def exception(self, msg: str, exc: Exception, **context) -> None:
        """Log exception with traceback.

        Args:
            msg: Log message
            exc: Exception to log
            **context: Additional context key-value pairs
        """
        combined_context = self._get_context()
        combined_context.update(context)
        combined_context["exception_type"] = type(exc).__name__
        combined_context["exception_message"] = str(exc)
        formatted_msg = self._format_message(msg, combined_context)
        self.logger.error(formatted_msg, exc_info=exc, extra={"context": combined_context})

    def is_enabled_for(self, level: Union[LogLevel, str]) -> bool:
        """Check if logger is enabled for given level."""
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        return self.logger.isEnabledFor(level)


# Global logger instance
_global_logger: Optional[Logger] = None


def get_logger(name: str = "shrinktask") -> Logger:
    """Get or create a logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    global _global_logger
    if _global_logger is None or _global_logger.name != name:
        _global_logger = Logger(name=name)
    return _global_logger


def configure_logger(config, name: str = "shrinktask") -> Logger:
    """Build a logger from the ambient configuration and install it globally.

    Args:
        config: ConfigManager providing shrinktask.logging.level and .file
        name: Logger name

    Returns:
        Configured logger
    """
    logger = Logger(name=name, level=config.get(ConfigKey.LOGGING_LEVEL, "INFO"))
    log_file = config.get(ConfigKey.LOGGING_FILE)
    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))
    set_global_logger(logger)
    return logger


def set_global_logger(logger: Optional[Logger]) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger to use globally, or None to recreate on next get_logger()
    """
    global _global_logger
    _global_logger = logger
