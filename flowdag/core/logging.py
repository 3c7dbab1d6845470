"""Structured logging configuration for flowdag.

This module provides the logging setup used by applications embedding
flowdag:
- JSON structured logging for machine parsing
- Colored console output for development
- Optional rotating file handler (10MB max, 5 backups)
- Scoped structured context via LogContext

Library modules only call get_logger(__name__); handlers are installed
exclusively by setup_logging().
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar

from flowdag import __version__
from flowdag.core.config import settings


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Merge scoped LogContext fields with the record's own ``context`` extra.

    Fields passed with the call win over scoped ones.
    """
    return {**getattr(record, "log_context", {}), **getattr(record, "context", {})}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Format:
        {
            "timestamp": "2025-01-12T10:30:45.123Z",
            "level": "DEBUG",
            "logger": "flowdag.dag.graph",
            "message": "Edge added",
            "context": {"dag_id": "0", "from": "a", "to": "b"}
        }
    """

    def __init__(
        self,
        service_name: str = "flowdag",
        service_version: str = __version__,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            service_name: Name of the embedding service
            service_version: Version of the embedding service
        """
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": self.service_version,
        }

        context = record_context(record)
        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if record.levelno >= logging.ERROR:
            log_entry["source"] = {
                "function": record.funcName,
                "line": record.lineno,
                "file": record.pathname,
            }

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored console formatter for development environments."""

    # ANSI color codes
    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[41m",  # Red background
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self) -> None:
        super().__init__(fmt=settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors and inline context."""
        log_color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"

        context = record_context(record)
        if context:
            record.msg = f"{record.msg} | Context: {json.dumps(context, default=str)}"

        return super().format(record)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service_name: str = "flowdag",
    enable_json: bool | None = None,
    enable_console: bool = True,
) -> logging.Logger:
    """Configure logging with structured handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to settings.LOG_LEVEL
        log_file: Path to a log file. Defaults to settings.LOG_FILE; no file
                  handler is installed when both are unset
        service_name: Name of the service for log metadata
        enable_json: JSON formatting for the file handler.
                     Defaults to settings.LOG_JSON_FORMAT
        enable_console: Enable console output handler

    Returns:
        Configured root logger instance

    Examples:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Graph built", extra={"context": {"dag_id": "0"}})
    """
    if log_level is None:
        log_level = settings.LOG_LEVEL
    if log_file is None:
        log_file = settings.LOG_FILE
    if enable_json is None:
        enable_json = settings.LOG_JSON_FORMAT

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if log_file is not None:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=str(log_file_path),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file

        if enable_json:
            file_handler.setFormatter(JSONFormatter(service_name=service_name))
        else:
            file_handler.setFormatter(
                logging.Formatter(settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        # Colored output in development, JSON otherwise
        if settings.DEBUG:
            console_handler.setFormatter(ColoredConsoleFormatter())
        else:
            console_handler.setFormatter(JSONFormatter(service_name=service_name))
        logger.addHandler(console_handler)

    logger.debug(
        f"Logging initialized - Level: {log_level}, File: {log_file}",
        extra={
            "context": {
                "log_level": log_level,
                "log_file": log_file,
                "service": service_name,
            }
        },
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Logger instance

    Examples:
        >>> from flowdag.core.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("Validating dag")
    """
    return logging.getLogger(name)


class LogContext:
    """Context helper for adding structured context to log records.

    Scoped fields are stored on ``record.log_context``, apart from the
    ``context`` extra that individual calls pass, so both can be used
    together. The formatters merge them.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with LogContext(logger, dag_id="0"):
        ...     dag.validate()
        # Every record emitted inside the block carries {"dag_id": "0"}
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        """Initialize log context.

        Args:
            logger: Logger instance the context is scoped for
            **context: Key-value pairs to add to log context
        """
        self.logger = logger
        self.context = context
        self.old_factory = logging.getLogRecordFactory()

    def __enter__(self) -> None:
        """Enter context and install the record factory."""

        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = self.old_factory(*args, **kwargs)
            record.log_context = {**getattr(record, "log_context", {}), **self.context}
            return record

        logging.setLogRecordFactory(record_factory)

    def __exit__(self, *args: Any) -> None:
        """Exit context and restore old factory."""
        logging.setLogRecordFactory(self.old_factory)


__all__ = [
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "LogContext",
    "get_logger",
    "record_context",
    "setup_logging",
]
