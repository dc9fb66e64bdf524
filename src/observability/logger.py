"""
Structured JSON logging for the record pipeline

This module provides consistent structured logging across the application
using python-json-logger. Context (service, requestId, messageId, ...) is
carried by ContextLogger adapters that can be narrowed with child().
"""
import logging
import os
import sys
import time
from typing import Any, TextIO

from pythonjsonlogger import jsonlogger

DEFAULT_LOGGER_NAME = "record-pipeline"

# Log level mapping
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Attributes set by logging.LogRecord itself; extra keys must not collide with them
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    Custom JSON formatter that adds additional context fields

    Adds: timestamp, level, logger_name, and source location
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        """
        Add custom fields to log record

        Args:
            log_record: Log record dictionary
            record: LogRecord object
            message_dict: Message dictionary
        """
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)

        if log_record.get("level"):
            log_record["level"] = log_record["level"].upper()
        else:
            log_record["level"] = record.levelname

        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        # ISO-8601 UTC with milliseconds
        ct = time.gmtime(record.created)
        return f"{time.strftime('%Y-%m-%dT%H:%M:%S', ct)}.{int(record.msecs):03d}Z"


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Setup and configure a logger

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT or json)
        stream: Output stream (defaults to stdout)

    Returns:
        Configured logger instance
    """
    log_level_str = level or os.getenv("LOG_LEVEL", "INFO")
    log_level = LOG_LEVELS.get(log_level_str.upper(), logging.INFO)
    format_type = format_type or os.getenv("LOG_FORMAT", "json")

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)

    if format_type == "json":
        formatter = CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(message)s",
        )
    else:
        # Text format for local development
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    # If logger has no handlers, set it up
    if not logger.handlers:
        return setup_logger(name)

    return logger


def _safe_fields(fields: dict[str, Any]) -> dict[str, Any]:
    # logging refuses extra keys that shadow LogRecord attributes
    return {
        (f"context_{key}" if key in _RESERVED_ATTRS else key): value
        for key, value in fields.items()
    }


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that stamps an accumulated context on every event.

    Usage:
        log = create_logger({"service": "consumer", "requestId": "abc"})
        item_log = log.child({"messageId": "m-1"})
        item_log.info("Wrote record", extra={"id": "x1"})
    """

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        super().__init__(logger, dict(context or {}))

    @property
    def context(self) -> dict[str, Any]:
        return dict(self.extra)

    def child(self, extra: dict[str, Any]) -> "ContextLogger":
        """
        Create a logger whose context is this context updated with extra.

        Args:
            extra: Additional context; keys override same-named parent keys

        Returns:
            New ContextLogger sharing the same underlying logger
        """
        return ContextLogger(self.logger, {**self.extra, **extra})

    def process(self, msg, kwargs):
        fields = {**self.extra, **(kwargs.get("extra") or {})}
        kwargs["extra"] = _safe_fields(fields)
        return msg, kwargs


def create_logger(
    context: dict[str, Any] | None = None,
    name: str = DEFAULT_LOGGER_NAME,
) -> ContextLogger:
    """
    Create a context logger on top of the named JSON logger

    Args:
        context: Base context included in every event
        name: Logger name

    Returns:
        ContextLogger instance
    """
    return ContextLogger(get_logger(name), context)


def service_context(
    service: str | None = None,
    version: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """
    Base context shared by every component of a service

    Args:
        service: Service name (defaults to env var SERVICE_NAME)
        version: Service version (defaults to env var SERVICE_VERSION)
        **extra: Additional fields (requestId, functionName, ...); None values are dropped

    Returns:
        Context dictionary
    """
    context = {
        "service": service or os.getenv("SERVICE_NAME", DEFAULT_LOGGER_NAME),
        "version": version or os.getenv("SERVICE_VERSION", "1.0.0"),
    }
    context.update({k: v for k, v in extra.items() if v is not None})
    return context


# Context manager for logging operation duration
class log_operation:
    """
    Context manager for logging operation duration

    Usage:
        with log_operation("Processing batch", logger=logger, batchSize=10):
            # do work
            pass
    """

    def __init__(self, operation_name: str, logger: logging.Logger | logging.LoggerAdapter | None = None, **extra_fields):
        """
        Initialize operation logger

        Args:
            operation_name: Name of the operation
            logger: Logger instance (uses default if None)
            **extra_fields: Additional fields to include in logs
        """
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time = None

    def __enter__(self):
        """Start operation"""
        self.start_time = time.time()
        self.logger.debug(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields}
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """End operation"""
        duration = time.time() - self.start_time

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_seconds": round(duration, 3),
                    "status": "success",
                    **self.extra_fields
                }
            )
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra={
                    "operation": self.operation_name,
                    "duration_seconds": round(duration, 3),
                    "status": "error",
                    "error_type": exc_type.__name__,
                    "error_message": str(exc_val),
                    **self.extra_fields
                },
                exc_info=True
            )
        return False  # Don't suppress exceptions
