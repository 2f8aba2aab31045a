"""
Logging utilities for GCS Publish.

Provides structured logging with entry/exit decorators, JSON formatting,
correlation IDs, and the tagged action lines ([skip], [upload], [delete],
[md5 check], [del check]) emitted by the publish and sync operations.

Author: Ted Iro
Organization: Rydlr Cloud Services Ltd (github.com/rydlrcs)
Date: October 19, 2026

Features:
    - Structured JSON logging for CI and production runs
    - Correlation ID tracking across a publish run
    - Entry/exit decorators with timing
    - Colorized console output for development
    - Colorized action tags on terminals

Example usage:
    >>> from gcs_publish.utils.logging import get_logger, log_action
    >>>
    >>> logger = get_logger(__name__)
    >>> log_action(logger, "[upload]", "assets/app.js.br")
"""

import logging
import functools
import json
import os
import sys
import uuid
from typing import Any, Callable, TypeVar, cast, Optional, Dict
from datetime import datetime, timezone
from contextvars import ContextVar

import coloredlogs
from humanfriendly.terminal import ansi_wrap, terminal_supports_colors

# Type variable for generic decorator typing
F = TypeVar("F", bound=Callable[..., Any])

# Context variable for correlation ID (thread-safe)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Global logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Colors for tagged action lines
ACTION_COLORS = {
    "[skip]": "cyan",
    "[upload]": "green",
    "[delete]": "red",
    "[md5 check]": "yellow",
    "[del check]": "blue",
}

# Set by setup_logging(); action tags are only colorized on real terminals
_colorize_actions = False

# Standard LogRecord attributes, excluded from the JSON "extra" block
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def json_logging_enabled() -> bool:
    """Return True when LOG_FORMAT=json is set in the environment."""
    return os.getenv("LOG_FORMAT", "text").lower() == "json"


# ============================================================================
# Correlation ID Management
# ============================================================================

def get_correlation_id() -> str:
    """
    Get current correlation ID or generate new one.

    Returns:
        Current correlation ID (generates UUID if not set)
    """
    corr_id = _correlation_id.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        _correlation_id.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    """
    Set correlation ID for current context.

    Args:
        corr_id: Correlation ID to set, e.g. the CI build number
    """
    _correlation_id.set(corr_id)


def clear_correlation_id() -> None:
    """Clear correlation ID for current context."""
    _correlation_id.set(None)


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Example output:
        {
            "timestamp": "2026-10-19T10:30:15.123456+00:00",
            "level": "INFO",
            "logger": "gcs_publish.publisher.publisher",
            "message": "[upload] assets/app.js",
            "correlation_id": "build-1234",
            "extra": {"action": "upload", "key": "assets/app.js"}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON string.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        log_data["environment"] = {
            "hostname": os.getenv("HOSTNAME", "unknown"),
            "ci_job": os.getenv("CI_JOB_ID", ""),
        }

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", enable_colors: bool = True) -> None:
    """
    Configure global logging settings for the application.

    Sets up structured JSON logging when LOG_FORMAT=json, colorized text via
    coloredlogs otherwise.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_colors: Whether to enable colorized console output (default: True)

    Example:
        >>> setup_logging(level="DEBUG")
    """
    global _colorize_actions

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if json_logging_enabled():
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
        _colorize_actions = False
        return

    coloredlogs.install(
        level=log_level,
        fmt=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        logger=root_logger,
        isatty=None if enable_colors else False,
    )
    _colorize_actions = enable_colors and terminal_supports_colors(sys.stderr)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_action(
    logger: logging.Logger,
    tag: str,
    message: str,
    level: int = logging.INFO,
    **extra: Any,
) -> None:
    """
    Log a tagged action line such as ``[upload] assets/app.js``.

    Args:
        logger: Logger to write to
        tag: One of the ACTION_COLORS tags
        message: Text following the tag, colorized on terminals
        level: Logging level (default: INFO)
        **extra: Structured fields attached to the record
    """
    color = ACTION_COLORS.get(tag)
    if color and _colorize_actions:
        message = ansi_wrap(message, color=color)

    extra.setdefault("action", tag.strip("[]"))
    logger.log(level, "%s %s", tag, message, extra=extra)


_REPR_LIMIT = 200


def _short_repr(value: Any) -> str:
    """repr() capped at _REPR_LIMIT characters."""
    text = repr(value)
    if len(text) > _REPR_LIMIT:
        return f"{text[: _REPR_LIMIT]}... ({len(text)} chars)"
    return text


def log_function_call(func: F) -> F:
    """
    Decorator that logs function entry and exit with parameters and timing.

    Entry and exit are logged at DEBUG, exceptions at ERROR with traceback.
    The exception is always re-raised.

    Example:
        >>> @log_function_call
        >>> def validate(config) -> None:
        >>>     ...
        >>>
        >>> # 2026-10-19 10:30:15 - module - DEBUG - ENTER validate(config=...)
        >>> # 2026-10-19 10:30:15 - module - DEBUG - EXIT validate -> None (0.00s)
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        correlation_id = get_correlation_id()
        debug = logger.isEnabledFor(logging.DEBUG)

        if debug:
            arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
            args_repr = [f"{name}={_short_repr(value)}" for name, value in zip(arg_names, args)]
            kwargs_repr = [f"{key}={_short_repr(value)}" for key, value in kwargs.items()]
            all_args = ", ".join(args_repr + kwargs_repr)

            logger.debug(
                f"ENTER {func.__name__}({all_args})",
                extra={
                    "function": func.__name__,
                    "correlation_id": correlation_id,
                    "event": "function_entry",
                },
            )

        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
        except Exception as error:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(
                f"ERROR {func.__name__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": execution_time,
                    "correlation_id": correlation_id,
                    "event": "function_error",
                    "error_type": type(error).__name__,
                },
                exc_info=True,
            )
            raise

        if debug:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.debug(
                f"EXIT {func.__name__} -> {_short_repr(result)} ({execution_time:.2f}s)",
                extra={
                    "function": func.__name__,
                    "duration_seconds": execution_time,
                    "correlation_id": correlation_id,
                    "event": "function_exit",
                },
            )
        return result

    return cast(F, wrapper)
