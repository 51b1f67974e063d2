"""
Centralized logging and error classification for the submission client.

This module provides decorators and helpers that standardize logging
across the codebase:
- Structured logging with contextual information
- Error category detection for log records
- Performance timing
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from collections.abc import Callable
from contextlib import contextmanager
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from .exceptions import (
    ConfigurationError,
    ProtocolViolation,
    SerializationError,
    ThrottleWaitInterrupted,
    TransportError,
)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")

logger = structlog.get_logger(__name__)


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to the module name."""
    return structlog.get_logger(name)


def setup_logging(level: str | int = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) at the given level."""
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ConfigurationError(f"Unknown logging level '{level}'")
        level = numeric
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)


class SubmissionErrorHandler:
    """Maps exceptions to stable categories for structured logs."""

    @staticmethod
    def classify_error(error: Exception) -> str:
        """
        Classify an error into a log category.

        Args:
            error: The exception to classify

        Returns:
            Error category string
        """
        if isinstance(error, ConfigurationError):
            return "configuration_error"
        if isinstance(error, SerializationError):
            return "serialization_error"
        if isinstance(error, ThrottleWaitInterrupted):
            return "throttle_interrupted"
        if isinstance(error, ProtocolViolation):
            return "protocol_violation"
        if isinstance(error, TransportError):
            if isinstance(error.__cause__, httpx.TimeoutException):
                return "timeout_error"
            return "transport_error"
        if isinstance(error, ValidationError):
            return "validation_error"
        if isinstance(error, TimeoutError | httpx.TimeoutException):
            return "timeout_error"
        if isinstance(error, ConnectionError | OSError | httpx.TransportError):
            return "connection_error"
        return "unknown_error"


def _failure_data(error: Exception, start_time: float | None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_category": SubmissionErrorHandler.classify_error(error),
        "error_message": str(error),
    }
    if start_time is not None:
        data["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
    return data


def log_operation(
    operation: str,
    *,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator for logging sync or async operations with structured context.

    Arguments are never logged: they carry documents and signatures.

    Args:
        operation: Description of the operation being performed
        log_result: Whether to log function result
        log_timing: Whether to log execution timing
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        def bound_logger() -> Any:
            return logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

        def completed(operation_logger: Any, result: Any, start_time: float | None) -> None:
            end_log_data: dict[str, Any] = {}
            if start_time is not None:
                duration = round((time.perf_counter() - start_time) * 1000, 2)
                end_log_data["duration_ms"] = duration
            if log_result:
                end_log_data["result"] = result
            operation_logger.info("Operation completed successfully", **end_log_data)

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                operation_logger = bound_logger()
                operation_logger.info("Operation started")
                start_time = time.perf_counter() if log_timing else None
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    operation_logger.error(
                        "Operation failed", **_failure_data(e, start_time)
                    )
                    raise
                completed(operation_logger, result, start_time)
                return result

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = bound_logger()
            operation_logger.info("Operation started")
            start_time = time.perf_counter() if log_timing else None
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                operation_logger.error("Operation failed", **_failure_data(e, start_time))
                raise
            completed(operation_logger, result, start_time)
            return result

        return wrapper
    return decorator


@contextmanager
def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(operation=operation, **(context or {}))

    operation_logger.info("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger
    except Exception as e:
        operation_logger.error("Operation failed", **_failure_data(e, start_time))
        raise

    log_data: dict[str, Any] = {}
    if start_time is not None:
        log_data["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
    operation_logger.info("Operation completed successfully", **log_data)


class ContextualLogger:
    """Logger that maintains context across related operations."""

    def __init__(self, base_context: dict[str, Any] | None = None):
        self.base_context = base_context or {}
        self._logger = logger.bind(**self.base_context)

    def bind(self, **context: Any) -> ContextualLogger:
        """Create a new logger with additional context."""
        merged_context = {**self.base_context, **context}
        return ContextualLogger(merged_context)

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, **context)
