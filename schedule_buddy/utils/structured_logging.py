"""Structured logging utilities for Schedule Buddy application.

This module provides key=value structured logging with contextual
information and lightweight operation timing.
"""

import functools
import logging
import time
from contextlib import contextmanager
from typing import Any

from .logging_config import LoggerMixin


class StructuredLogger(LoggerMixin):
    """Logger that appends ``key=value`` context to every message."""

    SENSITIVE_KEYS = frozenset({"password", "token", "secret", "api_key", "credential"})

    def __init__(self, context: dict[str, Any] | None = None):
        """Initialize structured logger with optional context.

        Args:
            context: Default context to include in all log messages
        """
        self._context = context or {}
        self._operation_timings: dict[str, dict[str, float]] = {}

    def _format_message(self, message: str, **kwargs) -> str:
        full_context = {**self._context, **kwargs}
        redacted_context = self._redact_sensitive_data(full_context)

        if redacted_context:
            context_str = " | ".join([f"{k}={v}" for k, v in redacted_context.items()])
            return f"{message} | {context_str}"
        return message

    def _redact_sensitive_data(self, data: dict[str, Any]) -> dict[str, Any]:
        redacted = {}
        for key, value in data.items():
            key_lower = key.lower()
            if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
                redacted[key] = "[REDACTED]"
            elif isinstance(value, str) and len(value) > 100:
                redacted[key] = f"{value[:50]}...{value[-20:]} (len={len(value)})"
            else:
                redacted[key] = value
        return redacted

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs) -> None:
        self.logger.error(self._format_message(message, **kwargs))

    def exception(self, message: str, **kwargs) -> None:
        self.logger.exception(self._format_message(message, **kwargs))

    @contextmanager
    def context(self, **kwargs):
        """Temporary context manager for logging with additional context.

        Args:
            **kwargs: Temporary context data
        """
        original_context = self._context.copy()
        self._context.update(kwargs)
        try:
            yield self
        finally:
            self._context = original_context

    def log_performance(self, operation: str, duration: float, **kwargs) -> None:
        """Record and log how long an operation took.

        Args:
            operation: Name of the operation
            duration: Duration in seconds
            **kwargs: Additional context
        """
        timings = self._operation_timings.setdefault(operation, {"count": 0, "total_duration": 0.0})
        timings["count"] += 1
        timings["total_duration"] += duration

        self.debug(
            f"Performance: {operation}",
            duration_s=f"{duration:.3f}",
            avg_duration_s=f"{timings['total_duration'] / timings['count']:.3f}",
            count=int(timings["count"]),
            **kwargs,
        )

    def get_performance_stats(self) -> dict[str, dict[str, float]]:
        """Get count and total duration per timed operation."""
        return {operation: dict(timings) for operation, timings in self._operation_timings.items()}


def timed_operation(operation_name: str, logger: StructuredLogger | None = None):
    """Decorator to automatically log operation timing.

    Args:
        operation_name: Name of the operation for logging
        logger: Optional logger instance. If None, uses the instance's
            ``structured_logger`` when the decorated callable is a method.

    Returns:
        Decorated function
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            actual_logger = logger
            if actual_logger is None and args and hasattr(args[0], "structured_logger"):
                actual_logger = args[0].structured_logger
            elif actual_logger is None:
                actual_logger = StructuredLogger()

            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                actual_logger.log_performance(
                    operation_name,
                    time.perf_counter() - start_time,
                    function=func.__name__,
                    success=False,
                    error=str(e),
                )
                raise
            actual_logger.log_performance(
                operation_name, time.perf_counter() - start_time, function=func.__name__, success=True
            )
            return result

        return wrapper

    return decorator


class EnhancedLoggerMixin(LoggerMixin):
    """Logger mixin with structured logging capabilities."""

    _structured_logger: StructuredLogger | None = None

    @property
    def structured_logger(self) -> StructuredLogger:
        """Get structured logger instance for this class.

        Returns:
            StructuredLogger instance with class context
        """
        if self._structured_logger is None:
            self._structured_logger = create_contextual_logger(
                f"{self.__class__.__module__}.{self.__class__.__name__}",
                {"component": self.__class__.__name__},
            )
        return self._structured_logger

    def log_state_change(self, old_state: Any, new_state: Any, **kwargs) -> None:
        """Log state changes.

        Args:
            old_state: Previous state
            new_state: New state
            **kwargs: Additional context
        """
        self.structured_logger.info("State change", old_state=str(old_state), new_state=str(new_state), **kwargs)

    def log_error_with_context(self, error: Exception, operation: str, **kwargs) -> None:
        """Log error with contextual information.

        Args:
            error: Exception that occurred
            operation: Operation that failed
            **kwargs: Additional context
        """
        self.structured_logger.error(
            f"Operation failed: {operation}",
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
            **kwargs,
        )


def create_contextual_logger(name: str, context: dict[str, Any] | None = None) -> StructuredLogger:
    """Create a contextual logger with the given name and context.

    Args:
        name: Logger name
        context: Default context for the logger

    Returns:
        StructuredLogger instance
    """
    logger = StructuredLogger(context)
    logger._logger = logging.getLogger(name)
    return logger


def get_structured_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    return create_contextual_logger(name)
