"""Logging configuration for Schedule Buddy application.

This module provides centralized logging configuration
for the entire application.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(filename)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredFormatter(logging.Formatter):
    """Formatter that hides schedule text and secrets in log lines."""

    def __init__(self, fmt=None, datefmt=None, redact_sensitive=True):
        super().__init__(fmt, datefmt)
        self.redact_sensitive = redact_sensitive
        self.sensitive_patterns = [
            (
                re.compile(r"(password|token|secret|api_key|credential)=[^\s|]+", re.IGNORECASE),
                r"\1=[REDACTED]",
            ),
            (re.compile(r"(content|body)=([^|]+)", re.IGNORECASE), self._redact_long_text),
        ]

    def _redact_long_text(self, match):
        """Shorten free-text fields such as schedule content."""
        key = match.group(1)
        value = match.group(2).strip()
        if len(value) > 24:
            return f"{key}={value[:12]}... (len={len(value)}) "
        return match.group(0)

    def format(self, record):
        formatted = super().format(record)

        if self.redact_sensitive:
            for pattern, replacement in self.sensitive_patterns:
                formatted = pattern.sub(replacement, formatted)

        return formatted


def _setup_trace_level() -> None:
    """Setup TRACE logging level if not already defined."""
    if not hasattr(logging, "TRACE"):
        logging.TRACE = 5
        logging.addLevelName(logging.TRACE, "TRACE")

        def trace(self, message, *args, **kwargs):
            if self.isEnabledFor(logging.TRACE):
                self._log(logging.TRACE, message, args, **kwargs)

        logging.Logger.trace = trace


def get_logging_level(verbosity: int) -> int:
    """Map a -v count to a logging level."""
    if verbosity == 1:
        return logging.INFO
    elif verbosity == 2:
        return logging.DEBUG
    elif verbosity >= 3:
        _setup_trace_level()
        return logging.TRACE
    else:
        return logging.WARNING


def _create_formatters(redact_sensitive: bool) -> tuple[logging.Formatter, logging.Formatter]:
    detailed_formatter = StructuredFormatter(
        fmt=DETAILED_FORMAT,
        datefmt=DATE_FORMAT,
        redact_sensitive=redact_sensitive,
    )
    simple_formatter = StructuredFormatter(
        fmt=SIMPLE_FORMAT,
        datefmt=DATE_FORMAT,
        redact_sensitive=redact_sensitive,
    )
    return detailed_formatter, simple_formatter


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    log_to_console: bool = True,
    redact_sensitive_data: bool = True,
) -> None:
    """Setup logging configuration for the application.

    Args:
        verbosity: Logging verbosity level (0=WARNING, 1=INFO, 2=DEBUG, 3=TRACE)
        log_file: Optional path to log file. If None, no file logging.
        log_to_console: Whether to log to console (default: True)
        redact_sensitive_data: Whether to shorten schedule content in logs
    """
    _setup_trace_level()
    logging_level = get_logging_level(verbosity)

    detailed_formatter, simple_formatter = _create_formatters(redact_sensitive_data)

    handlers: list[logging.Handler] = []

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging_level)
        console_handler.setFormatter(simple_formatter)
        handlers.append(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_handler.setFormatter(detailed_formatter)
            handlers.append(file_handler)
        except OSError as e:
            print(f"Warning: Could not setup file logging to {log_file}: {e}", file=sys.stderr)

    root_level = min(logging_level, logging.DEBUG) if log_file else logging_level
    logging.basicConfig(
        level=root_level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logging.captureWarnings(capture=True)

    _configure_third_party_loggers()

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured - Level: {logging.getLevelName(logging_level)}")
    if log_file:
        logger.info(f"File logging enabled: {log_file}")


def _configure_third_party_loggers() -> None:
    """Configure logging levels for third-party libraries."""
    logging.getLogger("PyQt6").setLevel(logging.WARNING)


class LoggerMixin:
    """Mixin class to add logging capability to any class."""

    @property
    def logger(self) -> logging.Logger:
        """Get a logger instance for this class.

        Returns:
            Logger instance named after the class module and name
        """
        if not hasattr(self, "_logger"):
            self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")
        return self._logger
