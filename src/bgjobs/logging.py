"""
Structured Logging for bgjobs.

This module provides:
- Structured records with consistent fields (job_id, operation, event_type)
- JSON and human-readable text formatters
- Job-scoped context tracking
- Timing helpers
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER = "bgjobs"

# =============================================================================
# Log Context
# =============================================================================


@dataclass
class LogContext:
    """Context information attached to log records."""

    job_id: int | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            job_id=kwargs.get("job_id", self.job_id),
            operation=kwargs.get("operation", self.operation),
            extra={**self.extra, **kwargs.get("extra", {})},
        )


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger with structured fields and context tracking.

    Fields are attached to the stdlib record as ``record.fields`` and
    rendered by whichever formatter the ``bgjobs`` handler uses.

    Example:
        ```python
        logger = get_logger(__name__)

        with logger.job_context(job_id=3, operation="propagate"):
            logger.info("Starting dependent job", name="clean.R")
        ```
    """

    def __init__(self, name: str = ROOT_LOGGER):
        self.name = name
        self._logger = logging.getLogger(name)
        self._context: LogContext = LogContext()

    @property
    def context(self) -> LogContext:
        return self._context

    @property
    def stdlib(self) -> logging.Logger:
        return self._logger

    @contextmanager
    def job_context(self, job_id: int | None = None, **kwargs) -> Iterator[LogContext]:
        """Context manager scoping log records to a job."""
        old_context = self._context
        try:
            self._context = old_context.with_update(job_id=job_id, **kwargs)
            yield self._context
        finally:
            self._context = old_context

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
        exc_info: bool = False,
    ) -> None:
        """Internal logging method."""
        fields = self._context.to_dict()
        if event_type:
            fields["event_type"] = event_type
        if data:
            fields.update(data)
        self._logger.log(level, message, extra={"fields": fields}, exc_info=exc_info)

    def debug(self, message: str, **kwargs) -> None:
        self._log(logging.DEBUG, message, data=kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log(logging.ERROR, message, data=kwargs)

    def log_transition(self, job_id: int, old_status: str, new_status: str, **kwargs) -> None:
        """Log a job status change."""
        self._log(
            logging.INFO,
            f"Job {job_id}: {old_status} -> {new_status}",
            event_type="transition",
            data={"job_id": job_id, "from": old_status, "to": new_status, **kwargs},
        )

    def log_error(
        self,
        error: BaseException,
        message: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        """Log an error with context."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }

        # Extract additional info from JobError
        if hasattr(error, "code"):
            error_data["error_code"] = str(error.code.value)
        if getattr(error, "job_id", None) is not None:
            error_data.setdefault("job_id", error.job_id)

        self._log(
            logging.ERROR,
            message or f"Error: {error}",
            event_type="error",
            data=error_data,
            exc_info=exc_info,
        )


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "fields", {}) or {})

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "") if self.use_colors else ""
        reset = self.RESET if color else ""

        line = f"{timestamp} {color}{record.levelname:8}{reset} {record.getMessage()}"
        fields = getattr(record, "fields", None)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Utilities
# =============================================================================


def truncate_for_log(text: str, max_length: int = 200) -> str:
    """Truncate text for logging."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... ({len(text)} chars total)"


@dataclass
class Timer:
    """Simple timer for measuring durations."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        """Stop the timer and return duration in milliseconds."""
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds."""
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000


@contextmanager
def timed() -> Iterator[Timer]:
    """Context manager for timing operations."""
    timer = Timer()
    try:
        yield timer
    finally:
        timer.stop()


# =============================================================================
# Global Configuration
# =============================================================================

_handler: logging.Handler | None = None


def get_logger(name: str = ROOT_LOGGER) -> StructuredLogger:
    """Get a structured logger under the ``bgjobs`` hierarchy."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return StructuredLogger(name)


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: Any = None,
) -> StructuredLogger:
    """Configure the ``bgjobs`` root logger's level and output handler."""
    global _handler

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper()))

    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
    root.addHandler(_handler)
    return StructuredLogger(ROOT_LOGGER)


__all__ = [
    "LogContext",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "Timer",
    "timed",
    "truncate_for_log",
    "get_logger",
    "configure_logging",
]
