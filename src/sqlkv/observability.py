"""Structured logging and metric hooks.

Log lines are JSON objects carrying the table and operation of the store
call that produced them. Metrics are pushed to registered callbacks so
applications can forward them to whatever collector they run.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

# Store call currently in progress
table_var: ContextVar[str | None] = ContextVar("table", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


class LogLevel(str, Enum):
    """Log levels matching Python's logging module."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LogContext:
    """Context data attached to every log entry."""

    table: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "LogContext":
        """Get current context from context variables."""
        return cls(table=table_var.get(), operation=operation_var.get())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding unset values."""
        result: dict[str, Any] = {}
        if self.table:
            result["table"] = self.table
        if self.operation:
            result["operation"] = self.operation
        result.update(self.extra)
        return result


class StructuredFormatter(logging.Formatter):
    """Formats log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "logger": record.name,
        }

        context = LogContext.current().to_dict()
        if isinstance(getattr(record, "context", None), dict):
            context.update(record.context)
        if context:
            data["context"] = context

        if record.exc_info and record.exc_info[0]:
            data["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            data["duration_ms"] = duration_ms

        return json.dumps(data, default=str)


class StructuredLogger:
    """Wrapper around Python logging with structured output.

    Example:
        logger = StructuredLogger("sqlkv.store")
        logger.debug("Reaped expired records", context={"now": 42})
        logger.error("Statement failed", error=exception)
    """

    def __init__(self, name: str) -> None:
        self.logger = logging.getLogger(name)

    def _log(
        self,
        level: LogLevel,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        extra: dict[str, Any] = {}
        if context:
            extra["context"] = context
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms

        exc_info = (type(error), error, error.__traceback__) if error else None
        self.logger.log(getattr(logging, level.value), message, exc_info=exc_info, extra=extra)

    def debug(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log at DEBUG level."""
        self._log(LogLevel.DEBUG, message, context, duration_ms=duration_ms)

    def info(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log at INFO level."""
        self._log(LogLevel.INFO, message, context, duration_ms=duration_ms)

    def warning(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
    ) -> None:
        """Log at WARNING level."""
        self._log(LogLevel.WARNING, message, context, error)

    def error(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log at ERROR level."""
        self._log(LogLevel.ERROR, message, context, error, duration_ms)


class OperationContext:
    """Context manager binding the store table and operation to log lines.

    Example:
        async with OperationContext(table="kv", operation="get"):
            logger.debug("Point lookup")
    """

    def __init__(self, table: str, operation: str) -> None:
        self.table = table
        self.operation = operation
        self._tokens: list[tuple[ContextVar, Any]] = []

    def __enter__(self) -> "OperationContext":
        self._tokens.append((table_var, table_var.set(self.table)))
        self._tokens.append((operation_var, operation_var.set(self.operation)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)

    async def __aenter__(self) -> "OperationContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


class Timer:
    """Context manager for timing operations.

    Example:
        with Timer() as t:
            await backend.run(query)
        emit_timer("sqlkv.statement.duration_ms", t.duration_ms)
    """

    def __init__(self) -> None:
        self.start_time: float = 0
        self.end_time: float = 0

    @property
    def duration_ms(self) -> float:
        """Get duration in milliseconds."""
        return (self.end_time - self.start_time) * 1000

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()


# Metric collection hook: (name, value, labels)
MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []


def register_metric_callback(callback: MetricCallback) -> None:
    """Register a callback to receive metric events."""
    _metric_callbacks.append(callback)


def clear_metric_callbacks() -> None:
    """Remove every registered metric callback."""
    _metric_callbacks.clear()


def emit_metric(name: str, value: float, labels: dict[str, Any] | None = None) -> None:
    """Emit a metric to all registered callbacks.

    Args:
        name: Metric name
        value: Metric value
        labels: Optional labels; the current table and operation are added
    """
    labels = dict(labels or {})
    for key, value_ in LogContext.current().to_dict().items():
        labels.setdefault(key, value_)

    for callback in _metric_callbacks:
        try:
            callback(name, value, labels)
        except Exception:
            pass  # metric sinks must not break store calls


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    """Emit a counter metric (increment by 1)."""
    emit_metric(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    """Emit a timer metric."""
    emit_metric(name, duration_ms, labels)


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    format: str = "json",
) -> None:
    """Configure the ``sqlkv`` logger hierarchy.

    Args:
        level: Minimum log level
        format: Output format ("json" or "text")
    """
    root_logger = logging.getLogger("sqlkv")
    root_logger.setLevel(level.value)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
    root_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module (typically ``__name__``)."""
    return StructuredLogger(name)
