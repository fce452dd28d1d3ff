"""Tests for observability module."""

import json
import logging
import sys

import pytest

from sqlkv.observability import (
    LogContext,
    LogLevel,
    OperationContext,
    StructuredFormatter,
    StructuredLogger,
    Timer,
    clear_metric_callbacks,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    operation_var,
    register_metric_callback,
    table_var,
)


@pytest.fixture
def metrics():
    """Collect emitted metrics."""
    events: list[tuple[str, float, dict]] = []
    register_metric_callback(lambda name, value, labels: events.append((name, value, labels)))
    yield events
    clear_metric_callbacks()


def format_record(message: str, **extra) -> dict:
    record = logging.LogRecord("sqlkv.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(StructuredFormatter().format(record))


class TestLogContext:
    """Tests for LogContext and OperationContext."""

    def test_empty_without_operation(self) -> None:
        assert LogContext.current().to_dict() == {}

    def test_operation_context_sets_and_resets(self) -> None:
        with OperationContext(table="kv", operation="get"):
            assert LogContext.current().to_dict() == {"table": "kv", "operation": "get"}
            with OperationContext(table="kv", operation="set"):
                assert operation_var.get() == "set"
            assert operation_var.get() == "get"

        assert table_var.get() is None
        assert operation_var.get() is None

    @pytest.mark.asyncio
    async def test_async_operation_context(self) -> None:
        async with OperationContext(table="cache", operation="list"):
            assert table_var.get() == "cache"
        assert table_var.get() is None

    def test_extra_included(self) -> None:
        context = LogContext(table="kv", extra={"now": 5})
        assert context.to_dict() == {"table": "kv", "now": 5}


class TestStructuredFormatter:
    """Tests for JSON log formatting."""

    def test_basic_fields(self) -> None:
        data = format_record("hello")
        assert data["level"] == "INFO"
        assert data["message"] == "hello"
        assert data["logger"] == "sqlkv.test"
        assert "timestamp" in data
        assert "context" not in data

    def test_includes_operation_context(self) -> None:
        with OperationContext(table="kv", operation="delete"):
            data = format_record("hello", context={"now": 3}, duration_ms=1.5)

        assert data["context"] == {"table": "kv", "operation": "delete", "now": 3}
        assert data["duration_ms"] == 1.5

    def test_includes_error(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "sqlkv.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        data = json.loads(StructuredFormatter().format(record))
        assert data["error"] == {"type": "RuntimeError", "message": "boom"}


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_passes_context_and_error(self, caplog) -> None:
        logger = StructuredLogger("sqlkv.test.logger")
        error = ValueError("bad")

        with caplog.at_level(logging.DEBUG, logger="sqlkv.test.logger"):
            logger.debug("debugging", context={"a": 1}, duration_ms=2.0)
            logger.error("failed", context={"b": 2}, error=error)

        debug, failure = caplog.records
        assert debug.levelno == logging.DEBUG
        assert debug.context == {"a": 1}
        assert debug.duration_ms == 2.0
        assert failure.levelno == logging.ERROR
        assert failure.exc_info[1] is error


class TestMetrics:
    """Tests for metric callbacks."""

    def test_emit_metric(self, metrics) -> None:
        emit_metric("custom", 3.0, {"a": "b"})
        assert metrics == [("custom", 3.0, {"a": "b"})]

    def test_labels_include_operation(self, metrics) -> None:
        with OperationContext(table="kv", operation="get"):
            emit_counter("sqlkv.reap")
            emit_timer("sqlkv.operation.duration_ms", 4.0, {"status": "ok"})

        assert metrics == [
            ("sqlkv.reap", 1.0, {"table": "kv", "operation": "get"}),
            (
                "sqlkv.operation.duration_ms",
                4.0,
                {"status": "ok", "table": "kv", "operation": "get"},
            ),
        ]

    def test_failing_callback_ignored(self, metrics) -> None:
        def broken(name, value, labels):
            raise RuntimeError("sink down")

        register_metric_callback(broken)
        emit_counter("still.works")
        assert metrics == [("still.works", 1.0, {})]

    @pytest.mark.asyncio
    async def test_store_operations_emit_durations(self, kv, metrics) -> None:
        await kv.set(["a"], 1)
        await kv.get(["a"])

        durations = [
            labels for name, _, labels in metrics if name == "sqlkv.operation.duration_ms"
        ]
        assert durations == [
            {"status": "ok", "table": "kv", "operation": "set"},
            {"status": "ok", "table": "kv", "operation": "get"},
        ]


class TestTimer:
    """Tests for Timer."""

    def test_measures_duration(self) -> None:
        with Timer() as timer:
            sum(range(1000))
        assert timer.duration_ms >= 0


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.mark.parametrize(("fmt", "formatter"), [("json", StructuredFormatter), ("text", logging.Formatter)])
    def test_installs_handler(self, fmt, formatter) -> None:
        logger = logging.getLogger("sqlkv")
        try:
            configure_logging(LogLevel.WARNING, format=fmt)
            assert logger.level == logging.WARNING
            assert len(logger.handlers) == 1
            assert type(logger.handlers[0].formatter) is formatter
        finally:
            logger.handlers.clear()
            logger.setLevel(logging.NOTSET)
