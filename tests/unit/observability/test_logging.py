"""Tests for structured logging."""

import json
import logging

from leasehold.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    owner_var,
    resource_var,
)


def make_record(message: str = "Acquired lock", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="leasehold.manager",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self) -> None:
        data = json.loads(JsonFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "leasehold.manager"
        assert data["message"] == "Acquired lock"
        assert "resource" not in data

    def test_includes_lock_context(self) -> None:
        with LogContext(resource="orders", owner="w1"):
            data = json.loads(JsonFormatter().format(make_record()))

        assert data["resource"] == "orders"
        assert data["owner"] == "w1"

    def test_includes_extra_fields(self) -> None:
        data = json.loads(JsonFormatter().format(make_record(fencing_token=7, obj=object())))

        assert data["fencing_token"] == 7
        assert isinstance(data["obj"], str)

    def test_exception_info(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys

            record = make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"


class TestLogContext:
    """Tests for LogContext."""

    def test_restores_previous_values(self) -> None:
        with LogContext(resource="outer"):
            with LogContext(resource="inner", owner="w1"):
                assert resource_var.get() == "inner"
            assert resource_var.get() == "outer"
            assert owner_var.get() == ""

        assert resource_var.get() == ""

    def test_console_formatter_shows_resource(self) -> None:
        with LogContext(resource="orders"):
            line = ConsoleFormatter(use_colors=False).format(make_record())

        assert "res=orders" in line
        assert "Acquired lock" in line
