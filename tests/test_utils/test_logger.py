"""Unit tests for slotmanager.utils.logger module."""

import json
import logging
from io import StringIO
from unittest.mock import patch

from opentelemetry import trace

from slotmanager.utils.logger import (
    ColoredConsoleFormatter,
    ContextInjectionFilter,
    CustomJsonFormatter,
    get_logger,
    setup_logging,
)
from slotmanager.utils.context import set_context, clear_context


def capture(name: str):
    """Logger writing JSON lines to a buffer."""
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(ContextInjectionFilter())
    handler.setFormatter(CustomJsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def last_record(stream: StringIO) -> dict:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


class TestCustomJsonFormatter:
    """Tests for JSON output."""

    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_basic_fields(self):
        logger, stream = capture("test.basic")
        logger.info("Allocation created")

        record = last_record(stream)
        assert record["message"] == "Allocation created"
        assert record["level"] == "INFO"
        assert record["logger"] == "test.basic"
        assert "timestamp" in record

    def test_extra_fields(self):
        logger, stream = capture("test.extra")
        logger.info("Usage computed", extra={"usage": 3, "limit": 4})

        record = last_record(stream)
        assert record["usage"] == 3
        assert record["limit"] == 4

    def test_context_fields(self):
        logger, stream = capture("test.context")
        set_context(
            request_id="req-1",
            user_id=1,
            resource_kind="phone",
            resource_id="p-1",
            action="allocation.create",
        )
        logger.info("With context")

        record = last_record(stream)
        assert record["request_id"] == "req-1"
        assert record["user_id"] == 1
        assert record["resource_kind"] == "phone"
        assert record["resource_id"] == "p-1"
        assert record["action"] == "allocation.create"

    def test_absent_context_is_omitted(self):
        logger, stream = capture("test.nocontext")
        logger.info("No context")

        record = last_record(stream)
        assert "request_id" not in record
        assert "resource_id" not in record

    def test_trace_ids(self):
        logger, stream = capture("test.trace")
        tracer = trace.get_tracer(__name__)

        with tracer.start_as_current_span("op") as span:
            logger.info("Inside span")
            expected = format(span.get_span_context().trace_id, "032x")

        assert last_record(stream)["trace_id"] == expected

    def test_exception_info(self):
        logger, stream = capture("test.exc")
        try:
            raise ValueError("bad count")
        except ValueError:
            logger.exception("Failed")

        record = last_record(stream)
        assert "ValueError: bad count" in record["exc_info"]


class TestColoredConsoleFormatter:
    """Tests for console output."""

    def test_level_is_coloured(self):
        formatter = ColoredConsoleFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "oops", None, None)

        output = formatter.format(record)
        assert "\033[31m" in output
        assert "oops" in output


class TestSetupLogging:
    """Tests for root logger configuration."""

    def teardown_method(self):
        setup_logging()

    @patch("slotmanager.utils.logger.settings")
    def test_json_format(self, mock_settings):
        mock_settings.LOG_FORMAT = "json"
        mock_settings.LOG_LEVEL = "DEBUG"
        setup_logging()

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, CustomJsonFormatter)

    @patch("slotmanager.utils.logger.settings")
    def test_console_format(self, mock_settings):
        mock_settings.LOG_FORMAT = "console"
        mock_settings.LOG_LEVEL = "warning"
        setup_logging()

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, ColoredConsoleFormatter)

    def test_get_logger(self):
        assert get_logger("slotmanager.test") is logging.getLogger("slotmanager.test")
