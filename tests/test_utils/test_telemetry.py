"""Unit tests for slotmanager.utils.telemetry module."""

from unittest.mock import patch, MagicMock

import pytest
from opentelemetry import trace

from slotmanager.utils import telemetry
from slotmanager.utils.telemetry import (
    add_span_attributes,
    get_tracer,
    instrument_app,
    setup_telemetry,
    trace_operation,
)


@pytest.fixture(autouse=True)
def reset_tracer():
    """Drop any tracer cached by a test with a mocked provider."""
    yield
    telemetry._tracer = None


class TestSetupTelemetry:
    """Tests for tracer provider setup."""

    @patch("slotmanager.utils.telemetry.settings")
    @patch("slotmanager.utils.telemetry.trace")
    def test_installs_provider(self, mock_trace, mock_settings):
        mock_settings.OTEL_SERVICE_NAME = "slotmanager-test"
        mock_settings.OTEL_TRACE_SAMPLE_RATE = 0.5
        mock_settings.OTEL_EXPORT_CONSOLE = False
        mock_settings.ENVIRONMENT = "test"

        setup_telemetry()

        mock_trace.set_tracer_provider.assert_called_once()
        provider = mock_trace.set_tracer_provider.call_args[0][0]
        assert provider.resource.attributes["service.name"] == "slotmanager-test"
        assert provider.resource.attributes["environment"] == "test"

    @patch("slotmanager.utils.telemetry.BatchSpanProcessor")
    @patch("slotmanager.utils.telemetry.settings")
    @patch("slotmanager.utils.telemetry.trace")
    def test_console_export(self, mock_trace, mock_settings, mock_processor):
        mock_settings.OTEL_SERVICE_NAME = "slotmanager-test"
        mock_settings.OTEL_TRACE_SAMPLE_RATE = 1.0
        mock_settings.OTEL_EXPORT_CONSOLE = True
        mock_settings.ENVIRONMENT = "test"

        setup_telemetry()

        mock_processor.assert_called_once()


class TestInstrumentation:
    """Instrumentation failures are logged, never raised."""

    @patch("slotmanager.utils.telemetry.FastAPIInstrumentor")
    def test_instrument_app_failure(self, mock_instrumentor):
        mock_instrumentor.instrument_app.side_effect = RuntimeError("already done")

        instrument_app(MagicMock())

        mock_instrumentor.instrument_app.assert_called_once()


class TestSpans:
    """Tests for span helpers."""

    def test_get_tracer_is_cached(self):
        assert get_tracer() is get_tracer()

    def test_add_span_attributes_skips_none(self):
        tracer = trace.get_tracer(__name__)
        with tracer.start_as_current_span("test") as span:
            add_span_attributes(**{"resource.id": "p1", "resource.kind": None})

        assert span.attributes["resource.id"] == "p1"
        assert "resource.kind" not in span.attributes

    def test_add_span_attributes_without_span(self):
        add_span_attributes(**{"resource.id": "p1"})

    def test_trace_operation_sets_attributes(self):
        with trace_operation("service.test", {"allocation.count": 2}) as span:
            pass

        assert span.name == "service.test"
        assert span.attributes["allocation.count"] == 2

    def test_trace_operation_records_errors(self):
        with pytest.raises(ValueError):
            with trace_operation("service.failing") as span:
                raise ValueError("boom")

        assert span.status.status_code == trace.StatusCode.ERROR
        assert span.events[0].name == "exception"
