"""Unit tests for structured logging and metrics."""

from unittest.mock import patch

import pytest
import structlog

from cinejournal.observability.logging import (
    StructuredLogger,
    correlation_id_scope,
    get_correlation_id,
    get_logger,
    request_context_scope,
    set_correlation_id,
)
from cinejournal.observability.metrics import DEFAULT_REGISTRY, MetricsManager, get_metrics_manager


@pytest.mark.unit
class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    def test_init(self):
        logger = StructuredLogger()
        assert logger._configured is False

    @patch("cinejournal.observability.logging.logging.basicConfig")
    @patch("cinejournal.observability.logging.structlog.configure")
    def test_setup_logging_json_format(self, mock_configure, mock_basic_config):
        logger = StructuredLogger()
        logger.setup_logging(json_format=True, log_level="INFO")

        assert logger._configured is True
        processors = mock_configure.call_args[1]["processors"]
        assert any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    @patch("cinejournal.observability.logging.logging.basicConfig")
    @patch("cinejournal.observability.logging.structlog.configure")
    def test_setup_logging_console_format(self, mock_configure, mock_basic_config):
        logger = StructuredLogger()
        logger.setup_logging(json_format=False)

        processors = mock_configure.call_args[1]["processors"]
        assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in processors)

    @patch("cinejournal.observability.logging.logging.basicConfig")
    @patch("cinejournal.observability.logging.structlog.configure")
    def test_setup_logging_only_once(self, mock_configure, mock_basic_config):
        logger = StructuredLogger()
        logger.setup_logging()
        logger.setup_logging()

        mock_configure.assert_called_once()

    def test_add_correlation_id(self):
        logger = StructuredLogger()

        with correlation_id_scope("sweep-1"):
            event = logger._add_correlation_id(None, "info", {"event": "x"})

        assert event["correlation_id"] == "sweep-1"

    def test_add_request_context(self):
        logger = StructuredLogger()

        with request_context_scope(trigger="scheduled"):
            event = logger._add_request_context(None, "info", {"event": "x"})

        assert event["trigger"] == "scheduled"

    def test_get_logger(self):
        assert get_logger("cinejournal.tests") is not None


@pytest.mark.unit
class TestContextScopes:
    """Tests for correlation and request context helpers."""

    def test_correlation_scope_restores_previous(self):
        set_correlation_id("outer")

        with correlation_id_scope("inner"):
            assert get_correlation_id() == "inner"

        assert get_correlation_id() == "outer"


@pytest.mark.unit
class TestMetricsManager:
    """Tests for the Prometheus facade."""

    def test_record_sweep_exported(self):
        manager = MetricsManager()

        manager.record_sweep("expired", deleted=3, failed=1, already_removed=0, duration=0.2, timestamp=1.0)

        output = manager.get_metrics().decode("utf-8")
        assert 'cinejournal_retention_sweeps_total{sweep="expired",status="success"}' in output
        assert 'cinejournal_retention_records_total{sweep="expired",outcome="failed"}' in output

    def test_record_sweep_error(self):
        manager = MetricsManager()
        before = DEFAULT_REGISTRY.get_sample_value(
            "cinejournal_retention_sweeps_total", {"sweep": "inactive", "status": "error"}
        ) or 0

        manager.record_sweep_error("inactive")

        after = DEFAULT_REGISTRY.get_sample_value(
            "cinejournal_retention_sweeps_total", {"sweep": "inactive", "status": "error"}
        )
        assert after == before + 1

    def test_singleton(self):
        assert get_metrics_manager() is get_metrics_manager()

    def test_content_type(self):
        assert MetricsManager().content_type.startswith("text/plain")
