"""Observability for the CineJournal backend: structured logging and metrics."""

from cinejournal.observability.logging import (
    correlation_id_scope,
    get_logger,
    request_context_scope,
    setup_logging,
)
from cinejournal.observability.metrics import MetricsManager, get_metrics_manager

__all__ = [
    "correlation_id_scope",
    "get_logger",
    "request_context_scope",
    "setup_logging",
    "MetricsManager",
    "get_metrics_manager",
]
