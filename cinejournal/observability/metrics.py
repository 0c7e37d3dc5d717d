"""Prometheus metrics for the CineJournal backend.

Counters and histograms for the HTTP API, the retention sweeps and the
TMDB client.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

# Default registry
DEFAULT_REGISTRY = CollectorRegistry()

# =============================================================================
# API Metrics
# =============================================================================

API_REQUESTS = Counter(
    'cinejournal_api_requests_total',
    'Total number of API requests',
    ['method', 'endpoint', 'status_code'],
    registry=DEFAULT_REGISTRY,
)

API_REQUEST_DURATION = Histogram(
    'cinejournal_api_request_duration_seconds',
    'API request duration',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
    registry=DEFAULT_REGISTRY,
)

# =============================================================================
# Retention Metrics
# =============================================================================

RETENTION_SWEEPS = Counter(
    'cinejournal_retention_sweeps_total',
    'Number of retention sweep runs',
    ['sweep', 'status'],
    registry=DEFAULT_REGISTRY,
)

RETENTION_RECORDS = Counter(
    'cinejournal_retention_records_total',
    'Trending entries processed by retention sweeps',
    ['sweep', 'outcome'],
    registry=DEFAULT_REGISTRY,
)

RETENTION_SWEEP_DURATION = Histogram(
    'cinejournal_retention_sweep_duration_seconds',
    'Time spent in a single retention sweep',
    ['sweep'],
    buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300],
    registry=DEFAULT_REGISTRY,
)

RETENTION_LAST_RUN = Gauge(
    'cinejournal_retention_last_run_timestamp_seconds',
    'Unix time of the last completed retention sweep',
    ['sweep'],
    registry=DEFAULT_REGISTRY,
)

# =============================================================================
# TMDB Metrics
# =============================================================================

TMDB_REQUESTS = Counter(
    'cinejournal_tmdb_requests_total',
    'Requests sent to the TMDB API',
    ['operation', 'status'],
    registry=DEFAULT_REGISTRY,
)

# =============================================================================
# System Info
# =============================================================================

SYSTEM_INFO = Info(
    'cinejournal_system',
    'Service build information',
    registry=DEFAULT_REGISTRY,
)


class MetricsManager:
    """Facade over the module level collectors."""

    def __init__(self, registry: CollectorRegistry = DEFAULT_REGISTRY):
        self.registry = registry

    def record_api_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration: float,
    ) -> None:
        """Record an API request.

        Args:
            method: HTTP method
            endpoint: API endpoint
            status_code: HTTP status code
            duration: Request duration in seconds
        """
        API_REQUESTS.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code),
        ).inc()
        API_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    def record_sweep(
        self,
        sweep: str,
        deleted: int,
        failed: int,
        already_removed: int,
        duration: float,
        timestamp: float,
    ) -> None:
        """Record the outcome of a completed sweep.

        Args:
            sweep: Sweep name (expired, inactive, deactivate)
            deleted: Records removed or deactivated
            failed: Records whose mutation failed
            already_removed: Records another run removed first
            duration: Sweep duration in seconds
            timestamp: Completion time as a Unix timestamp
        """
        RETENTION_SWEEPS.labels(sweep=sweep, status="success").inc()
        if deleted:
            RETENTION_RECORDS.labels(sweep=sweep, outcome="deleted").inc(deleted)
        if failed:
            RETENTION_RECORDS.labels(sweep=sweep, outcome="failed").inc(failed)
        if already_removed:
            RETENTION_RECORDS.labels(sweep=sweep, outcome="already_removed").inc(already_removed)
        RETENTION_SWEEP_DURATION.labels(sweep=sweep).observe(duration)
        RETENTION_LAST_RUN.labels(sweep=sweep).set(timestamp)

    def record_sweep_error(self, sweep: str) -> None:
        """Record a sweep that aborted on a store query failure."""
        RETENTION_SWEEPS.labels(sweep=sweep, status="error").inc()

    def record_tmdb_request(self, operation: str, status: str) -> None:
        """Record a TMDB API call."""
        TMDB_REQUESTS.labels(operation=operation, status=status).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus exposition format."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST


# Global metrics manager instance
_metrics_manager: Optional[MetricsManager] = None


def get_metrics_manager() -> MetricsManager:
    """Get or create the global metrics manager.

    Returns:
        MetricsManager singleton instance
    """
    global _metrics_manager
    if _metrics_manager is None:
        _metrics_manager = MetricsManager()
    return _metrics_manager
