"""Retention policy for ephemeral trending entries."""

from cinejournal.retention.errors import EntryNotFoundError, RetentionError, StoreQueryError
from cinejournal.retention.manager import (
    RetentionRunResult,
    SweepFailure,
    SweepResult,
    TrendingRetentionManager,
    TrendingStore,
)

__all__ = [
    "EntryNotFoundError",
    "RetentionError",
    "StoreQueryError",
    "RetentionRunResult",
    "SweepFailure",
    "SweepResult",
    "TrendingRetentionManager",
    "TrendingStore",
]
