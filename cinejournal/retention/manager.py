"""Retention policy for ephemeral trending entries.

A trending entry is a deletion candidate when it is older than the retention
window (by ``created_at``) or when it has been marked inactive. Two passes
remove candidates:

* ``sweep_expired`` hard-deletes entries created before ``now - window``.
* ``sweep_inactive`` hard-deletes entries with ``is_active == False``.

``deactivate_expired`` is the soft variant used by the HTTP cleanup trigger:
it flips ``is_active`` on entries whose ``expires_at`` has passed, leaving the
actual deletion to the next ``sweep_inactive``.

Each pass handles at most ``batch_limit`` entries. A failed delete of one
entry is logged and recorded in the result; the pass continues. Deleting an
entry that another run already removed counts as a no-op success.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from cinejournal.config import RetentionSettings
from cinejournal.observability.logging import get_logger
from cinejournal.observability.metrics import MetricsManager, get_metrics_manager
from cinejournal.retention.errors import EntryNotFoundError, StoreQueryError

logger = get_logger(__name__)

# defaults come from the settings block
DEFAULT_RETENTION_WINDOW = timedelta(hours=RetentionSettings.model_fields["window_hours"].default)
DEFAULT_BATCH_LIMIT: int = RetentionSettings.model_fields["batch_limit"].default


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _entry_ids(entries: List[Any]) -> List[Any]:
    # read up front: a rolled back delete expires the loaded rows
    return [entry.id for entry in entries]


class TrendingStore(Protocol):
    """Record store operations the retention policy relies on.

    Query methods raise ``StoreQueryError`` when the store is unreachable.
    ``delete`` and ``deactivate`` return False when the entry no longer exists.
    """

    async def find_created_before(self, cutoff: datetime, limit: int) -> List[Any]:
        ...

    async def find_created_between(
        self, start: datetime, end: datetime, limit: int
    ) -> List[Any]:
        ...

    async def find_inactive(self, limit: int) -> List[Any]:
        ...

    async def find_expired_active(self, now: datetime, limit: int) -> List[Any]:
        ...

    async def get_by_id(self, entry_id: Any) -> Optional[Any]:
        ...

    async def delete(self, entry_id: Any) -> bool:
        ...

    async def deactivate(self, entry_id: Any) -> bool:
        ...

    async def update_expiration(self, entry_id: Any, expires_at: datetime) -> Optional[Any]:
        ...


@dataclass
class SweepFailure:
    """A single entry the sweep could not process."""
    entry_id: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"entry_id": self.entry_id, "error": self.error}


@dataclass
class SweepResult:
    """Outcome of one sweep pass.

    Attributes:
        sweep: Pass name ("expired", "inactive" or "deactivate")
        total_found: Candidates returned by the store query
        deleted_count: Entries this pass removed (or deactivated)
        already_removed: Candidates another run removed first
        failures: Entries whose mutation raised
        cutoff: Creation-time cutoff used by the expired pass
    """
    sweep: str
    total_found: int = 0
    deleted_count: int = 0
    already_removed: int = 0
    failures: List[SweepFailure] = field(default_factory=list)
    cutoff: Optional[datetime] = None
    duration_seconds: float = 0.0

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "sweep": self.sweep,
            "total_found": self.total_found,
            "deleted_count": self.deleted_count,
            "already_removed": self.already_removed,
            "failed_count": self.failed_count,
            "failures": [f.to_dict() for f in self.failures],
            "cutoff": self.cutoff.isoformat() if self.cutoff else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class RetentionRunResult:
    """Combined outcome of the expired and inactive passes."""
    expired: SweepResult
    inactive: SweepResult

    @property
    def total_deleted(self) -> int:
        return self.expired.deleted_count + self.inactive.deleted_count

    @property
    def total_failed(self) -> int:
        return self.expired.failed_count + self.inactive.failed_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_deleted": self.total_deleted,
            "total_failed": self.total_failed,
            "expired": self.expired.to_dict(),
            "inactive": self.inactive.to_dict(),
        }


class TrendingRetentionManager:
    """Applies the trending retention policy against a record store.

    Example:
        >>> manager = TrendingRetentionManager(TrendingRepository(session))
        >>> result = await manager.sweep_expired()
        >>> result.deleted_count, result.failed_count
        (12, 0)
    """

    def __init__(
        self,
        store: TrendingStore,
        window: timedelta = DEFAULT_RETENTION_WINDOW,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
        progress_log_every: int = 10,
        metrics: Optional[MetricsManager] = None,
    ):
        """Initialize the manager.

        Args:
            store: Record store holding trending entries
            window: Age after which an entry is swept
            batch_limit: Maximum entries handled per pass
            clock: Source of the current time
            progress_log_every: Log progress after this many deletes
            metrics: Metrics manager (global one if omitted)
        """
        if window <= timedelta(0):
            raise ValueError("Retention window must be positive")
        if batch_limit < 1:
            raise ValueError("Batch limit must be at least 1")

        self.store = store
        self.window = window
        self.batch_limit = batch_limit
        self._clock = clock
        self._progress_log_every = max(1, progress_log_every)
        self._metrics = metrics or get_metrics_manager()

    @classmethod
    def from_settings(
        cls,
        store: TrendingStore,
        settings: RetentionSettings,
        **kwargs: Any,
    ) -> "TrendingRetentionManager":
        """Build a manager from the retention settings block."""
        return cls(
            store,
            window=timedelta(hours=settings.window_hours),
            batch_limit=settings.batch_limit,
            progress_log_every=settings.progress_log_every,
            **kwargs,
        )

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        """Creation time before which entries are expired."""
        return (now or self._clock()) - self.window

    async def sweep_expired(self) -> SweepResult:
        """Delete entries created before ``now - window``.

        Returns:
            SweepResult with counts, per-entry failures and the cutoff used

        Raises:
            StoreQueryError: If the candidate query fails
        """
        started = time.time()
        cutoff = self.cutoff()

        logger.info(
            "trending_sweep_started",
            sweep="expired",
            cutoff=cutoff.isoformat(),
            window_hours=self.window.total_seconds() / 3600,
            batch_limit=self.batch_limit,
        )

        entries = await self._query(
            "expired",
            self.store.find_created_before(cutoff, limit=self.batch_limit),
        )

        result = SweepResult(sweep="expired", total_found=len(entries), cutoff=cutoff)
        await self._delete_entries(entries, result)
        return self._finish(result, started)

    async def sweep_inactive(self) -> SweepResult:
        """Delete entries marked inactive, regardless of age.

        Raises:
            StoreQueryError: If the candidate query fails
        """
        started = time.time()
        logger.info("trending_sweep_started", sweep="inactive", batch_limit=self.batch_limit)

        entries = await self._query(
            "inactive",
            self.store.find_inactive(limit=self.batch_limit),
        )

        result = SweepResult(sweep="inactive", total_found=len(entries))
        await self._delete_entries(entries, result)
        return self._finish(result, started)

    async def run_full_sweep(self) -> RetentionRunResult:
        """Run the expired pass followed by the inactive pass."""
        expired = await self.sweep_expired()
        inactive = await self.sweep_inactive()
        run = RetentionRunResult(expired=expired, inactive=inactive)

        logger.info(
            "trending_retention_run_completed",
            total_deleted=run.total_deleted,
            total_failed=run.total_failed,
            expired_found=expired.total_found,
            inactive_found=inactive.total_found,
        )
        return run

    async def deactivate_expired(self) -> SweepResult:
        """Mark active entries whose ``expires_at`` has passed as inactive.

        Nothing is deleted; the entries become candidates for ``sweep_inactive``.
        ``deleted_count`` on the result counts deactivated entries.

        Raises:
            StoreQueryError: If the candidate query fails
        """
        started = time.time()
        now = self._clock()
        logger.info("trending_deactivation_started", now=now.isoformat())

        entries = await self._query(
            "deactivate",
            self.store.find_expired_active(now, limit=self.batch_limit),
        )

        result = SweepResult(sweep="deactivate", total_found=len(entries))
        for raw_id in _entry_ids(entries):
            entry_id = str(raw_id)
            try:
                changed = await self.store.deactivate(raw_id)
            except Exception as e:
                logger.warning(
                    "trending_entry_deactivate_failed",
                    entry_id=entry_id,
                    error=str(e),
                )
                result.failures.append(SweepFailure(entry_id=entry_id, error=str(e)))
                continue

            if changed:
                result.deleted_count += 1
            else:
                result.already_removed += 1

        return self._finish(result, started)

    async def extend_retention(self, entry_id: Any, additional: timedelta) -> Any:
        """Push an entry's ``expires_at`` further into the future.

        The new value is ``expires_at + additional``, or ``now + additional``
        when the entry has no expiration. This only affects the soft
        deactivation pass; ``sweep_expired`` still uses ``created_at``.

        Args:
            entry_id: Trending entry identifier
            additional: Duration to add

        Returns:
            The updated entry

        Raises:
            EntryNotFoundError: If no entry has this identifier
            ValueError: If ``additional`` is not positive
        """
        if additional <= timedelta(0):
            raise ValueError("Extension must be a positive duration")

        entry = await self.store.get_by_id(entry_id)
        if entry is None:
            logger.info("trending_entry_not_found", entry_id=str(entry_id))
            raise EntryNotFoundError(entry_id)

        base = entry.expires_at or self._clock()
        new_expiration = base + additional

        updated = await self.store.update_expiration(entry.id, new_expiration)
        if updated is None:
            # removed by a sweep between the read and the update
            raise EntryNotFoundError(entry_id)

        logger.info(
            "trending_retention_extended",
            entry_id=str(entry.id),
            previous_expires_at=entry.expires_at.isoformat() if entry.expires_at else None,
            expires_at=new_expiration.isoformat(),
            additional_hours=additional.total_seconds() / 3600,
        )
        return updated

    async def find_expiring_soon(self, within: timedelta) -> List[Any]:
        """Entries whose age will pass the retention window within ``within``.

        Read only. An entry qualifies when
        ``cutoff <= created_at < cutoff + within``.
        """
        if within <= timedelta(0):
            raise ValueError("Lookahead must be a positive duration")

        cutoff = self.cutoff()
        return await self._query(
            "expiring_soon",
            self.store.find_created_between(cutoff, cutoff + within, limit=self.batch_limit),
        )

    async def _query(self, sweep: str, pending: Any) -> List[Any]:
        try:
            return list(await pending)
        except StoreQueryError as e:
            self._metrics.record_sweep_error(sweep)
            logger.error("trending_sweep_query_failed", sweep=sweep, error=str(e))
            raise
        except Exception as e:
            self._metrics.record_sweep_error(sweep)
            logger.error("trending_sweep_query_failed", sweep=sweep, error=str(e))
            raise StoreQueryError(sweep, str(e)) from e

    async def _delete_entries(self, entries: List[Any], result: SweepResult) -> None:
        for raw_id in _entry_ids(entries):
            entry_id = str(raw_id)
            try:
                removed = await self.store.delete(raw_id)
            except Exception as e:
                logger.warning(
                    "trending_entry_delete_failed",
                    sweep=result.sweep,
                    entry_id=entry_id,
                    error=str(e),
                )
                result.failures.append(SweepFailure(entry_id=entry_id, error=str(e)))
                continue

            if not removed:
                result.already_removed += 1
                logger.debug("trending_entry_already_removed", sweep=result.sweep, entry_id=entry_id)
                continue

            result.deleted_count += 1
            if result.deleted_count % self._progress_log_every == 0:
                logger.info(
                    "trending_sweep_progress",
                    sweep=result.sweep,
                    deleted=result.deleted_count,
                    total=result.total_found,
                )

    def _finish(self, result: SweepResult, started: float) -> SweepResult:
        finished = time.time()
        result.duration_seconds = finished - started

        self._metrics.record_sweep(
            sweep=result.sweep,
            deleted=result.deleted_count,
            failed=result.failed_count,
            already_removed=result.already_removed,
            duration=result.duration_seconds,
            timestamp=finished,
        )

        log = logger.warning if result.failures else logger.info
        log(
            "trending_sweep_completed",
            sweep=result.sweep,
            total_found=result.total_found,
            deleted=result.deleted_count,
            already_removed=result.already_removed,
            failed=result.failed_count,
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result
