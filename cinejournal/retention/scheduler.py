"""Daily scheduling of the trending retention sweeps.

The job runs the expired pass and then the inactive pass inside one
database session. A store query failure is logged and the job waits for
the next tick; there is no retry within the same run.
"""

from datetime import datetime
from typing import Any, AsyncContextManager, Awaitable, Callable, Optional
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from cinejournal.config import RetentionSettings
from cinejournal.db.models import session_scope
from cinejournal.db.repositories.trending import TrendingRepository
from cinejournal.observability.logging import (
    correlation_id_scope,
    get_logger,
    request_context_scope,
)
from cinejournal.retention.errors import StoreQueryError
from cinejournal.retention.manager import RetentionRunResult, TrendingRetentionManager

logger = get_logger(__name__)

SWEEP_JOB_ID = "trending-retention-sweep"


async def run_retention_sweep(
    settings: RetentionSettings,
    session_factory: Callable[[], AsyncContextManager[Any]] = session_scope,
    trigger: str = "scheduled",
) -> Optional[RetentionRunResult]:
    """Run both retention passes once.

    Args:
        settings: Retention settings
        session_factory: Produces a session context (commit/rollback handled by it)
        trigger: Label attached to every log line of this run

    Returns:
        The run result, or None when the store query failed
    """
    run_id = f"retention-{uuid4().hex[:12]}"
    with correlation_id_scope(run_id), request_context_scope(trigger=trigger):
        try:
            async with session_factory() as session:
                manager = TrendingRetentionManager.from_settings(
                    TrendingRepository(session), settings
                )
                return await manager.run_full_sweep()
        except StoreQueryError as e:
            logger.error(
                "retention_run_failed",
                error=str(e),
                operation=e.operation,
                next_attempt="next scheduled tick",
            )
            return None


class RetentionScheduler:
    """Registers the daily sweep on an APScheduler AsyncIOScheduler."""

    def __init__(
        self,
        settings: RetentionSettings,
        job: Optional[Callable[[], Awaitable[Any]]] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        """Initialize the scheduler.

        Args:
            settings: Retention settings (cron expression and timezone)
            job: Coroutine function to run on each tick
            scheduler: Scheduler instance to register the job on
        """
        self.settings = settings
        self._job = job or (lambda: run_retention_sweep(self.settings))
        self._scheduler = scheduler or AsyncIOScheduler(timezone=settings.timezone)

    def build_trigger(self) -> CronTrigger:
        """Cron trigger for the configured schedule."""
        return CronTrigger.from_crontab(self.settings.cleanup_cron, timezone=self.settings.timezone)

    def start(self) -> None:
        """Register the sweep job and start the scheduler."""
        self._scheduler.add_job(
            self._job,
            trigger=self.build_trigger(),
            id=SWEEP_JOB_ID,
            name="Trending retention sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        self._scheduler.start()
        logger.info(
            "retention_scheduler_started",
            cron=self.settings.cleanup_cron,
            timezone=self.settings.timezone,
            next_run_time=self._format(self.next_run_time),
        )

    def shutdown(self) -> None:
        """Stop the scheduler without waiting for a running sweep."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("retention_scheduler_stopped")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def next_run_time(self) -> Optional[datetime]:
        job = self._scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None

    @staticmethod
    def _format(value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None
