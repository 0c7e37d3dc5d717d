"""Health check routes for the CineJournal API.

Liveness, readiness and a component report covering the database, the
retention scheduler and the TMDB configuration.
"""

import asyncio
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy import text

from cinejournal.api.models import ComponentHealth, HealthResponse, HealthStatus
from cinejournal.config import get_settings
from cinejournal.db.models import session_scope, utcnow

router = APIRouter(prefix="/health", tags=["Health"])


class HealthCheckResult(BaseModel):
    """Result of a health check."""
    healthy: bool
    component: str
    message: Optional[str] = None
    latency_ms: Optional[float] = None
    details: Dict[str, Any] = {}
    # Unhealthy but not required for serving traffic
    degraded_only: bool = False


class ReadinessResponse(BaseModel):
    ready: bool
    timestamp: str
    checks: Dict[str, bool]


class LivenessResponse(BaseModel):
    alive: bool
    timestamp: str


async def check_database() -> HealthCheckResult:
    """Check database connectivity with a trivial query."""
    start = time.time()
    try:
        async with session_scope() as session:
            result = await session.execute(text("SELECT 1"))
            row = result.scalar()
        return HealthCheckResult(
            healthy=row == 1,
            component="database",
            message="Database connection successful",
            latency_ms=round((time.time() - start) * 1000, 2),
        )
    except Exception as e:
        return HealthCheckResult(
            healthy=False,
            component="database",
            message=f"Database check failed: {str(e)}",
            latency_ms=round((time.time() - start) * 1000, 2),
        )


def check_scheduler(request: Request) -> HealthCheckResult:
    """Report whether the daily retention sweep is scheduled."""
    retention = get_settings().retention
    scheduler = getattr(request.app.state, "retention_scheduler", None)

    if not retention.scheduler_enabled:
        return HealthCheckResult(
            healthy=True,
            component="retention_scheduler",
            message="Scheduler disabled by configuration",
        )

    if scheduler is None or not scheduler.running:
        return HealthCheckResult(
            healthy=False,
            component="retention_scheduler",
            message="Retention scheduler is not running",
            degraded_only=True,
        )

    next_run = scheduler.next_run_time
    return HealthCheckResult(
        healthy=True,
        component="retention_scheduler",
        message="Retention scheduler running",
        details={
            "cron": retention.cleanup_cron,
            "next_run_time": next_run.isoformat() if next_run else None,
        },
    )


def check_tmdb() -> HealthCheckResult:
    """TMDB is optional: without a token only search and lookup are unavailable."""
    configured = bool(get_settings().tmdb.api_key)
    return HealthCheckResult(
        healthy=configured,
        component="tmdb",
        message="TMDB token configured" if configured else "TMDB_API_KEY is not set",
        degraded_only=True,
    )


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Component health report.

    The service is unhealthy when the database is unreachable and degraded
    when only optional components are down.
    """
    settings = get_settings()
    database = await check_database()
    checks = [database, check_scheduler(request), check_tmdb()]

    components: Dict[str, ComponentHealth] = {
        "api": ComponentHealth(status=HealthStatus.HEALTHY),
    }
    overall = HealthStatus.HEALTHY

    for check in checks:
        if check.healthy:
            component_status = HealthStatus.HEALTHY
        elif check.degraded_only:
            component_status = HealthStatus.DEGRADED
            if overall == HealthStatus.HEALTHY:
                overall = HealthStatus.DEGRADED
        else:
            component_status = HealthStatus.UNHEALTHY
            overall = HealthStatus.UNHEALTHY

        components[check.component] = ComponentHealth(
            status=component_status,
            message=check.message,
            latency_ms=check.latency_ms,
            details=check.details,
        )

    return HealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.env,
        components=components,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Readiness check. Fails with 503 while the database is unreachable."""
    checks = await asyncio.gather(check_database(), return_exceptions=True)

    check_results: Dict[str, bool] = {}
    for check in checks:
        if isinstance(check, Exception):
            check_results["unknown"] = False
        else:
            check_results[check.component] = check.healthy

    if not all(check_results.values()):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "ready": False,
                "timestamp": utcnow().isoformat(),
                "checks": check_results,
            },
        )

    return ReadinessResponse(ready=True, timestamp=utcnow().isoformat(), checks=check_results)


@router.get("/live", response_model=LivenessResponse)
async def liveness_check() -> LivenessResponse:
    """Liveness check. If the server responds, it is alive."""
    return LivenessResponse(alive=True, timestamp=utcnow().isoformat())
