"""Trending content API routes.

Besides CRUD and listing, this module exposes the two on-demand retention
triggers:

* ``DELETE /trendings/cleanup`` deactivates entries past ``expires_at``.
* ``DELETE /trendings/sweep`` hard-deletes expired and inactive entries.

Per-entry failures are reported in the response body; only a failed store
query turns into an HTTP error.
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.api.dependencies import (
    clamp_limit,
    get_config,
    get_db,
    get_retention_manager,
    parse_uuid,
)
from cinejournal.api.models import (
    BulkItemError,
    BulkUpdateRequest,
    BulkUpdateResponse,
    CleanupResponse,
    ErrorResponse,
    ExtendRetentionRequest,
    ListMeta,
    Pagination,
    SweepResponse,
    SweepSummary,
    TrendingCreate,
    TrendingListResponse,
    TrendingResponse,
    TrendingUpdate,
)
from cinejournal.auth.base import User
from cinejournal.auth.dependencies import require_service
from cinejournal.config import Settings
from cinejournal.db.models import utcnow
from cinejournal.db.repositories.trending import TrendingRepository
from cinejournal.observability.logging import get_logger
from cinejournal.retention.errors import EntryNotFoundError, StoreQueryError
from cinejournal.retention.manager import TrendingRetentionManager

router = APIRouter(prefix="/trendings", tags=["Trending"])
logger = get_logger(__name__)

TYPE_PATTERN = "^(movie|tv)$"
MAX_LIST_LIMIT = 1000
MAX_ACTIVE_LIMIT = 100
MAX_PLATFORM_LIMIT = 50


# ============================================================================
# Helper Functions
# ============================================================================

def _list_response(items: list) -> TrendingListResponse:
    return TrendingListResponse(
        data=[TrendingResponse.model_validate(item) for item in items],
        meta=ListMeta(pagination=Pagination.build(1, max(len(items), 1), len(items))),
    )


def _store_unavailable(event: str, error: StoreQueryError, detail: str) -> HTTPException:
    logger.error(event, error=str(error), operation=error.operation)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


# ============================================================================
# Listing Endpoints
# ============================================================================

@router.get(
    "",
    response_model=TrendingListResponse,
    summary="List trending titles",
    description="All trending entries ordered by rank, then score.",
)
async def list_trendings(
    media_type: Optional[str] = Query(None, alias="type", pattern=TYPE_PATTERN),
    platform: Optional[str] = Query(None, max_length=50),
    db: AsyncSession = Depends(get_db),
) -> TrendingListResponse:
    repo = TrendingRepository(db)
    items = await repo.list_trending(media_type=media_type, platform=platform, limit=MAX_LIST_LIMIT)

    logger.info("trendings_listed", count=len(items), type=media_type, platform=platform)
    return _list_response(items)


@router.get(
    "/active",
    response_model=TrendingListResponse,
    summary="List active trending titles",
)
async def list_active_trendings(
    media_type: Optional[str] = Query(None, alias="type", pattern=TYPE_PATTERN),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
) -> TrendingListResponse:
    """Active entries whose expires_at has not passed."""
    repo = TrendingRepository(db)
    items = await repo.find_active(
        now=utcnow(),
        media_type=media_type,
        limit=clamp_limit(limit, MAX_ACTIVE_LIMIT),
    )
    return _list_response(items)


@router.get(
    "/platform/{platform}",
    response_model=TrendingListResponse,
    summary="List trending titles for a platform",
)
async def list_trendings_by_platform(
    platform: str,
    media_type: Optional[str] = Query(None, alias="type", pattern=TYPE_PATTERN),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
) -> TrendingListResponse:
    """Active, unexpired entries for one streaming platform. At most 50."""
    repo = TrendingRepository(db)
    items = await repo.find_active(
        now=utcnow(),
        media_type=media_type,
        platform=platform,
        limit=clamp_limit(limit, MAX_PLATFORM_LIMIT),
    )

    logger.info("trendings_listed_by_platform", platform=platform, count=len(items))
    return _list_response(items)


@router.get(
    "/expiring",
    response_model=TrendingListResponse,
    summary="List entries about to leave the retention window",
)
async def list_expiring_trendings(
    within_hours: Optional[float] = Query(None, gt=0, le=24 * 30),
    manager: TrendingRetentionManager = Depends(get_retention_manager),
    config: Settings = Depends(get_config),
) -> TrendingListResponse:
    """Entries the next expired sweep will pick up within ``within_hours``.

    Defaults to ``RETENTION_EXPIRING_SOON_HOURS``.
    """
    if within_hours is None:
        within_hours = config.retention.expiring_soon_hours
    try:
        items = await manager.find_expiring_soon(timedelta(hours=within_hours))
    except StoreQueryError as e:
        raise _store_unavailable(
            "trending_expiring_query_failed", e, "Unable to fetch expiring trending items"
        ) from e
    return _list_response(items)


# ============================================================================
# Retention Triggers
# ============================================================================

@router.delete(
    "/cleanup",
    response_model=CleanupResponse,
    responses={500: {"model": ErrorResponse, "description": "Store query failed"}},
    summary="Deactivate expired trending entries",
)
async def cleanup_expired_trendings(
    manager: TrendingRetentionManager = Depends(get_retention_manager),
    caller: User = Depends(require_service),
) -> CleanupResponse:
    """Soft cleanup: active entries past expires_at are marked inactive.

    They are permanently removed by the next inactive sweep.
    """
    try:
        result = await manager.deactivate_expired()
    except StoreQueryError as e:
        raise _store_unavailable(
            "trending_cleanup_failed", e, "Unable to clean up expired trending items"
        ) from e

    logger.info(
        "trending_cleanup_triggered",
        caller=str(caller.id),
        cleaned=result.deleted_count,
        failed=result.failed_count,
    )
    return CleanupResponse(
        success=True,
        cleaned=result.deleted_count,
        failed=result.failed_count,
        message=f"Deactivated {result.deleted_count} expired trending items",
    )


@router.delete(
    "/sweep",
    response_model=SweepResponse,
    responses={500: {"model": ErrorResponse, "description": "Store query failed"}},
    summary="Delete expired and inactive trending entries",
)
async def sweep_trendings(
    manager: TrendingRetentionManager = Depends(get_retention_manager),
    caller: User = Depends(require_service),
) -> SweepResponse:
    """Hard sweep: the expired pass followed by the inactive pass."""
    try:
        run = await manager.run_full_sweep()
    except StoreQueryError as e:
        raise _store_unavailable("trending_sweep_failed", e, "Unable to sweep trending items") from e

    logger.info(
        "trending_sweep_triggered",
        caller=str(caller.id),
        deleted=run.total_deleted,
        failed=run.total_failed,
    )
    return SweepResponse(
        success=True,
        cleaned=run.total_deleted,
        failed=run.total_failed,
        message=(
            f"Deleted {run.total_deleted} trending items "
            f"({run.expired.deleted_count} expired, {run.inactive.deleted_count} inactive)"
        ),
        expired=SweepSummary.model_validate(run.expired.to_dict()),
        inactive=SweepSummary.model_validate(run.inactive.to_dict()),
    )


# ============================================================================
# Ingestion
# ============================================================================

@router.put(
    "/bulk-update",
    response_model=BulkUpdateResponse,
    summary="Upsert trending entries by TMDB id and type",
)
async def bulk_update_trendings(
    body: BulkUpdateRequest,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_config),
    caller: User = Depends(require_service),
) -> BulkUpdateResponse:
    """Create or update each item; failures are collected per item.

    Existing entries only receive the fields an item carries.
    """
    if not body.items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Items array is required",
        )

    repo = TrendingRepository(db)
    default_expiration = timedelta(hours=config.retention.default_expiration_hours)
    results: list[TrendingResponse] = []
    errors: list[BulkItemError] = []
    created = 0

    for item in body.items:
        try:
            entry, was_created = await repo.upsert_by_tmdb(
                item.model_dump(exclude_unset=True),
                defaults=item.model_dump(exclude_none=True),
                default_expiration=default_expiration,
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("trending_bulk_item_failed", tmdb_id=item.tmdb_id, error=str(e))
            errors.append(BulkItemError(tmdb_id=item.tmdb_id, error=str(e)))
            continue

        created += int(was_created)
        results.append(TrendingResponse.model_validate(entry))

    logger.info(
        "trending_bulk_update_completed",
        caller=str(caller.id),
        processed=len(results),
        created=created,
        errors=len(errors),
    )
    return BulkUpdateResponse(
        success=True,
        processed=len(results),
        created=created,
        updated=len(results) - created,
        error_count=len(errors),
        results=results,
        errors=errors,
    )


@router.post(
    "",
    response_model=TrendingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Duplicate TMDB id and type"}},
    summary="Create a trending entry",
)
async def create_trending(
    body: TrendingCreate,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_config),
    caller: User = Depends(require_service),
) -> TrendingResponse:
    """expires_at defaults to now plus the configured expiration offset."""
    repo = TrendingRepository(db)
    try:
        entry = await repo.create(
            body.model_dump(exclude_none=True),
            default_expiration=timedelta(hours=config.retention.default_expiration_hours),
        )
    except IntegrityError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Trending entry for TMDB id {body.tmdb_id} ({body.type}) already exists",
        ) from e

    logger.info("trending_created", entry_id=str(entry.id), tmdb_id=entry.tmdb_id)
    return TrendingResponse.model_validate(entry)


# ============================================================================
# Single Entry Endpoints
# ============================================================================

@router.get(
    "/{entry_id}",
    response_model=TrendingResponse,
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
)
async def get_trending(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
) -> TrendingResponse:
    entry = await TrendingRepository(db).get_by_id(parse_uuid(entry_id))
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Trending entry '{entry_id}' not found",
        )
    return TrendingResponse.model_validate(entry)


@router.put(
    "/{entry_id}",
    response_model=TrendingResponse,
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
)
async def update_trending(
    entry_id: str,
    body: TrendingUpdate,
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_service),
) -> TrendingResponse:
    entry = await TrendingRepository(db).update(
        parse_uuid(entry_id),
        body.model_dump(exclude_unset=True),
    )
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Trending entry '{entry_id}' not found",
        )
    return TrendingResponse.model_validate(entry)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
)
async def delete_trending(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_service),
) -> None:
    deleted = await TrendingRepository(db).delete(parse_uuid(entry_id))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Trending entry '{entry_id}' not found",
        )
    logger.info("trending_deleted", entry_id=entry_id)


@router.post(
    "/{entry_id}/extend",
    response_model=TrendingResponse,
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
    summary="Extend an entry's expiration",
)
async def extend_trending_retention(
    entry_id: str,
    body: ExtendRetentionRequest,
    manager: TrendingRetentionManager = Depends(get_retention_manager),
    caller: User = Depends(require_service),
) -> TrendingResponse:
    """Adds ``hours`` to expires_at.

    This postpones the soft cleanup only. The hard sweep still removes the
    entry once it is older than the retention window.
    """
    try:
        entry = await manager.extend_retention(parse_uuid(entry_id), timedelta(hours=body.hours))
    except EntryNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return TrendingResponse.model_validate(entry)
