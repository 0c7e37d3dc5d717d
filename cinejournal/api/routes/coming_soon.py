"""Upcoming release API routes."""

import calendar
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.api.dependencies import clamp_limit, get_db, parse_uuid
from cinejournal.api.models import (
    ComingSoonCreate,
    ComingSoonPeriodResponse,
    ComingSoonResponse,
    ComingSoonSort,
    ComingSoonUpdate,
    ErrorResponse,
    ReleasePeriod,
)
from cinejournal.auth.base import User
from cinejournal.auth.dependencies import require_service
from cinejournal.db.models import ReleaseStatus
from cinejournal.db.repositories.coming_soon import ComingSoonRepository
from cinejournal.observability.logging import get_logger

router = APIRouter(prefix="/coming-soons", tags=["Coming Soon"])
logger = get_logger(__name__)

TYPE_PATTERN = "^(movie|tv)$"


def period_range(period: ReleasePeriod, today: date) -> tuple[date, date]:
    """Inclusive date bounds of a named release period."""
    if period == ReleasePeriod.THIS_WEEK:
        return today, today + timedelta(days=7)

    if period == ReleasePeriod.THIS_MONTH:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)

    if period == ReleasePeriod.NEXT_MONTH:
        year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)

    if period == ReleasePeriod.THIS_YEAR:
        return date(today.year, 1, 1), date(today.year, 12, 31)

    return date(today.year + 1, 1, 1), date(today.year + 1, 12, 31)


@router.get(
    "",
    response_model=list[ComingSoonResponse],
    summary="List upcoming releases",
)
async def list_coming_soons(
    media_type: Optional[str] = Query(None, alias="type", pattern=TYPE_PATTERN),
    release_status: Optional[ReleaseStatus] = Query(None, alias="status"),
    sort_by: ComingSoonSort = Query(ComingSoonSort.RELEASE_DATE),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
) -> list[ComingSoonResponse]:
    repo = ComingSoonRepository(db)
    items = await repo.list_upcoming(
        today=date.today(),
        media_type=media_type,
        status=release_status.value if release_status else None,
        sort_by=sort_by.value,
        limit=clamp_limit(limit, 100),
    )

    logger.info("coming_soons_listed", count=len(items), sort_by=sort_by.value)
    return [ComingSoonResponse.model_validate(item) for item in items]


@router.get(
    "/by-period/{period}",
    response_model=ComingSoonPeriodResponse,
    responses={400: {"model": ErrorResponse, "description": "Unknown period"}},
    summary="List releases within a named period",
)
async def list_coming_soons_by_period(
    period: str,
    media_type: Optional[str] = Query(None, alias="type", pattern=TYPE_PATTERN),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
) -> ComingSoonPeriodResponse:
    try:
        release_period = ReleasePeriod(period)
    except ValueError:
        valid = ", ".join(p.value for p in ReleasePeriod)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid period '{period}'. Expected one of: {valid}",
        )

    start, end = period_range(release_period, date.today())
    items = await ComingSoonRepository(db).find_releasing_between(
        start, end, media_type=media_type, limit=clamp_limit(limit, 100)
    )
    return ComingSoonPeriodResponse(
        period=release_period,
        start_date=start,
        end_date=end,
        items=[ComingSoonResponse.model_validate(item) for item in items],
    )


@router.get(
    "/most-anticipated",
    response_model=list[ComingSoonResponse],
    summary="Most anticipated upcoming releases",
)
async def list_most_anticipated(
    media_type: Optional[str] = Query(None, alias="type", pattern=TYPE_PATTERN),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
) -> list[ComingSoonResponse]:
    items = await ComingSoonRepository(db).most_anticipated(
        date.today(), media_type=media_type, limit=clamp_limit(limit, 50)
    )
    return [ComingSoonResponse.model_validate(item) for item in items]


@router.get(
    "/by-genre/{genre}",
    response_model=list[ComingSoonResponse],
    summary="Upcoming releases in a genre",
)
async def list_coming_soons_by_genre(
    genre: str,
    media_type: Optional[str] = Query(None, alias="type", pattern=TYPE_PATTERN),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
) -> list[ComingSoonResponse]:
    items = await ComingSoonRepository(db).find_by_genre(
        genre, date.today(), media_type=media_type, limit=clamp_limit(limit, 50)
    )
    logger.info("coming_soons_listed_by_genre", genre=genre, count=len(items))
    return [ComingSoonResponse.model_validate(item) for item in items]


@router.post(
    "",
    response_model=ComingSoonResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Duplicate TMDB id and type"}},
    summary="Create an upcoming release",
)
async def create_coming_soon(
    body: ComingSoonCreate,
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_service),
) -> ComingSoonResponse:
    try:
        item = await ComingSoonRepository(db).create(body.model_dump(exclude_none=True))
    except IntegrityError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Upcoming release for TMDB id {body.tmdb_id} ({body.type}) already exists",
        ) from e

    logger.info("coming_soon_created", item_id=str(item.id), tmdb_id=item.tmdb_id)
    return ComingSoonResponse.model_validate(item)


# ============================================================================
# Single Entry Endpoints
# ============================================================================

@router.get(
    "/{item_id}",
    response_model=ComingSoonResponse,
    responses={404: {"model": ErrorResponse, "description": "Release not found"}},
)
async def get_coming_soon(
    item_id: str,
    db: AsyncSession = Depends(get_db),
) -> ComingSoonResponse:
    item = await ComingSoonRepository(db).get_by_id(parse_uuid(item_id))
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Upcoming release '{item_id}' not found",
        )
    return ComingSoonResponse.model_validate(item)


@router.put(
    "/{item_id}",
    response_model=ComingSoonResponse,
    responses={404: {"model": ErrorResponse, "description": "Release not found"}},
)
async def update_coming_soon(
    item_id: str,
    body: ComingSoonUpdate,
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_service),
) -> ComingSoonResponse:
    item = await ComingSoonRepository(db).update(
        parse_uuid(item_id),
        body.model_dump(exclude_unset=True),
    )
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Upcoming release '{item_id}' not found",
        )
    return ComingSoonResponse.model_validate(item)


@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Release not found"}},
)
async def delete_coming_soon(
    item_id: str,
    db: AsyncSession = Depends(get_db),
    caller: User = Depends(require_service),
) -> None:
    deleted = await ComingSoonRepository(db).delete(parse_uuid(item_id))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Upcoming release '{item_id}' not found",
        )
    logger.info("coming_soon_deleted", item_id=item_id)
