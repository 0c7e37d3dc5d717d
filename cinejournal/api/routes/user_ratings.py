"""User rating API routes.

Every route is scoped to the authenticated caller.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.api.dependencies import clamp_limit, get_db
from cinejournal.api.models import (
    ErrorResponse,
    ListMeta,
    MessageResponse,
    Pagination,
    RateResponse,
    RatingListResponse,
    RatingRequest,
    RatingResponse,
)
from cinejournal.auth.base import User
from cinejournal.auth.dependencies import get_current_user
from cinejournal.db.models import MediaType, MoodRating, RatingContentType
from cinejournal.db.repositories.user_rating import UserRatingRepository
from cinejournal.observability.logging import get_logger

router = APIRouter(prefix="/user-ratings", tags=["User Ratings"])
logger = get_logger(__name__)

MAX_COLLECTION_LIMIT = 50


def _value(member: Optional[MediaType | RatingContentType | MoodRating]) -> Optional[str]:
    return member.value if member is not None else None


def _unwrap(ratings: list) -> RatingListResponse:
    return RatingListResponse(
        data=[RatingResponse.model_validate(r) for r in ratings],
        meta=ListMeta(pagination=Pagination.build(1, max(len(ratings), 1), len(ratings))),
    )


@router.post(
    "/rate",
    response_model=RateResponse,
    summary="Rate a trending or upcoming title",
)
async def rate_title(
    body: RatingRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> RateResponse:
    """Creates the rating, or replaces the caller's previous one."""
    rating, created = await UserRatingRepository(db).upsert(
        str(user.id),
        body.tmdb_id,
        body.content_type,
        body.media_type,
        body.model_dump(exclude={"tmdb_id", "content_type", "media_type"}),
    )

    logger.info(
        "user_rating_saved",
        tmdb_id=body.tmdb_id,
        content_type=body.content_type,
        rating=body.rating,
        created=created,
    )
    return RateResponse(data=RatingResponse.model_validate(rating), created=created)


@router.get(
    "/my-rating/{tmdb_id}/{content_type}/{media_type}",
    response_model=Optional[RatingResponse],
    summary="The caller's rating of one title",
)
async def get_my_rating(
    tmdb_id: int,
    content_type: RatingContentType,
    media_type: MediaType,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Optional[RatingResponse]:
    rating = await UserRatingRepository(db).get(
        str(user.id), tmdb_id, content_type.value, media_type.value
    )
    return RatingResponse.model_validate(rating) if rating is not None else None


@router.get("/notable", response_model=RatingListResponse)
async def list_notable(
    content_type: Optional[RatingContentType] = Query(None),
    media_type: Optional[MediaType] = Query(None),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> RatingListResponse:
    """Titles flagged notable or rated 8 and above."""
    ratings = await UserRatingRepository(db).list_notable(
        str(user.id), _value(content_type), _value(media_type),
        limit=clamp_limit(limit, MAX_COLLECTION_LIMIT),
    )
    return _unwrap(ratings)


@router.get("/unfavorable", response_model=RatingListResponse)
async def list_unfavorable(
    content_type: Optional[RatingContentType] = Query(None),
    media_type: Optional[MediaType] = Query(None),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> RatingListResponse:
    """Titles flagged unfavorable or rated 4 and below."""
    ratings = await UserRatingRepository(db).list_unfavorable(
        str(user.id), _value(content_type), _value(media_type),
        limit=clamp_limit(limit, MAX_COLLECTION_LIMIT),
    )
    return _unwrap(ratings)


@router.get("/watchlist", response_model=RatingListResponse)
async def list_watchlist(
    content_type: Optional[RatingContentType] = Query(None),
    media_type: Optional[MediaType] = Query(None),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> RatingListResponse:
    ratings = await UserRatingRepository(db).list_watchlist(
        str(user.id), _value(content_type), _value(media_type),
        limit=clamp_limit(limit, MAX_COLLECTION_LIMIT),
    )
    return _unwrap(ratings)


@router.get("/my-ratings", response_model=RatingListResponse)
async def list_my_ratings(
    content_type: Optional[RatingContentType] = Query(None),
    media_type: Optional[MediaType] = Query(None),
    mood_rating: Optional[MoodRating] = Query(None),
    min_rating: Optional[int] = Query(None, ge=1, le=10),
    max_rating: Optional[int] = Query(None, ge=1, le=10),
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> RatingListResponse:
    """All of the caller's ratings, most recently updated first."""
    ratings, total = await UserRatingRepository(db).list_for_user(
        str(user.id),
        content_type=_value(content_type),
        media_type=_value(media_type),
        mood_rating=_value(mood_rating),
        min_rating=min_rating,
        max_rating=max_rating,
        page=page,
        page_size=page_size,
    )
    return RatingListResponse(
        data=[RatingResponse.model_validate(r) for r in ratings],
        meta=ListMeta(pagination=Pagination.build(page, page_size, total)),
    )


@router.delete(
    "/remove/{tmdb_id}/{content_type}/{media_type}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Rating not found"}},
)
async def remove_rating(
    tmdb_id: int,
    content_type: RatingContentType,
    media_type: MediaType,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MessageResponse:
    removed = await UserRatingRepository(db).delete(
        str(user.id), tmdb_id, content_type.value, media_type.value
    )
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rating not found")

    logger.info("user_rating_removed", tmdb_id=tmdb_id, content_type=content_type.value)
    return MessageResponse(message="Rating removed successfully")
