"""Journal entry API routes, including TMDB search and lookup."""

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.api.dependencies import get_db, get_tmdb, parse_uuid
from cinejournal.api.models import (
    ErrorResponse,
    JournalEntryEnvelope,
    JournalEntryListResponse,
    JournalEntryResponse,
    JournalEntryTMDBCreate,
    JournalEntryUpdate,
    ListMeta,
    Pagination,
    TMDBSearchResponse,
    TMDBSearchResult,
)
from cinejournal.auth.base import User
from cinejournal.auth.dependencies import get_current_user
from cinejournal.db.models import LibraryMediaType
from cinejournal.db.repositories.journal import JournalRepository
from cinejournal.observability.logging import get_logger
from cinejournal.services.tmdb import TMDBClient, TMDBError

router = APIRouter(prefix="/journal-entries", tags=["Journal Entries"])
logger = get_logger(__name__)

# TMDB media type -> type stored on media rows
LIBRARY_TYPES = {
    "movie": LibraryMediaType.MOVIES.value,
    "tv": LibraryMediaType.TV_SERIES.value,
}


def _tmdb_failed(error: TMDBError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def media_from_details(details: dict[str, Any], media_type: str) -> dict[str, Any]:
    """Build media row values from a TMDB details payload."""
    is_movie = media_type == "movie"
    runtime = details.get("runtime")
    if not is_movie:
        run_times = details.get("episode_run_time") or []
        runtime = run_times[0] if run_times else None

    return {
        "tmdb_id": details["id"],
        "type": LIBRARY_TYPES[media_type],
        "title": (details.get("title") if is_movie else details.get("name")) or "Untitled",
        "overview": details.get("overview"),
        "release_date": _parse_date(
            details.get("release_date") if is_movie else details.get("first_air_date")
        ),
        "poster_url": details.get("poster_url"),
        "backdrop_url": details.get("backdrop_url"),
        "genres": ", ".join(g["name"] for g in details.get("genres") or []) or None,
        "rating": details.get("vote_average"),
        "runtime": runtime,
        "status": details.get("status"),
    }


# ============================================================================
# TMDB
# ============================================================================

@router.get(
    "/tmdb/search",
    response_model=TMDBSearchResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing query"},
        502: {"model": ErrorResponse, "description": "TMDB request failed"},
    },
    summary="Search TMDB for movies and TV shows",
)
async def search_tmdb(
    query: Optional[str] = Query(None),
    media_type: Optional[str] = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    tmdb: TMDBClient = Depends(get_tmdb),
) -> TMDBSearchResponse:
    if not query or not query.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query parameter is required",
        )

    try:
        if media_type == "movie":
            found = await tmdb.search_movies(query, page)
        elif media_type == "tv":
            found = await tmdb.search_tv(query, page)
        else:
            found = await tmdb.search_multi(query, page)
    except TMDBError as e:
        raise _tmdb_failed(e) from e

    results = found["results"]
    return TMDBSearchResponse(
        data=[TMDBSearchResult.model_validate(item) for item in results],
        meta=ListMeta(
            pagination=Pagination(
                page=page,
                page_size=len(results),
                total=found["total_results"],
                total_pages=found["total_pages"],
            )
        ),
    )


@router.get(
    "/tmdb/details/{media_type}/{tmdb_id}",
    responses={
        400: {"model": ErrorResponse, "description": "Unsupported media type"},
        502: {"model": ErrorResponse, "description": "TMDB request failed"},
    },
    summary="Fetch TMDB details for a title",
)
async def get_tmdb_details(
    media_type: str,
    tmdb_id: int,
    tmdb: TMDBClient = Depends(get_tmdb),
) -> dict[str, Any]:
    if media_type not in LIBRARY_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Type must be either 'movie' or 'tv'",
        )
    try:
        details = await tmdb.get_details(media_type, tmdb_id)
    except TMDBError as e:
        raise _tmdb_failed(e) from e
    return {"data": details}


@router.post(
    "/tmdb/create",
    response_model=JournalEntryEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={502: {"model": ErrorResponse, "description": "TMDB request failed"}},
    summary="Create a journal entry from a TMDB title",
)
async def create_entry_from_tmdb(
    body: JournalEntryTMDBCreate,
    db: AsyncSession = Depends(get_db),
    tmdb: TMDBClient = Depends(get_tmdb),
    user: User = Depends(get_current_user),
) -> JournalEntryEnvelope:
    """Looks the title up on TMDB, caches it as a media row and writes the entry."""
    payload = body.data
    repo = JournalRepository(db)

    media = await repo.get_media_by_tmdb(payload.tmdb_id, LIBRARY_TYPES[payload.type])
    if media is None:
        try:
            details = await tmdb.get_details(payload.type, payload.tmdb_id)
        except TMDBError as e:
            raise _tmdb_failed(e) from e
        media, _ = await repo.get_or_create_media(media_from_details(details, payload.type))
        logger.info("media_cached", tmdb_id=payload.tmdb_id, type=media.type)

    entry = await repo.create_entry(
        str(user.id),
        media,
        payload.model_dump(exclude={"tmdb_id", "type"}, exclude_none=True),
    )

    logger.info("journal_entry_created", entry_id=str(entry.id), tmdb_id=payload.tmdb_id)
    return JournalEntryEnvelope(data=JournalEntryResponse.model_validate(entry))


# ============================================================================
# Entries
# ============================================================================

@router.get(
    "",
    response_model=JournalEntryListResponse,
    summary="List the caller's journal entries",
)
async def list_entries(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> JournalEntryListResponse:
    entries, total = await JournalRepository(db).list_entries(str(user.id), page=page, limit=limit)
    return JournalEntryListResponse(
        data=[JournalEntryResponse.model_validate(entry) for entry in entries],
        meta=ListMeta(pagination=Pagination.build(page, limit, total)),
    )


@router.get(
    "/{entry_id}",
    response_model=JournalEntryEnvelope,
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
)
async def get_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> JournalEntryEnvelope:
    entry = await JournalRepository(db).get_entry(parse_uuid(entry_id), str(user.id))
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Journal entry '{entry_id}' not found",
        )
    return JournalEntryEnvelope(data=JournalEntryResponse.model_validate(entry))


@router.put(
    "/{entry_id}",
    response_model=JournalEntryEnvelope,
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
)
async def update_entry(
    entry_id: str,
    body: JournalEntryUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> JournalEntryEnvelope:
    """Only the caller's own entries can be updated; others are reported as missing."""
    entry = await JournalRepository(db).update_entry(
        parse_uuid(entry_id),
        str(user.id),
        body.model_dump(exclude_unset=True),
    )
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Journal entry '{entry_id}' not found",
        )

    logger.info("journal_entry_updated", entry_id=entry_id)
    return JournalEntryEnvelope(data=JournalEntryResponse.model_validate(entry))


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
)
async def delete_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> None:
    deleted = await JournalRepository(db).delete_entry(parse_uuid(entry_id), str(user.id))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Journal entry '{entry_id}' not found",
        )
    logger.info("journal_entry_deleted", entry_id=entry_id)
