"""Pydantic models for API requests and responses."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from cinejournal.db.models import MediaType, MoodRating, RatingContentType, ReleaseStatus

# ============================================================================
# Enums
# ============================================================================

class HealthStatus(str, Enum):
    """Overall service health."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComingSoonSort(str, Enum):
    """Sort orders for upcoming releases."""
    RELEASE_DATE = "release_date"
    ANTICIPATION_SCORE = "anticipation_score"
    POPULARITY = "popularity"
    TMDB_RATING = "tmdb_rating"


class ReleasePeriod(str, Enum):
    """Named release windows."""
    THIS_WEEK = "this-week"
    THIS_MONTH = "this-month"
    NEXT_MONTH = "next-month"
    THIS_YEAR = "this-year"
    NEXT_YEAR = "next-year"


# ============================================================================
# Shared
# ============================================================================

class Pagination(BaseModel):
    """Pagination block of list responses."""
    page: int = 1
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "Pagination":
        total_pages = (total + page_size - 1) // page_size if page_size else 0
        return cls(page=page, page_size=page_size, total=total, total_pages=total_pages)


class ListMeta(BaseModel):
    pagination: Pagination


class ErrorResponse(BaseModel):
    """Error body."""
    detail: str


# ============================================================================
# Trending
# ============================================================================

class TrendingBase(BaseModel):
    """Writable trending fields."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    title: str = Field(..., min_length=1, max_length=255)
    tmdb_id: int = Field(..., gt=0)
    type: MediaType = MediaType.MOVIE
    platform: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[date] = None
    genres: list[str] = Field(default_factory=list)
    tmdb_rating: Optional[float] = Field(default=None, ge=0, le=10)
    tmdb_vote_count: Optional[int] = Field(default=None, ge=0)
    popularity: Optional[float] = None
    runtime: Optional[int] = Field(default=None, ge=0)
    certification: Optional[str] = None
    trailer_url: Optional[str] = None
    trending_rank: Optional[int] = Field(default=None, ge=1)
    trending_score: Optional[float] = None
    trending_since: Optional[datetime] = None
    is_ephemeral: bool = True
    is_active: bool = True
    expires_at: Optional[datetime] = None


class TrendingCreate(TrendingBase):
    """Create or bulk upsert payload."""


class TrendingUpdate(BaseModel):
    """Partial update payload. Only provided fields are written."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    platform: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[date] = None
    genres: Optional[list[str]] = None
    tmdb_rating: Optional[float] = Field(default=None, ge=0, le=10)
    tmdb_vote_count: Optional[int] = Field(default=None, ge=0)
    popularity: Optional[float] = None
    runtime: Optional[int] = Field(default=None, ge=0)
    certification: Optional[str] = None
    trailer_url: Optional[str] = None
    trending_rank: Optional[int] = Field(default=None, ge=1)
    trending_score: Optional[float] = None
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None


class TrendingResponse(TrendingBase):
    """Trending entry as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None


class TrendingListResponse(BaseModel):
    data: list[TrendingResponse]
    meta: ListMeta


class BulkUpdateRequest(BaseModel):
    items: list[TrendingCreate]


class BulkItemError(BaseModel):
    tmdb_id: int
    error: str


class BulkUpdateResponse(BaseModel):
    success: bool
    processed: int
    created: int = 0
    updated: int = 0
    error_count: int
    results: list[TrendingResponse]
    errors: list[BulkItemError]


class ExtendRetentionRequest(BaseModel):
    """Hours to add to an entry's expires_at."""
    hours: float = Field(default=24, gt=0, le=24 * 365)


class CleanupResponse(BaseModel):
    """Result of the soft cleanup (deactivation) trigger."""
    success: bool
    cleaned: int
    failed: int = 0
    message: str


class SweepFailureItem(BaseModel):
    entry_id: str
    error: str


class SweepSummary(BaseModel):
    sweep: str
    total_found: int
    deleted_count: int
    already_removed: int
    failed_count: int
    failures: list[SweepFailureItem] = Field(default_factory=list)
    cutoff: Optional[datetime] = None
    duration_seconds: float = 0.0


class SweepResponse(BaseModel):
    """Result of the hard retention sweep trigger."""
    success: bool
    cleaned: int
    failed: int
    message: str
    expired: SweepSummary
    inactive: SweepSummary


# ============================================================================
# Coming Soon
# ============================================================================

class ComingSoonCreate(BaseModel):
    """Upcoming release payload."""
    model_config = ConfigDict(use_enum_values=True)

    title: str = Field(..., min_length=1, max_length=255)
    tmdb_id: int = Field(..., gt=0)
    type: MediaType = MediaType.MOVIE
    platform: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: date
    genres: list[str] = Field(default_factory=list)
    status: ReleaseStatus = ReleaseStatus.ANNOUNCED
    tmdb_rating: Optional[float] = Field(default=None, ge=0, le=10)
    tmdb_vote_count: Optional[int] = Field(default=None, ge=0)
    popularity: Optional[float] = None
    anticipation_score: Optional[float] = None
    anticipation_rank: Optional[int] = Field(default=None, ge=1)
    trailer_url: Optional[str] = None
    language: Optional[str] = None
    runtime: Optional[int] = Field(default=None, ge=0)
    director: Optional[str] = None
    cast: list[str] = Field(default_factory=list)
    production_companies: list[str] = Field(default_factory=list)
    budget: Optional[float] = Field(default=None, ge=0)
    is_active: bool = True
    expires_at: Optional[datetime] = None


class ComingSoonUpdate(BaseModel):
    """Partial update of an upcoming release; only sent fields are written."""
    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    platform: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[date] = None
    genres: Optional[list[str]] = None
    status: Optional[ReleaseStatus] = None
    tmdb_rating: Optional[float] = Field(default=None, ge=0, le=10)
    tmdb_vote_count: Optional[int] = Field(default=None, ge=0)
    popularity: Optional[float] = None
    anticipation_score: Optional[float] = None
    anticipation_rank: Optional[int] = Field(default=None, ge=1)
    trailer_url: Optional[str] = None
    language: Optional[str] = None
    runtime: Optional[int] = Field(default=None, ge=0)
    director: Optional[str] = None
    cast: Optional[list[str]] = None
    production_companies: Optional[list[str]] = None
    budget: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None


class ComingSoonResponse(ComingSoonCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime


class ComingSoonPeriodResponse(BaseModel):
    period: ReleasePeriod
    start_date: date
    end_date: date
    items: list[ComingSoonResponse]


# ============================================================================
# Journal Entries
# ============================================================================

class TMDBSearchResult(BaseModel):
    """Normalized TMDB search hit."""
    id: int
    title: Optional[str] = None
    overview: str = ""
    poster_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    release_date: Optional[str] = None
    genres: list[str] = Field(default_factory=list)
    rating: float = 0
    vote_count: int = 0
    type: MediaType
    original_title: Optional[str] = None
    original_language: str = "en"


class TMDBSearchResponse(BaseModel):
    data: list[TMDBSearchResult]
    meta: ListMeta


class JournalEntryFields(BaseModel):
    """User-written part of a journal entry."""
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=10)
    watched_on: Optional[date] = None
    tags: list[str] = Field(default_factory=list)


class JournalEntryUpdate(BaseModel):
    """Body of PUT /journal-entries/{id}. Only sent fields are written."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=10)
    watched_on: Optional[date] = None
    tags: Optional[list[str]] = None


class JournalEntryTMDBData(JournalEntryFields):
    model_config = ConfigDict(use_enum_values=True)

    tmdb_id: int = Field(..., gt=0)
    type: MediaType


class JournalEntryTMDBCreate(BaseModel):
    """Body of POST /journal-entries/tmdb/create."""
    data: JournalEntryTMDBData


class MediaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tmdb_id: int
    type: str
    title: str
    overview: Optional[str] = None
    release_date: Optional[date] = None
    poster_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    genres: Optional[str] = None
    rating: Optional[float] = None
    runtime: Optional[int] = None
    status: Optional[str] = None


class JournalEntryResponse(JournalEntryFields):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    media_id: UUID
    media: Optional[MediaResponse] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class JournalEntryEnvelope(BaseModel):
    data: JournalEntryResponse


class JournalEntryListResponse(BaseModel):
    data: list[JournalEntryResponse]
    meta: ListMeta


# ============================================================================
# User Ratings
# ============================================================================

class RatingRequest(BaseModel):
    """Body of POST /user-ratings/rate."""
    model_config = ConfigDict(use_enum_values=True)

    tmdb_id: int = Field(..., gt=0)
    content_type: RatingContentType
    media_type: MediaType
    rating: int = Field(..., ge=1, le=10)
    comment: Optional[str] = None
    is_notable: bool = False
    is_unfavorable: bool = False
    is_watchlisted: bool = False
    mood_rating: Optional[MoodRating] = None
    anticipation_level: Optional[int] = Field(default=None, ge=1, le=10)
    tags: list[str] = Field(default_factory=list)


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    tmdb_id: int
    content_type: RatingContentType
    media_type: MediaType
    rating: int
    comment: Optional[str] = None
    is_notable: bool = False
    is_unfavorable: bool = False
    is_watchlisted: bool = False
    mood_rating: Optional[MoodRating] = None
    anticipation_level: Optional[int] = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None


class RateResponse(BaseModel):
    data: RatingResponse
    created: bool


class RatingListResponse(BaseModel):
    data: list[RatingResponse]
    meta: ListMeta


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# Health
# ============================================================================

class ComponentHealth(BaseModel):
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: HealthStatus
    version: str
    environment: str
    components: dict[str, ComponentHealth]
