"""FastAPI dependencies for the API layer.

This module provides dependency injection functions for FastAPI routes,
including database sessions, settings, the retention manager and the
TMDB client.
"""

from typing import AsyncGenerator
from uuid import UUID

from fastapi import Depends, HTTPException, status

from cinejournal.config import Settings, get_settings
from cinejournal.db.models import AsyncSession, get_session
from cinejournal.db.repositories.trending import TrendingRepository
from cinejournal.retention.manager import TrendingRetentionManager
from cinejournal.services.tmdb import TMDBClient, TMDBError, get_tmdb_client


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Yields:
        AsyncSession for database operations
    """
    async for session in get_session():
        yield session


async def get_config() -> Settings:
    """Get application settings dependency."""
    return get_settings()


async def get_retention_manager(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_config),
) -> TrendingRetentionManager:
    """Retention manager bound to the request's session."""
    return TrendingRetentionManager.from_settings(TrendingRepository(db), config.retention)


async def get_tmdb() -> TMDBClient:
    """Get the shared TMDB client.

    Raises:
        HTTPException: 503 if TMDB is not configured
    """
    try:
        return get_tmdb_client()
    except TMDBError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e


def parse_uuid(uuid_str: str) -> UUID:
    """Parse and validate UUID string.

    Raises:
        HTTPException: 400 if UUID is invalid
    """
    try:
        return UUID(uuid_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid UUID format: {uuid_str}",
        )


def clamp_limit(limit: int, maximum: int) -> int:
    """Cap a client-supplied limit."""
    return max(1, min(limit, maximum))
