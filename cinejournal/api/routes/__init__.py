"""API route handlers.

This package contains all API route handlers for the CineJournal backend.
"""

from cinejournal.api.routes.coming_soon import router as coming_soon_router
from cinejournal.api.routes.health import router as health_router
from cinejournal.api.routes.journal_entries import router as journal_entries_router
from cinejournal.api.routes.trending import router as trending_router
from cinejournal.api.routes.user_ratings import router as user_ratings_router

__all__ = [
    "coming_soon_router",
    "health_router",
    "journal_entries_router",
    "trending_router",
    "user_ratings_router",
]
