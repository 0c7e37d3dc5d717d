"""Data access repositories."""

from cinejournal.db.repositories.coming_soon import ComingSoonRepository
from cinejournal.db.repositories.journal import JournalRepository
from cinejournal.db.repositories.trending import TrendingRepository
from cinejournal.db.repositories.user_rating import UserRatingRepository

__all__ = [
    "ComingSoonRepository",
    "JournalRepository",
    "TrendingRepository",
    "UserRatingRepository",
]
