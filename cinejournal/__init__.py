"""CineJournal content backend.

Trending, coming soon, journal entry and user rating records for movies and
TV shows, enriched from TMDB, with a time-windowed retention policy for
ephemeral trending entries.
"""

__version__ = "1.0.0"
