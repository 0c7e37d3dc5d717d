"""Repository for journal entries and the media rows they reference."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.db.models import JournalEntryModel, MediaModel, utcnow
from cinejournal.db.repositories.base import apply_fields, coerce_uuid

ENTRY_PROTECTED_FIELDS = frozenset({"id", "user_id", "media_id", "created_at", "updated_at"})
# columns an explicit null cannot clear
ENTRY_REQUIRED_FIELDS = frozenset({"title", "tags"})


class JournalRepository:
    """Repository for journal operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    # Media methods

    async def get_media_by_tmdb(self, tmdb_id: int, media_type: str) -> Optional[MediaModel]:
        """Find a cached media row by TMDB id and library type."""
        result = await self.session.execute(
            select(MediaModel).where(
                MediaModel.tmdb_id == tmdb_id,
                MediaModel.type == media_type,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_media(self, data: dict[str, Any]) -> tuple[MediaModel, bool]:
        """Return the media row for (tmdb_id, type), creating it if needed.

        Args:
            data: Media column values; must include tmdb_id and type

        Returns:
            Tuple of (media, created)
        """
        existing = await self.get_media_by_tmdb(data["tmdb_id"], data["type"])
        if existing is not None:
            return existing, False

        media = MediaModel(created_at=utcnow())
        apply_fields(media, data, {"id", "created_at"})
        self.session.add(media)
        await self.session.flush()
        return media, True

    # Entry methods

    async def create_entry(
        self,
        user_id: str,
        media: MediaModel,
        data: dict[str, Any],
    ) -> JournalEntryModel:
        """Create a journal entry for ``user_id`` about ``media``.

        Args:
            user_id: Owner of the entry
            media: Media row the entry refers to
            data: Entry fields (title, content, rating, watched_on, tags)

        Returns:
            Created JournalEntryModel
        """
        now = utcnow()
        entry = JournalEntryModel(user_id=user_id, media_id=media.id, created_at=now, updated_at=now)
        apply_fields(entry, data, ENTRY_PROTECTED_FIELDS)
        if not entry.title:
            entry.title = media.title
        if entry.tags is None:
            entry.tags = []

        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def get_entry(
        self,
        entry_id: str | UUID,
        user_id: str | None = None,
    ) -> Optional[JournalEntryModel]:
        """Get an entry by ID, optionally scoped to its owner."""
        entry_uuid = coerce_uuid(entry_id)
        if entry_uuid is None:
            return None

        query = select(JournalEntryModel).where(JournalEntryModel.id == entry_uuid)
        if user_id:
            query = query.where(JournalEntryModel.user_id == user_id)

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_entries(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[JournalEntryModel], int]:
        """List a user's entries, newest first.

        Returns:
            Tuple of (entries list, total count)
        """
        query = select(JournalEntryModel).where(JournalEntryModel.user_id == user_id)
        count_query = select(func.count(JournalEntryModel.id)).where(
            JournalEntryModel.user_id == user_id
        )

        total_result = await self.session.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(desc(JournalEntryModel.created_at))
        query = query.offset((page - 1) * limit).limit(limit)
        result = await self.session.execute(query)

        return list(result.scalars().all()), total

    async def update_entry(
        self,
        entry_id: str | UUID,
        user_id: str,
        data: dict[str, Any],
    ) -> Optional[JournalEntryModel]:
        """Update a user's entry.

        Returns:
            Updated JournalEntryModel, or None if the user has no such entry
        """
        entry = await self.get_entry(entry_id, user_id)
        if entry is None:
            return None

        data = {
            key: value for key, value in data.items()
            if value is not None or key not in ENTRY_REQUIRED_FIELDS
        }
        apply_fields(entry, data, ENTRY_PROTECTED_FIELDS)
        entry.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def delete_entry(self, entry_id: str | UUID, user_id: str) -> bool:
        """Delete a user's entry.

        Returns:
            True if deleted, False if not found
        """
        entry = await self.get_entry(entry_id, user_id)
        if entry is None:
            return False

        await self.session.delete(entry)
        await self.session.commit()
        return True
