"""Repository for upcoming release data access."""

from datetime import date
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.db.models import ComingSoonModel, utcnow
from cinejournal.db.repositories.base import apply_fields, coerce_uuid

PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})

# sort_by value -> primary ordering column (descending), ties broken by release date
SORT_COLUMNS = {
    "anticipation_score": ComingSoonModel.anticipation_score,
    "popularity": ComingSoonModel.popularity,
    "tmdb_rating": ComingSoonModel.tmdb_rating,
}


class ComingSoonRepository:
    """Repository for coming soon entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, data: dict[str, Any]) -> ComingSoonModel:
        """Create a coming soon entry."""
        now = utcnow()
        item = ComingSoonModel(created_at=now, updated_at=now, is_active=True)
        apply_fields(item, data, PROTECTED_FIELDS)

        self.session.add(item)
        await self.session.commit()
        await self.session.refresh(item)
        return item

    async def get_by_id(self, item_id: str | UUID) -> Optional[ComingSoonModel]:
        """Get an entry by ID, or None."""
        item_uuid = coerce_uuid(item_id)
        if item_uuid is None:
            return None

        result = await self.session.execute(
            select(ComingSoonModel).where(ComingSoonModel.id == item_uuid)
        )
        return result.scalar_one_or_none()

    async def update(self, item_id: str | UUID, data: dict[str, Any]) -> Optional[ComingSoonModel]:
        """Update an entry's fields.

        Returns:
            Updated ComingSoonModel, or None if not found
        """
        item = await self.get_by_id(item_id)
        if item is None:
            return None

        apply_fields(item, data, PROTECTED_FIELDS)
        item.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(item)
        return item

    async def delete(self, item_id: str | UUID) -> bool:
        """Delete an entry.

        Returns:
            True if deleted, False if not found
        """
        item = await self.get_by_id(item_id)
        if item is None:
            return False

        await self.session.delete(item)
        await self.session.commit()
        return True

    def _upcoming(self, today: date, media_type: str | None) -> Any:
        query = select(ComingSoonModel).where(
            ComingSoonModel.is_active.is_(True),
            ComingSoonModel.release_date >= today,
        )
        if media_type:
            query = query.where(ComingSoonModel.type == media_type)
        return query

    async def list_upcoming(
        self,
        today: date,
        media_type: str | None = None,
        status: str | None = None,
        sort_by: str = "release_date",
        limit: int = 20,
    ) -> list[ComingSoonModel]:
        """Active entries releasing today or later.

        Args:
            today: Earliest release date to include
            media_type: Filter by movie or tv
            status: Filter by production status
            sort_by: release_date, anticipation_score, popularity or tmdb_rating
            limit: Maximum rows
        """
        query = self._upcoming(today, media_type)
        if status:
            query = query.where(ComingSoonModel.status == status)

        column = SORT_COLUMNS.get(sort_by)
        if column is not None:
            query = query.order_by(column.desc().nulls_last(), ComingSoonModel.release_date.asc())
        else:
            query = query.order_by(ComingSoonModel.release_date.asc())

        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def find_releasing_between(
        self,
        start: date,
        end: date,
        media_type: str | None = None,
        limit: int = 20,
    ) -> list[ComingSoonModel]:
        """Active entries releasing within [start, end]."""
        query = select(ComingSoonModel).where(
            ComingSoonModel.is_active.is_(True),
            ComingSoonModel.release_date >= start,
            ComingSoonModel.release_date <= end,
        )
        if media_type:
            query = query.where(ComingSoonModel.type == media_type)

        query = query.order_by(
            ComingSoonModel.release_date.asc(),
            ComingSoonModel.anticipation_score.desc().nulls_last(),
        ).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def most_anticipated(
        self,
        today: date,
        media_type: str | None = None,
        limit: int = 10,
    ) -> list[ComingSoonModel]:
        """Upcoming entries ordered by anticipation score, then popularity."""
        query = self._upcoming(today, media_type).order_by(
            ComingSoonModel.anticipation_score.desc().nulls_last(),
            ComingSoonModel.popularity.desc().nulls_last(),
        )
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def find_by_genre(
        self,
        genre: str,
        today: date,
        media_type: str | None = None,
        limit: int = 20,
    ) -> list[ComingSoonModel]:
        """Upcoming entries tagged with ``genre``."""
        query = (
            self._upcoming(today, media_type)
            .where(ComingSoonModel.genres.contains([genre]))
            .order_by(
                ComingSoonModel.release_date.asc(),
                ComingSoonModel.anticipation_score.desc().nulls_last(),
            )
        )
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())
