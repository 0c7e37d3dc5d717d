"""Repository for trending entry data access.

Also serves as the record store for the retention policy: the candidate
queries raise ``StoreQueryError`` instead of leaking SQLAlchemy errors, and
``delete``/``deactivate`` report whether a row was actually changed.
"""

from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.db.models import TrendingModel, utcnow
from cinejournal.db.repositories.base import apply_fields, coerce_uuid
from cinejournal.retention.errors import StoreQueryError

# Fields callers may never set directly
PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})


class TrendingRepository:
    """Repository for trending entries."""

    def __init__(self, session: AsyncSession):
        """Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    # CRUD

    async def create(
        self,
        data: dict[str, Any],
        default_expiration: timedelta | None = None,
    ) -> TrendingModel:
        """Create a trending entry.

        Args:
            data: Column values
            default_expiration: Offset from now used for expires_at when absent

        Returns:
            Created TrendingModel
        """
        now = utcnow()
        entry = TrendingModel(created_at=now, updated_at=now)
        apply_fields(entry, data, PROTECTED_FIELDS)

        if entry.expires_at is None and default_expiration is not None:
            entry.expires_at = now + default_expiration
        if entry.is_active is None:
            entry.is_active = True

        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def get_by_id(self, entry_id: str | UUID) -> Optional[TrendingModel]:
        """Get a trending entry by ID.

        Returns:
            TrendingModel if found, None otherwise
        """
        entry_uuid = coerce_uuid(entry_id)
        if entry_uuid is None:
            return None

        try:
            result = await self.session.execute(
                select(TrendingModel).where(TrendingModel.id == entry_uuid)
            )
        except SQLAlchemyError as e:
            raise StoreQueryError("get_by_id", str(e)) from e
        return result.scalar_one_or_none()

    async def update(self, entry_id: str | UUID, data: dict[str, Any]) -> Optional[TrendingModel]:
        """Update an entry's fields.

        Returns:
            Updated TrendingModel, or None if not found
        """
        entry = await self.get_by_id(entry_id)
        if entry is None:
            return None

        apply_fields(entry, data, PROTECTED_FIELDS)
        entry.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def delete(self, entry_id: str | UUID) -> bool:
        """Delete an entry by ID.

        Returns:
            True if a row was deleted, False if it did not exist
        """
        entry_uuid = coerce_uuid(entry_id)
        if entry_uuid is None:
            return False

        try:
            result = await self.session.execute(
                delete(TrendingModel).where(TrendingModel.id == entry_uuid)
            )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return result.rowcount > 0

    async def upsert_by_tmdb(
        self,
        data: dict[str, Any],
        defaults: dict[str, Any] | None = None,
        default_expiration: timedelta | None = None,
    ) -> tuple[TrendingModel, bool]:
        """Create or update the entry identified by (tmdb_id, type).

        An existing entry only receives the keys in ``data``; ``defaults``
        fill in the remaining columns of a new entry.

        Args:
            data: Column values sent by the caller
            defaults: Extra values for a new entry, e.g. schema defaults
            default_expiration: Applied only when a new entry is created

        Returns:
            Tuple of (entry, created)
        """
        values = {**(defaults or {}), **data}
        result = await self.session.execute(
            select(TrendingModel).where(
                TrendingModel.tmdb_id == values["tmdb_id"],
                TrendingModel.type == values["type"],
            )
        )
        existing = result.scalar_one_or_none()

        if existing is None:
            return await self.create(values, default_expiration=default_expiration), True

        apply_fields(existing, data, PROTECTED_FIELDS)
        existing.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(existing)
        return existing, False

    # Listing

    async def list_trending(
        self,
        media_type: str | None = None,
        platform: str | None = None,
        limit: int = 1000,
    ) -> list[TrendingModel]:
        """List entries ordered by rank, then score.

        Args:
            media_type: Filter by movie or tv
            platform: Filter by streaming platform
            limit: Maximum rows
        """
        query = select(TrendingModel)
        if media_type:
            query = query.where(TrendingModel.type == media_type)
        if platform:
            query = query.where(TrendingModel.platform == platform)

        query = query.order_by(
            TrendingModel.trending_rank.asc().nulls_last(),
            TrendingModel.trending_score.desc().nulls_last(),
        ).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_active(
        self,
        now: datetime,
        media_type: str | None = None,
        platform: str | None = None,
        limit: int = 20,
    ) -> list[TrendingModel]:
        """Active entries that have not reached expires_at."""
        query = select(TrendingModel).where(
            TrendingModel.is_active.is_(True),
            or_(TrendingModel.expires_at.is_(None), TrendingModel.expires_at > now),
        )
        if media_type:
            query = query.where(TrendingModel.type == media_type)
        if platform:
            query = query.where(TrendingModel.platform == platform)

        query = query.order_by(
            TrendingModel.trending_rank.asc().nulls_last(),
            TrendingModel.trending_score.desc().nulls_last(),
        ).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    # Retention store contract

    async def find_created_before(self, cutoff: datetime, limit: int) -> list[TrendingModel]:
        """Entries created strictly before ``cutoff``, oldest first."""
        query = (
            select(TrendingModel)
            .where(TrendingModel.created_at < cutoff)
            .order_by(TrendingModel.created_at.asc())
            .limit(limit)
        )
        return await self._fetch("find_created_before", query)

    async def find_created_between(
        self,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[TrendingModel]:
        """Entries with ``start <= created_at < end``, oldest first."""
        query = (
            select(TrendingModel)
            .where(and_(TrendingModel.created_at >= start, TrendingModel.created_at < end))
            .order_by(TrendingModel.created_at.asc())
            .limit(limit)
        )
        return await self._fetch("find_created_between", query)

    async def find_inactive(self, limit: int) -> list[TrendingModel]:
        """Entries marked inactive."""
        query = (
            select(TrendingModel)
            .where(TrendingModel.is_active.is_(False))
            .order_by(TrendingModel.created_at.asc())
            .limit(limit)
        )
        return await self._fetch("find_inactive", query)

    async def find_expired_active(self, now: datetime, limit: int) -> list[TrendingModel]:
        """Active entries whose expires_at is in the past."""
        query = (
            select(TrendingModel)
            .where(
                TrendingModel.is_active.is_(True),
                TrendingModel.expires_at.is_not(None),
                TrendingModel.expires_at < now,
            )
            .order_by(TrendingModel.expires_at.asc())
            .limit(limit)
        )
        return await self._fetch("find_expired_active", query)

    async def deactivate(self, entry_id: str | UUID) -> bool:
        """Mark an active entry inactive.

        Returns:
            True if the entry changed, False if missing or already inactive
        """
        entry_uuid = coerce_uuid(entry_id)
        if entry_uuid is None:
            return False

        try:
            result = await self.session.execute(
                update(TrendingModel)
                .where(TrendingModel.id == entry_uuid, TrendingModel.is_active.is_(True))
                .values(is_active=False, updated_at=utcnow())
            )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return result.rowcount > 0

    async def update_expiration(
        self,
        entry_id: str | UUID,
        expires_at: datetime,
    ) -> Optional[TrendingModel]:
        """Set expires_at on an entry.

        Returns:
            Updated TrendingModel, or None if not found
        """
        return await self.update(entry_id, {"expires_at": expires_at})

    async def _fetch(self, operation: str, query: Any) -> list[TrendingModel]:
        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            raise StoreQueryError(operation, str(e)) from e
        return list(result.scalars().all())
