"""Repository for user ratings of trending and upcoming titles."""

from typing import Any, Optional

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.db.models import UserRatingModel, utcnow
from cinejournal.db.repositories.base import apply_fields

NOTABLE_MIN_RATING = 8
UNFAVORABLE_MAX_RATING = 4

PROTECTED_FIELDS = frozenset({
    "id", "user_id", "tmdb_id", "content_type", "media_type", "created_at", "updated_at",
})


class UserRatingRepository:
    """Repository for user rating operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(
        self,
        user_id: str,
        tmdb_id: int,
        content_type: str,
        media_type: str,
    ) -> Optional[UserRatingModel]:
        """Get a user's rating of one title, or None."""
        result = await self.session.execute(
            select(UserRatingModel).where(
                UserRatingModel.user_id == user_id,
                UserRatingModel.tmdb_id == tmdb_id,
                UserRatingModel.content_type == content_type,
                UserRatingModel.media_type == media_type,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        user_id: str,
        tmdb_id: int,
        content_type: str,
        media_type: str,
        data: dict[str, Any],
    ) -> tuple[UserRatingModel, bool]:
        """Create or update a user's rating of one title.

        Returns:
            Tuple of (rating, created)
        """
        rating = await self.get(user_id, tmdb_id, content_type, media_type)
        now = utcnow()
        created = rating is None

        if created:
            rating = UserRatingModel(
                user_id=user_id,
                tmdb_id=tmdb_id,
                content_type=content_type,
                media_type=media_type,
                created_at=now,
            )
            self.session.add(rating)

        apply_fields(rating, data, PROTECTED_FIELDS)
        rating.updated_at = now

        await self.session.commit()
        await self.session.refresh(rating)
        return rating, created

    async def delete(
        self,
        user_id: str,
        tmdb_id: int,
        content_type: str,
        media_type: str,
    ) -> bool:
        """Delete a rating. Returns False if the user never rated the title."""
        rating = await self.get(user_id, tmdb_id, content_type, media_type)
        if rating is None:
            return False

        await self.session.delete(rating)
        await self.session.commit()
        return True

    def _scoped(self, user_id: str, content_type: str | None, media_type: str | None) -> Any:
        query = select(UserRatingModel).where(UserRatingModel.user_id == user_id)
        if content_type:
            query = query.where(UserRatingModel.content_type == content_type)
        if media_type:
            query = query.where(UserRatingModel.media_type == media_type)
        return query

    async def list_notable(
        self,
        user_id: str,
        content_type: str | None = None,
        media_type: str | None = None,
        limit: int = 20,
    ) -> list[UserRatingModel]:
        """Ratings flagged notable or scored 8 and above."""
        query = self._scoped(user_id, content_type, media_type).where(
            or_(
                UserRatingModel.is_notable.is_(True),
                UserRatingModel.rating >= NOTABLE_MIN_RATING,
            )
        )
        query = query.order_by(desc(UserRatingModel.rating), desc(UserRatingModel.created_at))
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def list_unfavorable(
        self,
        user_id: str,
        content_type: str | None = None,
        media_type: str | None = None,
        limit: int = 20,
    ) -> list[UserRatingModel]:
        """Ratings flagged unfavorable or scored 4 and below."""
        query = self._scoped(user_id, content_type, media_type).where(
            or_(
                UserRatingModel.is_unfavorable.is_(True),
                UserRatingModel.rating <= UNFAVORABLE_MAX_RATING,
            )
        )
        query = query.order_by(UserRatingModel.rating.asc(), desc(UserRatingModel.created_at))
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def list_watchlist(
        self,
        user_id: str,
        content_type: str | None = None,
        media_type: str | None = None,
        limit: int = 20,
    ) -> list[UserRatingModel]:
        """Ratings the user put on their watchlist, most recent first."""
        query = self._scoped(user_id, content_type, media_type).where(
            UserRatingModel.is_watchlisted.is_(True)
        )
        query = query.order_by(desc(UserRatingModel.updated_at))
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def list_for_user(
        self,
        user_id: str,
        content_type: str | None = None,
        media_type: str | None = None,
        mood_rating: str | None = None,
        min_rating: int | None = None,
        max_rating: int | None = None,
        page: int = 1,
        page_size: int = 25,
    ) -> tuple[list[UserRatingModel], int]:
        """All of a user's ratings with optional filters.

        Returns:
            Tuple of (ratings list, total count)
        """
        conditions = [UserRatingModel.user_id == user_id]
        if content_type:
            conditions.append(UserRatingModel.content_type == content_type)
        if media_type:
            conditions.append(UserRatingModel.media_type == media_type)
        if mood_rating:
            conditions.append(UserRatingModel.mood_rating == mood_rating)
        if min_rating is not None:
            conditions.append(UserRatingModel.rating >= min_rating)
        if max_rating is not None:
            conditions.append(UserRatingModel.rating <= max_rating)

        count_result = await self.session.execute(
            select(func.count(UserRatingModel.id)).where(*conditions)
        )
        total = count_result.scalar() or 0

        query = (
            select(UserRatingModel)
            .where(*conditions)
            .order_by(desc(UserRatingModel.updated_at))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total
