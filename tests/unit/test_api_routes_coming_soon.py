"""Unit tests for the upcoming release routes."""

from datetime import date
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.api.models import ComingSoonCreate, ComingSoonSort, ComingSoonUpdate, ReleasePeriod
from cinejournal.api.routes.coming_soon import (
    create_coming_soon,
    delete_coming_soon,
    get_coming_soon,
    list_coming_soons,
    list_coming_soons_by_period,
    list_most_anticipated,
    period_range,
    update_coming_soon,
)
from cinejournal.db.models import ComingSoonModel, utcnow

REPO_PATH = "cinejournal.api.routes.coming_soon.ComingSoonRepository"


def make_coming_soon(**overrides):
    """Fully populated ComingSoonModel for response validation."""
    now = utcnow()
    values = {
        "id": uuid4(),
        "title": "Dune: Part Three",
        "tmdb_id": 1170608,
        "type": "movie",
        "release_date": date(2026, 12, 18),
        "genres": ["Science Fiction"],
        "status": "announced",
        "cast": [],
        "production_companies": [],
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return ComingSoonModel(**values)


@pytest.fixture
def db():
    return AsyncMock(spec=AsyncSession)


class TestPeriodRange:
    """Tests for named release windows."""

    def test_this_week(self):
        assert period_range(ReleasePeriod.THIS_WEEK, date(2026, 10, 19)) == (
            date(2026, 10, 19),
            date(2026, 10, 26),
        )

    def test_this_month(self):
        assert period_range(ReleasePeriod.THIS_MONTH, date(2026, 2, 10)) == (
            date(2026, 2, 1),
            date(2026, 2, 28),
        )

    def test_this_month_leap_year(self):
        assert period_range(ReleasePeriod.THIS_MONTH, date(2028, 2, 10))[1] == date(2028, 2, 29)

    def test_next_month(self):
        assert period_range(ReleasePeriod.NEXT_MONTH, date(2026, 10, 19)) == (
            date(2026, 11, 1),
            date(2026, 11, 30),
        )

    def test_next_month_rolls_over_year(self):
        assert period_range(ReleasePeriod.NEXT_MONTH, date(2026, 12, 5)) == (
            date(2027, 1, 1),
            date(2027, 1, 31),
        )

    def test_years(self):
        today = date(2026, 10, 19)

        assert period_range(ReleasePeriod.THIS_YEAR, today) == (date(2026, 1, 1), date(2026, 12, 31))
        assert period_range(ReleasePeriod.NEXT_YEAR, today) == (date(2027, 1, 1), date(2027, 12, 31))


class TestComingSoonRoutes:
    """Tests for the listing handlers."""

    @pytest.mark.asyncio
    async def test_unknown_period_is_400(self, db):
        with pytest.raises(HTTPException) as exc_info:
            await list_coming_soons_by_period("someday", None, 20, db)

        assert exc_info.value.status_code == 400
        assert "this-week" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_period_passes_bounds(self, db):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.find_releasing_between = AsyncMock(return_value=[])

            response = await list_coming_soons_by_period("next-year", "movie", 20, db)

        start, end = repo_cls.return_value.find_releasing_between.call_args.args
        assert start.month == 1 and start.day == 1
        assert end.month == 12 and end.day == 31
        assert response.period == ReleasePeriod.NEXT_YEAR
        assert response.items == []

    @pytest.mark.asyncio
    async def test_list_caps_limit_and_sort(self, db):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.list_upcoming = AsyncMock(return_value=[])

            await list_coming_soons(None, None, ComingSoonSort.POPULARITY, 1000, db)

        kwargs = repo_cls.return_value.list_upcoming.call_args.kwargs
        assert kwargs["limit"] == 100
        assert kwargs["sort_by"] == "popularity"
        assert kwargs["status"] is None

    @pytest.mark.asyncio
    async def test_most_anticipated_cap(self, db):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.most_anticipated = AsyncMock(return_value=[])

            await list_most_anticipated("tv", 80, db)

        kwargs = repo_cls.return_value.most_anticipated.call_args.kwargs
        assert kwargs["limit"] == 50
        assert kwargs["media_type"] == "tv"


class TestComingSoonWriteRoutes:
    """Tests for the single release handlers."""

    @pytest.mark.asyncio
    async def test_create_returns_release(self, db, service_user):
        body = ComingSoonCreate(title="Dune: Part Three", tmdb_id=1170608, release_date=date(2026, 12, 18))
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.create = AsyncMock(return_value=make_coming_soon())

            response = await create_coming_soon(body, db, service_user)

        data = repo_cls.return_value.create.call_args.args[0]
        assert data["tmdb_id"] == 1170608
        assert data["status"] == "announced"
        assert "overview" not in data
        assert response.title == "Dune: Part Three"

    @pytest.mark.asyncio
    async def test_create_duplicate_is_409(self, db, service_user):
        body = ComingSoonCreate(title="X", tmdb_id=5, release_date=date(2026, 12, 18))
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.create = AsyncMock(
                side_effect=IntegrityError("INSERT", {}, Exception("duplicate key"))
            )

            with pytest.raises(HTTPException) as exc_info:
                await create_coming_soon(body, db, service_user)

        assert exc_info.value.status_code == 409
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_invalid_uuid_is_400(self, db):
        with pytest.raises(HTTPException) as exc_info:
            await get_coming_soon("not-a-uuid", db)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_get_missing_is_404(self, db):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(HTTPException) as exc_info:
                await get_coming_soon(str(uuid4()), db)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_get_found(self, db):
        item = make_coming_soon()
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.get_by_id = AsyncMock(return_value=item)

            response = await get_coming_soon(str(item.id), db)

        assert response.id == item.id
        assert response.release_date == date(2026, 12, 18)

    @pytest.mark.asyncio
    async def test_update_only_sends_provided_fields(self, db, service_user):
        item = make_coming_soon(status="post_production")
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.update = AsyncMock(return_value=item)

            response = await update_coming_soon(
                str(item.id), ComingSoonUpdate(status="post_production"), db, service_user
            )

        assert repo_cls.return_value.update.call_args.args[1] == {"status": "post_production"}
        assert response.status == "post_production"

    @pytest.mark.asyncio
    async def test_update_missing_is_404(self, db, service_user):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.update = AsyncMock(return_value=None)

            with pytest.raises(HTTPException) as exc_info:
                await update_coming_soon(str(uuid4()), ComingSoonUpdate(title="X"), db, service_user)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, db, service_user):
        item_id = uuid4()
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.delete = AsyncMock(return_value=True)

            assert await delete_coming_soon(str(item_id), db, service_user) is None

        repo_cls.return_value.delete.assert_awaited_once_with(item_id)

    @pytest.mark.asyncio
    async def test_delete_missing_is_404(self, db, service_user):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.delete = AsyncMock(return_value=False)

            with pytest.raises(HTTPException) as exc_info:
                await delete_coming_soon(str(uuid4()), db, service_user)

        assert exc_info.value.status_code == 404
