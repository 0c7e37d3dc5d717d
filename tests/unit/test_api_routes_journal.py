"""Unit tests for journal entry and TMDB lookup routes."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cinejournal.api.models import JournalEntryTMDBCreate, JournalEntryUpdate
from cinejournal.api.routes.journal_entries import (
    create_entry_from_tmdb,
    delete_entry,
    get_tmdb_details,
    media_from_details,
    search_tmdb,
    update_entry,
)
from cinejournal.db.models import JournalEntryModel, MediaModel, utcnow
from cinejournal.services.tmdb import TMDBClient, TMDBError

REPO_PATH = "cinejournal.api.routes.journal_entries.JournalRepository"

MOVIE_DETAILS = {
    "id": 603,
    "type": "movie",
    "title": "The Matrix",
    "overview": "A hacker learns the truth.",
    "release_date": "1999-03-31",
    "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
    "vote_average": 8.2,
    "runtime": 136,
    "status": "Released",
    "poster_url": "https://image.tmdb.org/t/p/w500/m.jpg",
}


@pytest.fixture
def db():
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def tmdb():
    return MagicMock(spec=TMDBClient)


def make_media(**overrides):
    values = {"id": uuid4(), "tmdb_id": 603, "type": "movies", "title": "The Matrix"}
    values.update(overrides)
    return MediaModel(**values)


def make_entry(media, user_id, **overrides):
    now = utcnow()
    values = {
        "id": uuid4(),
        "user_id": user_id,
        "media_id": media.id,
        "media": media,
        "title": media.title,
        "tags": [],
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return JournalEntryModel(**values)


class TestMediaFromDetails:
    """Tests for mapping TMDB details onto media rows."""

    def test_movie(self):
        media = media_from_details(MOVIE_DETAILS, "movie")

        assert media["type"] == "movies"
        assert media["title"] == "The Matrix"
        assert media["release_date"] == date(1999, 3, 31)
        assert media["genres"] == "Action, Science Fiction"
        assert media["rating"] == 8.2
        assert media["runtime"] == 136

    def test_tv_uses_first_episode_runtime(self):
        details = {
            "id": 1399,
            "name": "Game of Thrones",
            "first_air_date": "2011-04-17",
            "episode_run_time": [60, 55],
            "genres": [],
        }

        media = media_from_details(details, "tv")

        assert media["type"] == "tv_series"
        assert media["title"] == "Game of Thrones"
        assert media["release_date"] == date(2011, 4, 17)
        assert media["runtime"] == 60
        assert media["genres"] is None

    def test_bad_date_and_missing_title(self):
        media = media_from_details({"id": 1, "release_date": "soon"}, "movie")

        assert media["release_date"] is None
        assert media["title"] == "Untitled"


class TestTMDBRoutes:
    """Tests for search and details."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [None, "", "   "])
    async def test_search_requires_query(self, tmdb, query):
        with pytest.raises(HTTPException) as exc_info:
            await search_tmdb(query, None, 1, tmdb)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Query parameter is required"

    @pytest.mark.asyncio
    async def test_search_dispatches_by_type(self, tmdb):
        tmdb.search_tv = AsyncMock(return_value={
            "results": [{"id": 1399, "title": "Game of Thrones", "type": "tv"}],
            "total_pages": 3,
            "total_results": 41,
        })

        response = await search_tmdb("thrones", "tv", 2, tmdb)

        tmdb.search_tv.assert_awaited_once_with("thrones", 2)
        assert response.data[0].title == "Game of Thrones"
        assert response.meta.pagination.total == 41
        assert response.meta.pagination.total_pages == 3

    @pytest.mark.asyncio
    async def test_search_failure_is_502(self, tmdb):
        tmdb.search_multi = AsyncMock(side_effect=TMDBError("TMDB request failed", status_code=500))

        with pytest.raises(HTTPException) as exc_info:
            await search_tmdb("anything", None, 1, tmdb)

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_details_rejects_unknown_type(self, tmdb):
        with pytest.raises(HTTPException) as exc_info:
            await get_tmdb_details("person", 1, tmdb)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Type must be either 'movie' or 'tv'"

    @pytest.mark.asyncio
    async def test_details_wrapped_in_data(self, tmdb):
        tmdb.get_details = AsyncMock(return_value=MOVIE_DETAILS)

        response = await get_tmdb_details("movie", 603, tmdb)

        assert response == {"data": MOVIE_DETAILS}


class TestJournalEntryRoutes:
    """Tests for entry creation and ownership."""

    @pytest.mark.asyncio
    async def test_create_fetches_uncached_media(self, db, tmdb, regular_user):
        media = make_media()
        tmdb.get_details = AsyncMock(return_value=MOVIE_DETAILS)
        body = JournalEntryTMDBCreate(data={"tmdb_id": 603, "type": "movie", "content": "Rewatched."})

        with patch(REPO_PATH) as repo_cls:
            repo = repo_cls.return_value
            repo.get_media_by_tmdb = AsyncMock(return_value=None)
            repo.get_or_create_media = AsyncMock(return_value=(media, True))
            repo.create_entry = AsyncMock(return_value=make_entry(media, str(regular_user.id)))

            response = await create_entry_from_tmdb(body, db, tmdb, regular_user)

        repo.get_media_by_tmdb.assert_awaited_once_with(603, "movies")
        assert repo.get_or_create_media.call_args.args[0]["title"] == "The Matrix"
        user_id, passed_media, fields = repo.create_entry.call_args.args
        assert user_id == str(regular_user.id)
        assert passed_media is media
        assert fields == {"content": "Rewatched.", "tags": []}
        assert response.data.media.title == "The Matrix"

    @pytest.mark.asyncio
    async def test_create_reuses_cached_media(self, db, tmdb, regular_user):
        media = make_media()
        tmdb.get_details = AsyncMock()
        body = JournalEntryTMDBCreate(data={"tmdb_id": 603, "type": "movie"})

        with patch(REPO_PATH) as repo_cls:
            repo = repo_cls.return_value
            repo.get_media_by_tmdb = AsyncMock(return_value=media)
            repo.create_entry = AsyncMock(return_value=make_entry(media, str(regular_user.id)))

            await create_entry_from_tmdb(body, db, tmdb, regular_user)

        tmdb.get_details.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_tmdb_failure_is_502(self, db, tmdb, regular_user):
        tmdb.get_details = AsyncMock(side_effect=TMDBError("not found", status_code=404))
        body = JournalEntryTMDBCreate(data={"tmdb_id": 99, "type": "tv"})

        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.get_media_by_tmdb = AsyncMock(return_value=None)

            with pytest.raises(HTTPException) as exc_info:
                await create_entry_from_tmdb(body, db, tmdb, regular_user)

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_delete_other_users_entry_is_404(self, db, regular_user):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.delete_entry = AsyncMock(return_value=False)

            with pytest.raises(HTTPException) as exc_info:
                await delete_entry(str(uuid4()), db, regular_user)

        assert exc_info.value.status_code == 404
        assert repo_cls.return_value.delete_entry.call_args.args[1] == str(regular_user.id)

    @pytest.mark.asyncio
    async def test_update_sends_only_provided_fields(self, db, regular_user):
        media = make_media()
        entry = make_entry(media, str(regular_user.id), rating=9.0)
        body = JournalEntryUpdate(rating=9, content=None)

        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.update_entry = AsyncMock(return_value=entry)

            response = await update_entry(str(entry.id), body, db, regular_user)

        entry_id, user_id, data = repo_cls.return_value.update_entry.call_args.args
        assert entry_id == entry.id
        assert user_id == str(regular_user.id)
        assert data == {"rating": 9, "content": None}
        assert response.data.rating == 9.0

    @pytest.mark.asyncio
    async def test_update_other_users_entry_is_404(self, db, regular_user):
        with patch(REPO_PATH) as repo_cls:
            repo_cls.return_value.update_entry = AsyncMock(return_value=None)

            with pytest.raises(HTTPException) as exc_info:
                await update_entry(str(uuid4()), JournalEntryUpdate(title="Rewatch"), db, regular_user)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_update_invalid_uuid_is_400(self, db, regular_user):
        with pytest.raises(HTTPException) as exc_info:
            await update_entry("not-a-uuid", JournalEntryUpdate(), db, regular_user)

        assert exc_info.value.status_code == 400
