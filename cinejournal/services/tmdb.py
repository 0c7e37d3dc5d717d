"""Async client for The Movie Database (TMDB) API.

Search results are normalized to a common shape for movies and TV shows:
``id, title, overview, poster_url, backdrop_url, release_date, genres,
rating, vote_count, type, original_title, original_language``.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from cinejournal.config import TMDBSettings, get_settings
from cinejournal.observability.logging import get_logger
from cinejournal.observability.metrics import get_metrics_manager

logger = get_logger(__name__)

SUPPORTED_MEDIA_TYPES = ("movie", "tv")


class TMDBError(Exception):
    """A TMDB request failed or returned an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TMDBClient:
    """Thin async wrapper over the TMDB v3 REST API.

    Example:
        >>> client = TMDBClient(settings.tmdb)
        >>> page = await client.search_multi("dune")
        >>> page["results"][0]["title"]
        'Dune'
    """

    def __init__(
        self,
        settings: TMDBSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            settings: TMDB settings (token, base URLs, timeout)
            http_client: Preconfigured client, mainly for tests
        """
        if http_client is None and not settings.api_key:
            raise TMDBError("TMDB_API_KEY is not configured")

        self.settings = settings
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Accept": "application/json",
            },
        )
        self._genres: Dict[int, str] = {}
        self._genres_loaded = False
        self._genre_lock = asyncio.Lock()

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, operation: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = {"language": self.settings.language}
        query.update(params or {})
        metrics = get_metrics_manager()

        try:
            response = await self._client.get(path, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            metrics.record_tmdb_request(operation, "error")
            message = self._status_message(e.response)
            logger.warning(
                "tmdb_request_failed",
                operation=operation,
                path=path,
                status_code=e.response.status_code,
                error=message,
            )
            raise TMDBError(f"TMDB API request failed: {message}", e.response.status_code) from e
        except httpx.HTTPError as e:
            metrics.record_tmdb_request(operation, "error")
            logger.warning("tmdb_request_failed", operation=operation, path=path, error=str(e))
            raise TMDBError(f"TMDB API request failed: {e}") from e

        metrics.record_tmdb_request(operation, "success")
        return response.json()

    @staticmethod
    def _status_message(response: httpx.Response) -> str:
        try:
            return response.json().get("status_message") or response.reason_phrase
        except ValueError:
            return response.reason_phrase

    async def _ensure_genres(self) -> None:
        if self._genres_loaded:
            return
        async with self._genre_lock:
            if self._genres_loaded:
                return
            for media_type in SUPPORTED_MEDIA_TYPES:
                try:
                    data = await self._get("genres", f"/genre/{media_type}/list")
                except TMDBError as e:
                    # search still works without names; retry on next call
                    logger.warning("tmdb_genres_unavailable", media_type=media_type, error=str(e))
                    return
                for genre in data.get("genres") or []:
                    self._genres[genre["id"]] = genre["name"]
            self._genres_loaded = True

    def image_url(self, path: Optional[str]) -> Optional[str]:
        """Full image URL for a TMDB relative path."""
        return f"{self.settings.image_base_url}{path}" if path else None

    def genre_names(self, genre_ids: List[int]) -> List[str]:
        return [self._genres[i] for i in genre_ids if i in self._genres]

    def _normalize(self, item: Dict[str, Any], media_type: str) -> Dict[str, Any]:
        is_movie = media_type == "movie"
        return {
            "id": item.get("id"),
            "title": item.get("title") if is_movie else item.get("name"),
            "overview": item.get("overview") or "",
            "poster_url": self.image_url(item.get("poster_path")),
            "backdrop_url": self.image_url(item.get("backdrop_path")),
            "release_date": item.get("release_date") if is_movie else item.get("first_air_date"),
            "genres": self.genre_names(item.get("genre_ids") or []),
            "rating": item.get("vote_average") or 0,
            "vote_count": item.get("vote_count") or 0,
            "type": media_type,
            "original_title": item.get("original_title") if is_movie else item.get("original_name"),
            "original_language": item.get("original_language") or "en",
        }

    @staticmethod
    def _page(results: List[Dict[str, Any]], data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "results": results,
            "total_pages": data.get("total_pages") or 1,
            "total_results": data.get("total_results") or 0,
        }

    async def search_multi(self, query: str, page: int = 1) -> Dict[str, Any]:
        """Search movies and TV shows together. People are dropped."""
        await self._ensure_genres()
        data = await self._get("search_multi", "/search/multi", {"query": query, "page": page})
        results = [
            self._normalize(item, item["media_type"])
            for item in data.get("results") or []
            if item.get("media_type") in SUPPORTED_MEDIA_TYPES
        ]
        return self._page(results, data)

    async def search_movies(self, query: str, page: int = 1) -> Dict[str, Any]:
        """Search movies only."""
        await self._ensure_genres()
        data = await self._get("search_movies", "/search/movie", {"query": query, "page": page})
        results = [self._normalize(item, "movie") for item in data.get("results") or []]
        return self._page(results, data)

    async def search_tv(self, query: str, page: int = 1) -> Dict[str, Any]:
        """Search TV shows only."""
        await self._ensure_genres()
        data = await self._get("search_tv", "/search/tv", {"query": query, "page": page})
        results = [self._normalize(item, "tv") for item in data.get("results") or []]
        return self._page(results, data)

    async def get_movie_details(self, movie_id: int) -> Dict[str, Any]:
        """Full movie record with absolute image URLs."""
        movie = await self._get("movie_details", f"/movie/{movie_id}")
        return {
            **movie,
            "poster_url": self.image_url(movie.get("poster_path")),
            "backdrop_url": self.image_url(movie.get("backdrop_path")),
            "type": "movie",
        }

    async def get_tv_details(self, tv_id: int) -> Dict[str, Any]:
        """Full TV show record with absolute image URLs."""
        show = await self._get("tv_details", f"/tv/{tv_id}")
        return {
            **show,
            "poster_url": self.image_url(show.get("poster_path")),
            "backdrop_url": self.image_url(show.get("backdrop_path")),
            "type": "tv",
        }

    async def get_details(self, media_type: str, tmdb_id: int) -> Dict[str, Any]:
        """Dispatch to the movie or TV details call."""
        if media_type == "movie":
            return await self.get_movie_details(tmdb_id)
        if media_type == "tv":
            return await self.get_tv_details(tmdb_id)
        raise ValueError(f"Unsupported media type: {media_type}")


# Global client instance
_tmdb_client: Optional[TMDBClient] = None


def get_tmdb_client() -> TMDBClient:
    """Get or create the global TMDB client."""
    global _tmdb_client
    if _tmdb_client is None:
        _tmdb_client = TMDBClient(get_settings().tmdb)
    return _tmdb_client


async def close_tmdb_client() -> None:
    """Close the global TMDB client if one was created."""
    global _tmdb_client
    if _tmdb_client is not None:
        await _tmdb_client.close()
        _tmdb_client = None
