from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from movie_feed import __version__
from movie_feed.models import MoviePage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.themoviedb.org/3/"
DEFAULT_TIMEOUT = 20.0
USER_AGENT = f"movie-feed/{__version__}"


class CatalogError(RuntimeError):
    """Raised when the catalog cannot produce a page of results."""


class MovieCatalog(Protocol):
    """Remote source of movie pages consumed by the feed."""

    async def fetch_popular(self, page: int) -> MoviePage:
        """Return one page of popular movies."""

    async def search(self, query: str, page: int) -> MoviePage:
        """Return one page of movies matching ``query``."""


class CatalogClient:
    """Thin asynchronous wrapper around the TMDB v3 list endpoints.

    Every failure (network error, non-2xx status, undecodable or invalid body)
    surfaces as :class:`CatalogError`. Requests are never retried.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        include_adult: bool = False,
    ) -> None:
        # Trailing slash keeps relative paths appended to the version prefix
        normalized_url = base_url.rstrip("/") + "/"

        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        self._api_key = api_key
        self._include_adult = include_adult
        self._client = httpx.AsyncClient(
            base_url=normalized_url,
            headers=headers,
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_popular(self, page: int) -> MoviePage:
        _check_page(page)
        return await self._get_page("movie/popular", {"page": page})

    async def search(self, query: str, page: int) -> MoviePage:
        _check_page(page)
        if not query.strip():
            raise ValueError("search query must not be blank; use fetch_popular instead")
        return await self._get_page("search/movie", {"query": query, "page": page})

    async def _get_page(self, path: str, params: dict[str, Any]) -> MoviePage:
        query_params = {
            "api_key": self._api_key,
            **params,
            "include_adult": "true" if self._include_adult else "false",
        }
        try:
            response = await self._client.get(path, params=query_params)
            response.raise_for_status()
            return MoviePage.model_validate_json(response.content)
        except httpx.HTTPStatusError as exc:
            logger.warning(f"[CATALOG] {path} returned HTTP {exc.response.status_code}")
            raise CatalogError(
                f"{path} failed with status {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(f"[CATALOG] {path} request failed: {exc!r}")
            raise CatalogError(f"{path} request failed: {exc}") from exc
        except ValidationError as exc:
            logger.warning(f"[CATALOG] {path} returned an unreadable body")
            raise CatalogError(f"{path} returned an invalid page payload") from exc

    async def __aenter__(self) -> CatalogClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()


@asynccontextmanager
async def catalog_client(
    api_key: str,
    *,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = DEFAULT_TIMEOUT,
    include_adult: bool = False,
):
    client = CatalogClient(
        api_key,
        base_url=base_url,
        timeout=timeout,
        include_adult=include_adult,
    )
    try:
        yield client
    finally:
        await client.close()


def _check_page(page: int) -> None:
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")


__all__ = ["CatalogClient", "CatalogError", "MovieCatalog", "catalog_client"]
