from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field, field_validator

IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w342"


class Movie(BaseModel):
    """Catalog movie record as returned by TMDB list endpoints."""

    id: int
    title: str
    poster_path: str = ""
    backdrop_path: str = ""
    release_date: str = ""
    vote_average: float = 0.0

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }

    @field_validator("poster_path", "backdrop_path", "release_date", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        # TMDB sends null for movies without artwork or a known release date
        return "" if value is None else value

    @field_validator("vote_average", mode="before")
    @classmethod
    def _null_rating(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    def poster_url(self, base_url: str = IMAGE_BASE_URL) -> str | None:
        """Return the full poster URL, or None when a placeholder should be shown."""
        if not self.poster_path:
            return None
        return f"{base_url.rstrip('/')}/{self.poster_path.lstrip('/')}"


class MoviePage(BaseModel):
    """One page of results from a popular or search request."""

    page: int
    movies: list[Movie] = Field(default_factory=list, alias="results")
    total_pages: int = 1

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


def sort_movies(movies: Iterable[Movie], *, descending: bool) -> list[Movie]:
    """Order movies by rating. Equal ratings keep their input order."""
    return sorted(movies, key=lambda movie: movie.vote_average, reverse=descending)


__all__ = ["IMAGE_BASE_URL", "Movie", "MoviePage", "sort_movies"]
