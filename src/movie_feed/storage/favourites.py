from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from movie_feed.models import Movie
from movie_feed.storage.preferences import PreferencesFile

logger = logging.getLogger(__name__)

FAVOURITES_FILE_NAME = "favourites_prefs.json"
FAVOURITES_KEY = "favourite_movies"

_MOVIE_LIST = TypeAdapter(list[Movie])


class FavouritesStore:
    """Reads and writes the favourites list as JSON text in one preferences slot."""

    def __init__(self, preferences: PreferencesFile, *, key: str = FAVOURITES_KEY) -> None:
        self._preferences = preferences
        self._key = key

    @classmethod
    def from_path(cls, path: Path, *, key: str = FAVOURITES_KEY) -> FavouritesStore:
        return cls(PreferencesFile(path), key=key)

    @property
    def path(self) -> Path:
        return self._preferences.path

    def load(self) -> list[Movie]:
        """Return the stored favourites, or an empty list if none can be decoded."""
        payload = self._preferences.get_string(self._key)
        if payload is None:
            return []
        try:
            return _MOVIE_LIST.validate_json(payload)
        except ValidationError as exc:
            logger.warning(
                f"[FAVOURITES] Discarding undecodable favourites in {self.path}: "
                f"{exc.error_count()} error(s)"
            )
            return []

    def save(self, movies: Iterable[Movie]) -> None:
        payload = _MOVIE_LIST.dump_json(list(movies)).decode("utf-8")
        self._preferences.put_string(self._key, payload)


__all__ = ["FAVOURITES_FILE_NAME", "FAVOURITES_KEY", "FavouritesStore"]
