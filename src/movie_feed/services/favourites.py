from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from movie_feed.models import Movie
from movie_feed.storage import FavouritesStore

logger = logging.getLogger(__name__)

FavouritesListener = Callable[[list[Movie]], None]


class FavouritesController:
    """In-memory favourites list mirrored to a :class:`FavouritesStore`.

    The stored list is read once on construction. Every mutation rewrites the
    whole list to the store before returning.
    """

    def __init__(self, store: FavouritesStore) -> None:
        self._store = store
        self._movies: list[Movie] = store.load()
        self._listeners: list[FavouritesListener] = []
        logger.debug(f"[FAVOURITES] Loaded {len(self._movies)} favourite(s) from {store.path}")

    @classmethod
    async def open(cls, store: FavouritesStore) -> FavouritesController:
        """Build a controller, reading the store off the event loop."""
        return await asyncio.to_thread(cls, store)

    def list_movies(self) -> list[Movie]:
        return list(self._movies)

    def contains(self, movie: Movie) -> bool:
        return movie in self._movies

    def contains_id(self, movie_id: int) -> bool:
        return any(existing.id == movie_id for existing in self._movies)

    def add(self, movie: Movie) -> bool:
        if self.contains_id(movie.id):
            return False
        self._commit([*self._movies, movie])
        logger.info(f"[FAVOURITES] Added {movie.title} ({movie.id})")
        return True

    def remove(self, movie_id: int) -> bool:
        remaining = [existing for existing in self._movies if existing.id != movie_id]
        removed = len(remaining) != len(self._movies)
        self._commit(remaining)
        if removed:
            logger.info(f"[FAVOURITES] Removed movie {movie_id}")
        return removed

    def toggle(self, movie: Movie) -> bool:
        """Add ``movie`` if absent, remove it otherwise. Returns the new membership."""
        if self.contains_id(movie.id):
            self.remove(movie.id)
            return False
        return self.add(movie)

    def subscribe(self, listener: FavouritesListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self, movies: list[Movie]) -> None:
        self._store.save(movies)
        self._movies = movies
        for listener in list(self._listeners):
            listener(self.list_movies())


__all__ = ["FavouritesController", "FavouritesListener"]
