"""Feed state machine: query/sort/pagination -> fetch -> merge -> observers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from movie_feed.clients.tmdb import CatalogError, MovieCatalog
from movie_feed.models import Movie, MoviePage, sort_movies

logger = logging.getLogger(__name__)

FeedListener = Callable[["FeedState"], None]


class FeedStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class FeedState:
    """Immutable snapshot of the feed published to observers."""

    query: str = ""
    sort_descending: bool = True
    current_page: int = 1
    total_pages: int | None = None
    movies: tuple[Movie, ...] = ()
    is_loading: bool = False
    is_error: bool = False

    @property
    def status(self) -> FeedStatus:
        if self.is_loading:
            return FeedStatus.LOADING
        if self.is_error:
            return FeedStatus.ERROR
        if self.total_pages is not None:
            return FeedStatus.LOADED
        return FeedStatus.IDLE

    @property
    def has_more(self) -> bool:
        """Whether another page can be requested after ``current_page``."""
        return self.total_pages is None or self.current_page < self.total_pages


class FeedController:
    """Owns the movie feed and drives catalog fetches for it.

    All intents must be awaited on the same event loop, which is the single
    owner of the state. At most one fetch is in flight: any fetch requested
    while ``is_loading`` is set is dropped. Changing the query or sort order
    resets the feed at once; a fetch already in flight for the previous
    parameters is discarded when it completes and page 1 is then fetched for
    the new ones.

    Each fetched page is sorted by rating before it is merged. With
    ``resort_accumulated`` the whole accumulated list is re-sorted after each
    merge instead of keeping per-page order.
    """

    def __init__(
        self,
        catalog: MovieCatalog,
        *,
        query: str = "",
        sort_descending: bool = True,
        resort_accumulated: bool = False,
    ) -> None:
        self._catalog = catalog
        self._resort_accumulated = resort_accumulated
        self._state = FeedState(query=query, sort_descending=sort_descending)
        self._generation = 0
        self._listeners: list[FeedListener] = []

    @property
    def state(self) -> FeedState:
        return self._state

    def subscribe(self, listener: FeedListener) -> Callable[[], None]:
        """Register ``listener`` for state changes and return an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def load(self) -> bool:
        """Fetch the current page for the current query and sort order.

        Used for the first load and to retry a page after an error. Returns
        False when dropped because a fetch is already running or the current
        page is already loaded.
        """
        if self._state.status is FeedStatus.LOADED:
            logger.debug(f"[FEED] Page {self._state.current_page} already loaded; load ignored")
            return False
        return await self._fetch()

    async def reload(self) -> bool:
        self._reset()
        return await self._fetch()

    async def set_query(self, query: str) -> None:
        if query == self._state.query:
            return
        self._reset(query=query)
        await self._fetch()

    async def set_sort(self, descending: bool) -> None:
        if descending == self._state.sort_descending:
            return
        self._reset(sort_descending=descending)
        await self._fetch()

    async def toggle_sort(self) -> None:
        await self.set_sort(not self._state.sort_descending)

    async def load_next_page(self) -> bool:
        """Fetch the page after ``current_page`` when the end of the list is reached."""
        state = self._state
        if state.is_loading or state.is_error or not state.movies or not state.has_more:
            return False
        self._update(current_page=state.current_page + 1)
        return await self._fetch()

    def _reset(self, **changes: object) -> None:
        self._generation += 1
        self._update(
            movies=(),
            current_page=1,
            total_pages=None,
            is_error=False,
            **changes,
        )
        logger.debug(
            f"[FEED] Reset for query={self._state.query!r} "
            f"descending={self._state.sort_descending}"
        )

    async def _fetch(self) -> bool:
        if self._state.is_loading:
            logger.debug("[FEED] Fetch already in flight; request dropped")
            return False

        self._update(is_loading=True, is_error=False)
        try:
            while True:
                generation = self._generation
                query = self._state.query
                page_number = self._state.current_page
                try:
                    page = await self._request(query, page_number)
                except CatalogError as exc:
                    if generation != self._generation:
                        logger.debug(f"[FEED] Ignoring stale failure for page {page_number}")
                        continue
                    logger.warning(f"[FEED] Fetching page {page_number} failed: {exc}")
                    self._update(is_loading=False, is_error=True)
                    return True

                if generation != self._generation:
                    logger.debug(f"[FEED] Discarding stale page {page_number} for query={query!r}")
                    continue

                self._merge(page, page_number)
                return True
        except asyncio.CancelledError:
            self._abandon()
            raise
        except Exception:
            logger.exception(f"[FEED] Unexpected catalog failure for page {self._state.current_page}")
            self._update(is_loading=False, is_error=True)
            raise

    def _abandon(self) -> None:
        # A cancelled next-page fetch leaves the feed on the last merged page.
        state = self._state
        page = state.current_page
        if state.total_pages is not None and page > 1:
            page -= 1
        logger.debug(f"[FEED] Fetch cancelled; back on page {page}")
        self._update(is_loading=False, current_page=page)

    async def _request(self, query: str, page: int) -> MoviePage:
        if query.strip():
            return await self._catalog.search(query, page)
        return await self._catalog.fetch_popular(page)

    def _merge(self, page: MoviePage, page_number: int) -> None:
        descending = self._state.sort_descending
        ordered = tuple(sort_movies(page.movies, descending=descending))
        movies = ordered if page_number == 1 else self._state.movies + ordered
        if self._resort_accumulated:
            movies = tuple(sort_movies(movies, descending=descending))

        logger.debug(
            f"[FEED] Page {page_number}/{page.total_pages} merged: "
            f"{len(ordered)} new, {len(movies)} total"
        )
        self._update(
            movies=movies,
            total_pages=page.total_pages,
            is_loading=False,
            is_error=False,
        )

    def _update(self, **changes: object) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)


__all__ = ["FeedController", "FeedListener", "FeedState", "FeedStatus"]
