from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any

import typer

from movie_feed import __version__
from movie_feed.clients.tmdb import CatalogClient
from movie_feed.config import Settings, SettingsError, SettingsLoadResult, load_settings
from movie_feed.models import Movie
from movie_feed.services.favourites import FavouritesController
from movie_feed.services.feed import FeedController, FeedState
from movie_feed.storage import FavouritesStore


class SortOrder(str, Enum):
    DESC = "desc"
    ASC = "asc"


app = typer.Typer(
    add_completion=False,
    help="Browse popular movies, search the TMDB catalog, and keep local favourites.",
)
favourites_app = typer.Typer(help="Manage locally stored favourite movies.")
app.add_typer(favourites_app, name="favourites")


@app.callback()
def _cli_entry(ctx: typer.Context) -> None:
    """Entrypoint for the movie-feed CLI."""
    ctx.obj = {} if ctx.obj is None else ctx.obj


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def popular(
    pages: int = typer.Option(1, min=1, help="Number of pages to load."),
    order: SortOrder | None = typer.Option(
        None,
        case_sensitive=False,
        help="Rating order: desc or asc (default: configured order).",
    ),
    favourite: list[int] | None = typer.Option(
        None,
        "--favourite",
        help="Add the movie with this id from the loaded feed to favourites. Repeatable.",
    ),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Output movies as JSON."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """List popular movies."""
    _browse(
        query="",
        pages=pages,
        order=order,
        favourite_ids=favourite or [],
        json_output=json_output,
        debug=debug,
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to search the catalog for."),
    pages: int = typer.Option(1, min=1, help="Number of pages to load."),
    order: SortOrder | None = typer.Option(
        None,
        case_sensitive=False,
        help="Rating order: desc or asc (default: configured order).",
    ),
    favourite: list[int] | None = typer.Option(
        None,
        "--favourite",
        help="Add the movie with this id from the results to favourites. Repeatable.",
    ),
    json_output: bool = typer.Option(False, "--json/--no-json", help="Output movies as JSON."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Search the catalog by title."""
    if not query.strip():
        typer.secho("Search query must not be blank.", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _browse(
        query=query,
        pages=pages,
        order=order,
        favourite_ids=favourite or [],
        json_output=json_output,
        debug=debug,
    )


@favourites_app.command("list")
def favourites_list(
    json_output: bool = typer.Option(False, "--json/--no-json", help="Output movies as JSON."),
) -> None:
    """Show stored favourites."""
    load_result = _safe_load_settings(load_even_if_missing=True)
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    favourites = FavouritesController(FavouritesStore.from_path(settings.favourites_path))
    movies = favourites.list_movies()

    if json_output:
        typer.echo(json.dumps([movie.model_dump() for movie in movies], indent=2))
        return
    if not movies:
        typer.secho("No favourites yet.", fg=typer.colors.YELLOW)
        return
    for idx, movie in enumerate(movies, start=1):
        _render_movie(idx, movie, favourite=True, image_base_url=settings.image_base_url)


@favourites_app.command("remove")
def favourites_remove(movie_id: int = typer.Argument(..., help="Catalog id of the movie.")) -> None:
    """Remove a movie from favourites."""
    load_result = _safe_load_settings(load_even_if_missing=True)
    if load_result is None:
        raise typer.Exit(code=1)

    store = FavouritesStore.from_path(load_result.settings.favourites_path)
    favourites = FavouritesController(store)
    if favourites.remove(movie_id):
        typer.secho(f"Removed {movie_id} from favourites.", fg=typer.colors.GREEN)
    else:
        typer.secho(f"Movie {movie_id} is not a favourite.", fg=typer.colors.YELLOW)


@app.command()
def config(show_sources: bool = typer.Option(False, help="Display configuration hints.")) -> None:
    """Describe configuration expectations."""
    load_result = _safe_load_settings(load_even_if_missing=True)
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    values: dict[str, Any] = {
        "tmdb_api_key": "<set>" if settings.tmdb_api_key else "<unset>",
        "tmdb_base_url": settings.tmdb_base_url,
        "image_base_url": settings.image_base_url,
        "include_adult": settings.include_adult,
        "request_timeout": settings.request_timeout,
        "sort_descending": settings.sort_descending,
        "resort_accumulated": settings.resort_accumulated,
        "favourites_path": settings.favourites_path,
    }

    for key, value in values.items():
        typer.echo(f"{key}: {value}")

    if show_sources:
        source_hint = load_result.source_path or "<env/.env>"
        typer.echo(f"resolved_from: {source_hint}")
        typer.echo(
            "Catalog key: TMDB_API_KEY."
            " Configure ~/.config/movie-feed/config.toml for persistent settings.",
        )


def main() -> None:
    """Expose Typer app for the console script."""
    app()


def _browse(
    *,
    query: str,
    pages: int,
    order: SortOrder | None,
    favourite_ids: list[int],
    json_output: bool,
    debug: bool,
) -> None:
    if debug:
        _setup_logging(logging.DEBUG)

    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    try:
        settings.require_tmdb()
    except SettingsError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    descending = settings.sort_descending if order is None else order is SortOrder.DESC
    state = asyncio.run(_run_feed(settings, query=query, pages=pages, descending=descending))

    favourites = FavouritesController(FavouritesStore.from_path(settings.favourites_path))
    for movie_id in favourite_ids:
        match = next((movie for movie in state.movies if movie.id == movie_id), None)
        if match is None:
            typer.secho(f"Movie {movie_id} is not in the loaded results.", fg=typer.colors.YELLOW)
        elif favourites.add(match):
            typer.secho(f"Added {match.title} to favourites.", fg=typer.colors.GREEN)

    if json_output:
        typer.echo(json.dumps([movie.model_dump() for movie in state.movies], indent=2))
    else:
        _render_feed(state, favourites=favourites, image_base_url=settings.image_base_url)

    if state.is_error:
        typer.secho("Failed to load movies from the catalog.", fg=typer.colors.RED)
        raise typer.Exit(code=1)


async def _run_feed(settings: Settings, *, query: str, pages: int, descending: bool) -> FeedState:
    assert settings.tmdb_api_key is not None

    async with CatalogClient(
        settings.tmdb_api_key,
        base_url=settings.tmdb_base_url,
        timeout=settings.request_timeout,
        include_adult=settings.include_adult,
    ) as client:
        feed = FeedController(
            client,
            query=query,
            sort_descending=descending,
            resort_accumulated=settings.resort_accumulated,
        )
        await feed.load()
        while feed.state.current_page < pages and not feed.state.is_error:
            if not await feed.load_next_page():
                break
        return feed.state


def _safe_load_settings(load_even_if_missing: bool = False) -> SettingsLoadResult | None:
    try:
        return load_settings()
    except SettingsError as exc:
        if load_even_if_missing:
            typer.secho(
                f"Warning: configuration incomplete – {exc}",
                fg=typer.colors.YELLOW,
            )
            return SettingsLoadResult(settings=Settings(), source_path=None)
        typer.secho(str(exc), fg=typer.colors.RED)
        return None


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for debug mode."""
    logging.basicConfig(
        format="%(message)s",
        level=level,
        force=True,
    )


def _render_feed(
    state: FeedState,
    *,
    favourites: FavouritesController,
    image_base_url: str,
) -> None:
    if not state.movies:
        if not state.is_error:
            typer.secho("No movies found.", fg=typer.colors.YELLOW)
        return

    order = "highest rated first" if state.sort_descending else "lowest rated first"
    header = f"Search: {state.query}" if state.query.strip() else "Popular movies"
    typer.secho(f"{header} ({order})", fg=typer.colors.CYAN)
    for idx, movie in enumerate(state.movies, start=1):
        _render_movie(
            idx,
            movie,
            favourite=favourites.contains(movie),
            image_base_url=image_base_url,
        )
    typer.echo(f"Page {state.current_page} of {state.total_pages or '?'}")


def _render_movie(idx: int, movie: Movie, *, favourite: bool, image_base_url: str) -> None:
    marker = "★" if favourite else " "
    released = movie.release_date or "TBA"
    typer.echo(
        f"{idx}. {marker} {movie.title} ({released})"
        f" • rating={movie.vote_average:.1f} • id={movie.id}"
    )
    poster = movie.poster_url(image_base_url)
    typer.echo(f"   poster: {poster or '<none>'}")


__all__ = ["app", "main"]
