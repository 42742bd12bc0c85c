from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from movie_feed.clients.tmdb import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from movie_feed.models import IMAGE_BASE_URL
from movie_feed.storage import FAVOURITES_FILE_NAME

CONFIG_PATH_ENV = "MOVIE_FEED_CONFIG"
DEFAULT_FAVOURITES_PATH = Path.home() / ".local" / "share" / "movie-feed" / FAVOURITES_FILE_NAME


class Settings(BaseModel):
    """Application configuration resolved from env vars and optional TOML files."""

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(default=DEFAULT_BASE_URL, alias="TMDB_BASE_URL")
    image_base_url: str = Field(default=IMAGE_BASE_URL, alias="TMDB_IMAGE_BASE_URL")
    include_adult: bool = Field(default=False, alias="TMDB_INCLUDE_ADULT")
    request_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, alias="TMDB_TIMEOUT")

    sort_descending: bool = Field(default=True, alias="MOVIE_FEED_SORT_DESCENDING")
    resort_accumulated: bool = Field(default=False, alias="MOVIE_FEED_RESORT_ACCUMULATED")

    favourites_path: Path = Field(
        default=DEFAULT_FAVOURITES_PATH,
        alias="MOVIE_FEED_FAVOURITES_PATH",
    )

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    def require_tmdb(self) -> None:
        """Ensure catalog credentials are available."""
        if not self.tmdb_api_key:
            raise SettingsError(
                "Missing TMDB_API_KEY. Configure environment or TOML file.",
            )


class SettingsError(RuntimeError):
    """Raised when configuration cannot be resolved."""


@dataclass(frozen=True)
class SettingsLoadResult:
    settings: Settings
    source_path: Path | None


def load_settings(config_path: Path | None = None, *, load_env: bool = True) -> SettingsLoadResult:
    """Load settings from .env files, environment variables, and optional TOML configuration."""

    if load_env:
        load_dotenv()

    resolved_path = _determine_config_path(config_path)
    config_data: dict[str, Any] = {}

    if resolved_path and resolved_path.exists():
        try:
            with resolved_path.open("rb") as handle:
                toml_payload = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise SettingsError(f"Invalid TOML in {resolved_path}: {exc}") from exc
        config_data = _flatten_toml(toml_payload)

    try:
        env_data = _collect_env_overrides()
    except ValueError as exc:
        raise SettingsError(f"Invalid environment override: {exc}") from exc
    merged = {**config_data, **env_data}

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:  # pragma: no cover - surfaced via CLI messaging
        raise SettingsError(str(exc)) from exc

    return SettingsLoadResult(settings=settings, source_path=resolved_path)


def _determine_config_path(config_path: Path | None) -> Path | None:
    if config_path:
        return config_path

    env_override = os.getenv(CONFIG_PATH_ENV)
    if env_override:
        return Path(env_override).expanduser().resolve()

    default_path = Path.home() / ".config" / "movie-feed" / "config.toml"
    return default_path if default_path.exists() else None


def _flatten_toml(payload: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}

    tmdb_cfg = payload.get("tmdb", {})
    if "api_key" in tmdb_cfg:
        result["tmdb_api_key"] = tmdb_cfg.get("api_key")
    if "base_url" in tmdb_cfg:
        result["tmdb_base_url"] = tmdb_cfg.get("base_url")
    if "image_base_url" in tmdb_cfg:
        result["image_base_url"] = tmdb_cfg.get("image_base_url")
    if "include_adult" in tmdb_cfg:
        result["include_adult"] = bool(tmdb_cfg.get("include_adult"))
    if "timeout" in tmdb_cfg:
        result["request_timeout"] = float(tmdb_cfg.get("timeout"))

    feed_cfg = payload.get("feed", {})
    if "sort_descending" in feed_cfg:
        result["sort_descending"] = bool(feed_cfg.get("sort_descending"))
    if "resort_accumulated" in feed_cfg:
        result["resort_accumulated"] = bool(feed_cfg.get("resort_accumulated"))

    favourites_cfg = payload.get("favourites", {})
    if "path" in favourites_cfg:
        result["favourites_path"] = Path(str(favourites_cfg.get("path"))).expanduser()

    return result


def _collect_env_overrides() -> dict[str, Any]:
    mapping: dict[str, str] = {
        "TMDB_API_KEY": "tmdb_api_key",
        "TMDB_BASE_URL": "tmdb_base_url",
        "TMDB_IMAGE_BASE_URL": "image_base_url",
        "TMDB_INCLUDE_ADULT": "include_adult",
        "TMDB_TIMEOUT": "request_timeout",
        "MOVIE_FEED_SORT_DESCENDING": "sort_descending",
        "MOVIE_FEED_RESORT_ACCUMULATED": "resort_accumulated",
        "MOVIE_FEED_FAVOURITES_PATH": "favourites_path",
    }

    result: dict[str, Any] = {}
    for env_name, field in mapping.items():
        if env_name not in os.environ:
            continue
        value = os.environ[env_name]
        if field == "request_timeout":
            result[field] = float(value)
        elif field in {"include_adult", "sort_descending", "resort_accumulated"}:
            result[field] = value.lower() not in {"false", "0", "no"}
        elif field == "favourites_path":
            result[field] = Path(value).expanduser()
        else:
            result[field] = value
    return result


__all__ = ["Settings", "SettingsError", "SettingsLoadResult", "load_settings"]
