"""Tests for configuration and settings functionality."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from movie_feed.config.settings import (
    DEFAULT_FAVOURITES_PATH,
    Settings,
    SettingsError,
    SettingsLoadResult,
    _collect_env_overrides,
    _determine_config_path,
    _flatten_toml,
    load_settings,
)


class TestSettings:
    """Test Settings model functionality."""

    def test_settings_default_values(self):
        """Test Settings model with default values."""
        settings = Settings()

        assert settings.tmdb_api_key is None
        assert settings.tmdb_base_url == "https://api.themoviedb.org/3/"
        assert settings.image_base_url == "https://image.tmdb.org/t/p/w342"
        assert settings.include_adult is False
        assert settings.request_timeout == 20.0
        assert settings.sort_descending is True
        assert settings.resort_accumulated is False
        assert settings.favourites_path == DEFAULT_FAVOURITES_PATH
        assert settings.favourites_path.name == "favourites_prefs.json"

    def test_settings_with_aliases(self):
        """Test Settings model using environment variable aliases."""
        settings = Settings(
            TMDB_API_KEY="tmdb-key",
            TMDB_TIMEOUT=5,
            MOVIE_FEED_SORT_DESCENDING=False,
        )

        assert settings.tmdb_api_key == "tmdb-key"
        assert settings.request_timeout == 5.0
        assert settings.sort_descending is False

    def test_settings_strip_whitespace_and_ignore_extra(self):
        """Test string values are stripped and unknown fields ignored."""
        settings = Settings(tmdb_api_key="  padded  ", unknown_field="ignored")

        assert settings.tmdb_api_key == "padded"
        assert not hasattr(settings, "unknown_field")

    def test_settings_rejects_non_positive_timeout(self):
        """Test the request timeout must be positive."""
        with pytest.raises(ValueError):
            Settings(request_timeout=0)

    def test_require_tmdb_success(self):
        """Test require_tmdb with an API key configured."""
        Settings(tmdb_api_key="tmdb-key").require_tmdb()

    def test_require_tmdb_missing_key(self):
        """Test require_tmdb without an API key."""
        with pytest.raises(SettingsError, match="TMDB_API_KEY"):
            Settings().require_tmdb()


class TestDetermineConfigPath:
    """Test config path resolution."""

    def test_determine_config_path_explicit(self):
        explicit_path = Path("/explicit/config.toml")
        assert _determine_config_path(explicit_path) == explicit_path

    def test_determine_config_path_from_env(self):
        with patch.dict(os.environ, {"MOVIE_FEED_CONFIG": "/env/config.toml"}):
            assert _determine_config_path(None) == Path("/env/config.toml").resolve()

    def test_determine_config_path_default_exists(self):
        with patch.dict(os.environ, {}, clear=True):
            with patch("pathlib.Path.exists", return_value=True):
                result = _determine_config_path(None)

        assert result is not None
        assert result.parts[-2:] == ("movie-feed", "config.toml")

    def test_determine_config_path_default_not_exists(self):
        with patch.dict(os.environ, {}, clear=True):
            with patch("pathlib.Path.exists", return_value=False):
                assert _determine_config_path(None) is None


class TestFlattenToml:
    """Test TOML flattening."""

    def test_flatten_toml_empty(self):
        assert _flatten_toml({}) == {}

    def test_flatten_toml_all_sections(self):
        toml_data = {
            "tmdb": {
                "api_key": "toml-key",
                "base_url": "http://localhost:9000/3",
                "image_base_url": "http://localhost:9000/img",
                "include_adult": True,
                "timeout": 7,
            },
            "feed": {
                "sort_descending": False,
                "resort_accumulated": True,
            },
            "favourites": {
                "path": "/data/favourites.json",
            },
            "ignored_section": {
                "some_field": "ignored",
            },
        }

        result = _flatten_toml(toml_data)

        assert result == {
            "tmdb_api_key": "toml-key",
            "tmdb_base_url": "http://localhost:9000/3",
            "image_base_url": "http://localhost:9000/img",
            "include_adult": True,
            "request_timeout": 7.0,
            "sort_descending": False,
            "resort_accumulated": True,
            "favourites_path": Path("/data/favourites.json"),
        }


class TestCollectEnvOverrides:
    """Test environment variable collection."""

    def test_collect_env_overrides_empty(self):
        with patch.dict(os.environ, {}, clear=True):
            assert _collect_env_overrides() == {}

    def test_collect_env_overrides_typed_values(self):
        env_vars = {
            "TMDB_API_KEY": "env-key",
            "TMDB_TIMEOUT": "12.5",
            "TMDB_INCLUDE_ADULT": "yes",
            "MOVIE_FEED_FAVOURITES_PATH": "/tmp/favs.json",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            result = _collect_env_overrides()

        assert result == {
            "tmdb_api_key": "env-key",
            "request_timeout": 12.5,
            "include_adult": True,
            "favourites_path": Path("/tmp/favs.json"),
        }

    @pytest.mark.parametrize(
        ("env_value", "expected"),
        [("true", True), ("1", True), ("false", False), ("0", False), ("No", False)],
    )
    def test_collect_env_overrides_boolean_values(self, env_value, expected):
        with patch.dict(os.environ, {"MOVIE_FEED_SORT_DESCENDING": env_value}, clear=True):
            assert _collect_env_overrides() == {"sort_descending": expected}


class TestLoadSettings:
    """Test settings loading functionality."""

    def test_load_settings_from_env_only(self):
        with patch.dict(os.environ, {"TMDB_API_KEY": "env-key"}, clear=True):
            with patch("movie_feed.config.settings._determine_config_path", return_value=None):
                result = load_settings(load_env=False)

        assert isinstance(result, SettingsLoadResult)
        assert result.settings.tmdb_api_key == "env-key"
        assert result.source_path is None

    def test_load_settings_env_overrides_toml(self, tmp_path):
        config_path = tmp_path / "config.toml"
        config_path.write_text(
            '[tmdb]\napi_key = "toml-key"\ninclude_adult = true\n\n[feed]\nsort_descending = false\n'
        )

        with patch.dict(os.environ, {"TMDB_API_KEY": "env-key"}, clear=True):
            result = load_settings(config_path=config_path, load_env=False)

        assert result.settings.tmdb_api_key == "env-key"
        assert result.settings.include_adult is True
        assert result.settings.sort_descending is False
        assert result.source_path == config_path

    def test_load_settings_with_dotenv(self):
        with patch("movie_feed.config.settings.load_dotenv") as mock_load_dotenv:
            with patch("movie_feed.config.settings._determine_config_path", return_value=None):
                with patch.dict(os.environ, {}, clear=True):
                    load_settings(load_env=True)
                    mock_load_dotenv.assert_called_once()

    def test_load_settings_without_dotenv(self):
        with patch("movie_feed.config.settings.load_dotenv") as mock_load_dotenv:
            with patch("movie_feed.config.settings._determine_config_path", return_value=None):
                with patch.dict(os.environ, {}, clear=True):
                    load_settings(load_env=False)
                    mock_load_dotenv.assert_not_called()

    def test_load_settings_malformed_toml(self, tmp_path):
        config_path = tmp_path / "config.toml"
        config_path.write_text("[tmdb\napi_key = 'missing bracket'\n")

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(SettingsError):
                load_settings(config_path=config_path, load_env=False)

    def test_load_settings_invalid_env_number(self):
        with patch.dict(os.environ, {"TMDB_TIMEOUT": "soon"}, clear=True):
            with patch("movie_feed.config.settings._determine_config_path", return_value=None):
                with pytest.raises(SettingsError):
                    load_settings(load_env=False)
