from .favourites import FAVOURITES_FILE_NAME, FAVOURITES_KEY, FavouritesStore
from .preferences import PreferencesFile

__all__ = ["FAVOURITES_FILE_NAME", "FAVOURITES_KEY", "FavouritesStore", "PreferencesFile"]
