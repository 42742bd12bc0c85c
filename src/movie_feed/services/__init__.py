from .favourites import FavouritesController
from .feed import FeedController, FeedState, FeedStatus

__all__ = [
    "FavouritesController",
    "FeedController",
    "FeedState",
    "FeedStatus",
]
