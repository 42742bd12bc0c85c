from .movie import IMAGE_BASE_URL, Movie, MoviePage, sort_movies

__all__ = ["IMAGE_BASE_URL", "Movie", "MoviePage", "sort_movies"]
