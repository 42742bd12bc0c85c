"""Command-line interface for movie-feed."""
