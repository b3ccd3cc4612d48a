"""Data source settings."""

from cinefile.settings.sources.tmdb import PLACEHOLDER_API_KEYS, TMDBSettings

__all__ = ["PLACEHOLDER_API_KEYS", "TMDBSettings"]
