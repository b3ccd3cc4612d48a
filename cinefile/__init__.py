"""CineFile - ranked movie list catalog with TMDB-backed imports."""

__version__ = "0.1.0"
