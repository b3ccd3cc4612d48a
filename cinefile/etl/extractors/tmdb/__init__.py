"""TMDB metadata search client and normalizer."""

from cinefile.etl.extractors.tmdb.client import (
    AuthError,
    DecodeError,
    NetworkError,
    TMDBClient,
    TMDBClientError,
)
from cinefile.etl.extractors.tmdb.normalizer import TMDBNormalizer

__all__ = [
    "AuthError",
    "DecodeError",
    "NetworkError",
    "TMDBClient",
    "TMDBClientError",
    "TMDBNormalizer",
]
