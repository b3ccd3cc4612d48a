"""Import data types package.

Usage:
    from cinefile.etl.types import TMDBMovieSummary, TMDBCreditsData
"""

from cinefile.etl.types.tmdb import (
    TMDBCastData,
    TMDBCreditsData,
    TMDBCrewData,
    TMDBGenreData,
    TMDBMovieDetails,
    TMDBMovieSummary,
    TMDBSearchResponse,
)

__all__ = [
    "TMDBCastData",
    "TMDBCreditsData",
    "TMDBCrewData",
    "TMDBGenreData",
    "TMDBMovieDetails",
    "TMDBMovieSummary",
    "TMDBSearchResponse",
]
