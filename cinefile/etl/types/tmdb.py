"""TMDB API data types.

TypedDict definitions for the payloads returned by the
search, details and credits endpoints.
"""

from typing_extensions import NotRequired, TypedDict


class TMDBMovieSummary(TypedDict):
    """One result of the /search/movie endpoint."""

    id: int
    title: str
    release_date: NotRequired[str | None]
    overview: NotRequired[str | None]
    poster_path: NotRequired[str | None]
    vote_average: NotRequired[float]


class TMDBSearchResponse(TypedDict):
    """Response of the /search/movie endpoint."""

    page: int
    results: list[TMDBMovieSummary]


class TMDBGenreData(TypedDict):
    """Genre data from TMDB API."""

    id: int
    name: str


class TMDBMovieDetails(TypedDict):
    """Response of the /movie/{id} endpoint (fields used here)."""

    id: int
    runtime: NotRequired[int | None]
    genres: NotRequired[list[TMDBGenreData] | None]


class TMDBCastData(TypedDict):
    """Cast member data from TMDB credits endpoint."""

    name: str


class TMDBCrewData(TypedDict):
    """Crew member data from TMDB credits endpoint."""

    job: str
    name: str


class TMDBCreditsData(TypedDict):
    """Response of the /movie/{id}/credits endpoint."""

    cast: list[TMDBCastData]
    crew: list[TMDBCrewData]
