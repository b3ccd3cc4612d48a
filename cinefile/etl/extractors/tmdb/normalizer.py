"""TMDB data normalizer.

Transforms raw TMDB search, details and credits payloads
into catalog Movie records.
"""

import logging

from cinefile.catalog.schemas import MAX_CAST, Movie
from cinefile.etl.types import TMDBCreditsData, TMDBMovieDetails, TMDBMovieSummary

logger = logging.getLogger(__name__)


class TMDBNormalizer:
    """Maps TMDB payloads to Movie candidates.

    Attributes:
        image_base_url: Base URL joined with poster paths.
    """

    DIRECTOR_JOB = "Director"

    def __init__(self, image_base_url: str) -> None:
        """Initialize normalizer.

        Args:
            image_base_url: Image CDN base (e.g. https://image.tmdb.org/t/p/w500).
        """
        self.image_base_url = image_base_url.rstrip("/")

    # -------------------------------------------------------------------------
    # Movie Normalization
    # -------------------------------------------------------------------------

    def to_movie(
        self,
        summary: TMDBMovieSummary,
        details: TMDBMovieDetails | None = None,
        credits: TMDBCreditsData | None = None,
    ) -> Movie:
        """Build a candidate from a search summary and optional enrichment.

        Args:
            summary: Search result entry.
            details: Optional details payload (runtime, genres).
            credits: Optional credits payload (director, cast).

        Returns:
            Candidate movie with empty user state.
        """
        return Movie(
            id=str(summary["id"]),
            title=(summary.get("title") or "").strip(),
            year=self.parse_year(summary.get("release_date")),
            director=self.extract_director(credits),
            poster_url=self.build_poster_url(summary.get("poster_path")),
            overview=(summary.get("overview") or "").strip(),
            critic_rating=self._clamp_rating(summary.get("vote_average")),
            genres=self.extract_genres(details),
            runtime_minutes=self.extract_runtime(details),
            cast=self.extract_cast(credits),
        )

    # -------------------------------------------------------------------------
    # Field Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def parse_year(release_date: str | None) -> int:
        """Extract the year from a YYYY-MM-DD release date.

        Args:
            release_date: Release date string.

        Returns:
            Year, or 0 when absent or malformed.
        """
        if not release_date:
            return 0
        prefix = release_date.strip()[:4]
        if len(prefix) != 4 or not prefix.isdigit():
            return 0
        return int(prefix)

    def build_poster_url(self, poster_path: str | None) -> str:
        """Join the image base with a relative poster path."""
        if not poster_path:
            return ""
        return f"{self.image_base_url}/{poster_path.lstrip('/')}"

    @classmethod
    def extract_director(cls, credits: TMDBCreditsData | None) -> str:
        """Return the first crew member credited as Director."""
        if not credits:
            return ""
        for member in credits.get("crew") or []:
            if member.get("job") == cls.DIRECTOR_JOB:
                return member.get("name") or ""
        return ""

    @staticmethod
    def extract_cast(credits: TMDBCreditsData | None) -> list[str]:
        """Return the top billed cast names."""
        if not credits:
            return []
        names = [member.get("name") or "" for member in credits.get("cast") or []]
        return [name for name in names if name][:MAX_CAST]

    @staticmethod
    def extract_genres(details: TMDBMovieDetails | None) -> list[str]:
        """Return genre names in provider order."""
        if not details:
            return []
        return [genre["name"] for genre in details.get("genres") or [] if genre.get("name")]

    @staticmethod
    def extract_runtime(details: TMDBMovieDetails | None) -> int:
        """Return runtime in minutes, 0 when unknown."""
        if not details:
            return 0
        runtime = details.get("runtime")
        if not isinstance(runtime, int) or runtime < 0:
            return 0
        return runtime

    @staticmethod
    def _clamp_rating(value: object) -> float:
        """Coerce vote_average into the 0-10 range."""
        if not isinstance(value, int | float):
            return 0.0
        return min(max(float(value), 0.0), 10.0)
