"""Async TMDB API client.

Handles HTTP communication with The Movie Database API:
credential checks, request building, error mapping and
payload validation. No request is ever retried.
"""

import asyncio
import logging
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from cinefile.catalog.schemas import Movie
from cinefile.etl.extractors.tmdb.normalizer import TMDBNormalizer
from cinefile.etl.types import (
    TMDBCreditsData,
    TMDBMovieDetails,
    TMDBMovieSummary,
    TMDBSearchResponse,
)
from cinefile.settings import TMDBSettings, settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SEARCH_ADAPTER = TypeAdapter(TMDBSearchResponse)
_DETAILS_ADAPTER = TypeAdapter(TMDBMovieDetails)
_CREDITS_ADAPTER = TypeAdapter(TMDBCreditsData)


# =============================================================================
# ERRORS
# =============================================================================


class TMDBClientError(Exception):
    """Base exception for TMDB client errors."""

    pass


class AuthError(TMDBClientError):
    """Raised when no valid API credential is configured."""

    pass


class NetworkError(TMDBClientError):
    """Raised on transport failure or a non-2xx response.

    Attributes:
        status_code: HTTP status, None for transport failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(TMDBClientError):
    """Raised when a response body is malformed."""

    pass


# =============================================================================
# CLIENT
# =============================================================================


class TMDBClient:
    """Async HTTP client for the TMDB search, details and credits endpoints.

    Use as an async context manager:

        async with TMDBClient() as client:
            movies = await client.search("Heat", year=1995)

    Attributes:
        normalizer: Maps payloads to Movie candidates.
    """

    def __init__(
        self,
        tmdb_settings: TMDBSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize TMDB client.

        Args:
            tmdb_settings: TMDB configuration (defaults to global settings).
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._settings = tmdb_settings or settings.tmdb
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.normalizer = TMDBNormalizer(self._settings.image_base_url)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "TMDBClient":
        """Enter context and create the HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.request_timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Exit context and close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        """Check whether a usable API key is configured."""
        return self._settings.is_configured

    def ensure_credentials(self) -> str:
        """Return the API key or fail closed.

        Raises:
            AuthError: If the key is missing or a placeholder.
        """
        if not self._settings.is_configured:
            raise AuthError("Missing TMDB API key. Set TMDB_API_KEY in the environment or .env.")
        return self._settings.api_key.strip()

    # -------------------------------------------------------------------------
    # HTTP Methods
    # -------------------------------------------------------------------------

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Execute a GET request and decode its JSON body.

        Args:
            endpoint: API endpoint path.
            params: Optional query parameters.

        Returns:
            Decoded JSON body.

        Raises:
            AuthError: If no valid API key is configured.
            NetworkError: On transport errors and non-2xx responses.
            DecodeError: When the body is not JSON.
        """
        api_key = self.ensure_credentials()
        if self._client is None:
            raise TMDBClientError("Client not initialized. Use async context manager.")

        request_params = dict(params or {})
        request_params["api_key"] = api_key

        try:
            response = await self._client.get(endpoint, params=request_params)
        except httpx.TimeoutException as e:
            logger.warning("Request timeout: %s", endpoint)
            raise NetworkError(f"Timeout: {endpoint}") from e
        except httpx.HTTPError as e:
            logger.warning("Transport error on %s: %s", endpoint, e)
            raise NetworkError(f"Transport error: {endpoint}: {e}") from e

        return self._handle_response(response, endpoint)

    @staticmethod
    def _handle_response(response: httpx.Response, endpoint: str) -> Any:
        """Check status and extract JSON.

        Args:
            response: HTTP response object.
            endpoint: API endpoint (for messages).

        Returns:
            Decoded JSON body.
        """
        if not response.is_success:
            message = f"TMDB API error {response.status_code}: {endpoint}"
            logger.warning(message)
            raise NetworkError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {endpoint}") from e

    @staticmethod
    def _validate(adapter: TypeAdapter[T], payload: Any, endpoint: str) -> T:
        """Validate a decoded payload against its expected shape.

        Raises:
            DecodeError: When the payload does not match.
        """
        try:
            return adapter.validate_python(payload)
        except ValidationError as e:
            raise DecodeError(f"Unexpected payload from {endpoint}: {e.error_count()} errors") from e

    # -------------------------------------------------------------------------
    # API Endpoints
    # -------------------------------------------------------------------------

    async def search_summaries(
        self,
        query: str,
        year: int | None = None,
        include_adult: bool = False,
    ) -> list[TMDBMovieSummary]:
        """Search movies by title and return raw summaries.

        Args:
            query: Title to search for.
            year: Optional release year filter.
            include_adult: Whether to include adult titles.

        Returns:
            Search result summaries (first page).
        """
        params: dict[str, Any] = {
            "query": query,
            "include_adult": "true" if include_adult else "false",
            "language": self._settings.language,
            "page": 1,
        }
        if year:
            params["year"] = year

        payload = await self._get("/search/movie", params)
        return self._validate(_SEARCH_ADAPTER, payload, "/search/movie")["results"]

    async def get_movie_details(self, movie_id: int | str) -> TMDBMovieDetails:
        """Get runtime and genres for a movie.

        Args:
            movie_id: TMDB movie ID.

        Returns:
            Movie details response.
        """
        endpoint = f"/movie/{movie_id}"
        payload = await self._get(endpoint)
        return self._validate(_DETAILS_ADAPTER, payload, endpoint)

    async def get_movie_credits(self, movie_id: int | str) -> TMDBCreditsData:
        """Get cast and crew for a movie.

        Args:
            movie_id: TMDB movie ID.

        Returns:
            Credits response with cast and crew.
        """
        endpoint = f"/movie/{movie_id}/credits"
        payload = await self._get(endpoint)
        return self._validate(_CREDITS_ADAPTER, payload, endpoint)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def search(
        self,
        query: str,
        year: int | None = None,
        include_details: bool = True,
        include_adult: bool = False,
    ) -> list[Movie]:
        """Resolve a title (and optional year) into movie candidates.

        Without details only the search request is sent. With details,
        every candidate is enriched concurrently; a candidate whose
        enrichment fails keeps its summary-only mapping.

        Args:
            query: Title to search for.
            year: Optional release year filter.
            include_details: Fetch details and credits per candidate.
            include_adult: Whether to include adult titles.

        Returns:
            Candidates in search result order.

        Raises:
            AuthError: If no valid API key is configured.
            NetworkError: If the search request fails.
            DecodeError: If the search response is malformed.
        """
        self.ensure_credentials()
        summaries = await self.search_summaries(query, year=year, include_adult=include_adult)

        if not include_details:
            return [self.normalizer.to_movie(summary) for summary in summaries]

        return list(await asyncio.gather(*(self._enrich(summary) for summary in summaries)))

    async def _enrich(self, summary: TMDBMovieSummary) -> Movie:
        """Fetch details and credits for one candidate, best effort.

        Args:
            summary: Search result entry.

        Returns:
            Enriched candidate, or the summary-only mapping on failure.
        """
        details, credits = await asyncio.gather(
            self.get_movie_details(summary["id"]),
            self.get_movie_credits(summary["id"]),
            return_exceptions=True,
        )
        for result in (details, credits):
            if isinstance(result, TMDBClientError):
                logger.debug("Enrichment failed for %s: %s", summary["id"], result)
                return self.normalizer.to_movie(summary)
            if isinstance(result, BaseException):
                raise result
        return self.normalizer.to_movie(summary, details, credits)
