"""TMDB API configuration settings.

Metadata search provider used to resolve CSV rows into movies.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_API_KEYS = frozenset({"YOUR_TMDB_API_KEY", "your_api_key_here", "YOUR_API_KEY"})
"""Values shipped in templates that must never reach the API."""


class TMDBSettings(BaseSettings):
    """TMDB API configuration.

    Attributes:
        api_key: TMDB API key (required for any search).
        base_url: TMDB API base URL.
        image_base_url: TMDB image CDN base URL.
        language: Language for API responses.
        request_timeout: Per-request transport timeout in seconds.
    """

    api_key: str = Field(default="", alias="TMDB_API_KEY")
    base_url: str = Field(
        default="https://api.themoviedb.org/3",
        alias="TMDB_BASE_URL",
    )
    image_base_url: str = Field(
        default="https://image.tmdb.org/t/p/w500",
        alias="TMDB_IMAGE_BASE_URL",
    )
    language: str = Field(default="en-US", alias="TMDB_LANGUAGE")
    request_timeout: float = Field(default=15.0, gt=0, alias="TMDB_REQUEST_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_configured(self) -> bool:
        """Check if a usable TMDB API key is configured."""
        key = self.api_key.strip()
        return bool(key) and key not in PLACEHOLDER_API_KEYS

    @field_validator("base_url", "image_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize URLs so paths can be appended directly."""
        return v.rstrip("/")
