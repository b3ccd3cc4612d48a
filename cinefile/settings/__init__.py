"""Centralized configuration for CineFile.

Values come from environment variables or a `.env` file. Everything has a
default except the TMDB API key, which only commands that search need.

Usage:
    from cinefile.settings import settings

    settings.tmdb.api_key
    settings.importer.max_concurrency
"""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cinefile.settings.base import ImportSettings, LoggingSettings, PathsSettings
from cinefile.settings.sources import TMDBSettings

__all__ = [
    "Settings",
    "settings",
    "PathsSettings",
    "LoggingSettings",
    "ImportSettings",
    "TMDBSettings",
    "get_masked_settings",
    "print_sources_status",
]

SECRET_FIELDS: tuple[tuple[str, str], ...] = (("tmdb", "api_key"),)
"""(section, field) pairs never shown in clear."""

_MASK = "***MASKED***"


# =============================================================================
# GLOBAL SETTINGS
# =============================================================================


class Settings(BaseSettings):
    """Every configuration section behind one object.

    Access via the singleton: `from cinefile.settings import settings`
    """

    debug: bool = Field(default=False, alias="DEBUG")
    """Force DEBUG on loggers created without an explicit level."""

    paths: PathsSettings = Field(default_factory=PathsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    importer: ImportSettings = Field(default_factory=ImportSettings)
    tmdb: TMDBSettings = Field(default_factory=TMDBSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()


# =============================================================================
# REPORTING
# =============================================================================


def get_masked_settings() -> dict[str, Any]:
    """Dump the settings with secrets replaced by a mask.

    Returns:
        Nested configuration dictionary safe for logs and terminals.
    """
    config = settings.model_dump()
    for section, key in SECRET_FIELDS:
        values = config.get(section, {})
        if values.get(key):
            values[key] = _MASK
    return config


def print_sources_status() -> None:
    """Print whether each external source can be used."""
    sources = [("TMDB API", settings.tmdb.is_configured)]

    print("\n📊 SOURCES STATUS:")
    for name, configured in sources:
        print(f"  {'✅' if configured else '❌'} {name}")
