"""Base configuration settings.

Contains foundational settings for paths, logging, and catalog imports.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# PROJECT ROOT DETECTION
# =============================================================================

_PACKAGE_ROOT = Path(__file__).parent.parent
_PROJECT_ROOT = _PACKAGE_ROOT.parent


def get_project_root() -> Path:
    """Get project root directory."""
    return _PROJECT_ROOT


def get_resources_dir() -> Path:
    """Get the directory holding the bundled manifest and CSV lists."""
    return _PACKAGE_ROOT / "resources"


# =============================================================================
# PATH SETTINGS
# =============================================================================


class PathsSettings(BaseSettings):
    """State and logs paths configuration.

    Attributes:
        state_dir_override: Optional state directory (CINEFILE_STATE_DIR).
    """

    state_dir_override: str | None = Field(default=None, alias="CINEFILE_STATE_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def project_root(self) -> Path:
        """Project root directory."""
        return _PROJECT_ROOT

    @property
    def resources_dir(self) -> Path:
        """Bundled catalog manifest and CSV resources."""
        return get_resources_dir()

    @property
    def state_dir(self) -> Path:
        """Durable key-value store directory (preferences, catalog snapshot)."""
        if self.state_dir_override:
            return Path(self.state_dir_override)
        return _PROJECT_ROOT / "data" / "state"


# =============================================================================
# LOGGING SETTINGS
# =============================================================================


class LoggingSettings(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Log files directory.
    """

    level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="LOG_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid LOG_LEVEL. Valid: {valid_levels}")
        return v_upper


# =============================================================================
# IMPORT SETTINGS
# =============================================================================


class ImportSettings(BaseSettings):
    """Catalog import configuration.

    Attributes:
        max_concurrency: Maximum in-flight row searches per list import.
        keep_unmatched: Synthesize placeholder movies for unmatched rows.
        manifest_path: Startup manifest; defaults to the bundled one.
        progress_log_interval: Rows between progress log lines.
    """

    max_concurrency: int = Field(default=6, ge=1, le=32, alias="IMPORT_MAX_CONCURRENCY")
    keep_unmatched: bool = Field(default=False, alias="IMPORT_KEEP_UNMATCHED")
    manifest_path: str | None = Field(default=None, alias="IMPORT_MANIFEST_PATH")
    progress_log_interval: int = Field(default=10, ge=1, alias="IMPORT_PROGRESS_LOG_INTERVAL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def resolved_manifest_path(self) -> Path:
        """Manifest path, falling back to the bundled manifest."""
        if self.manifest_path:
            return Path(self.manifest_path)
        return get_resources_dir() / "manifest.json"
