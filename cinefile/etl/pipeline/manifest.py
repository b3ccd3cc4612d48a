"""Startup catalog manifest.

The manifest declares the system lists shipped with the application,
the CSV resource backing each one and whether it is imported at startup.
"""

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from cinefile.catalog.schemas import MovieList
from cinefile.etl.extractors.csv.parser import CSVFormat, NotFoundError

logger = logging.getLogger(__name__)


class ManifestError(ValueError):
    """Raised when a manifest file is not valid JSON or misses fields."""

    pass


class ManifestEntry(BaseModel):
    """One list declared in the manifest.

    Attributes:
        id: List identifier.
        name: Display name.
        description: Short description.
        source: Provenance label.
        year: Publication year.
        type: CSV layout of the resource.
        resource: CSV file, relative to the manifest, extension optional.
        preload: Whether the list is imported at startup.
        source_url: Optional link to the published list.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    source: str = ""
    year: int = 0
    type: CSVFormat
    resource: str = Field(min_length=1)
    preload: bool = True
    source_url: str | None = None

    def to_movie_list(self) -> MovieList:
        """Build the system MovieList for this entry."""
        return MovieList(
            id=self.id,
            name=self.name,
            description=self.description,
            source=self.source,
            year=self.year,
            source_url=self.source_url,
        )


class CatalogManifest(BaseModel):
    """Parsed startup manifest.

    Attributes:
        lists: Declared lists in manifest order.
        base_dir: Directory resources are resolved against.
    """

    lists: list[ManifestEntry] = Field(default_factory=list)
    base_dir: Path = Field(default_factory=Path.cwd, exclude=True)

    @model_validator(mode="after")
    def check_unique_ids(self) -> "CatalogManifest":
        """Reject manifests declaring the same list id twice."""
        seen: set[str] = set()
        for entry in self.lists:
            if entry.id in seen:
                raise ValueError(f"Duplicate list id in manifest: {entry.id}")
            seen.add(entry.id)
        return self

    @property
    def preload_entries(self) -> list[ManifestEntry]:
        """Entries imported automatically at startup."""
        return [entry for entry in self.lists if entry.preload]

    def get(self, list_id: str) -> ManifestEntry:
        """Return the entry for a list id.

        Raises:
            KeyError: If the manifest does not declare the list.
        """
        for entry in self.lists:
            if entry.id == list_id:
                return entry
        raise KeyError(list_id)

    def resource_path(self, entry: ManifestEntry) -> Path:
        """Absolute path of an entry's CSV resource."""
        return self.base_dir / entry.resource

    def movie_lists(self) -> list[MovieList]:
        """System lists for every declared entry."""
        return [entry.to_movie_list() for entry in self.lists]


def load_manifest(path: Path | str) -> CatalogManifest:
    """Read and validate a manifest file.

    Args:
        path: Manifest JSON file.

    Returns:
        Parsed manifest with resources resolved next to it.

    Raises:
        NotFoundError: If the file does not exist.
        ManifestError: If the content is invalid.
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"Manifest not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ManifestError(f"Manifest is not valid JSON: {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Manifest root must be an object: {path}")

    try:
        manifest = CatalogManifest.model_validate({**data, "base_dir": path.parent})
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest {path}: {e}") from e

    logger.info("Manifest loaded: %d lists (%d preload)", len(manifest.lists), len(manifest.preload_entries))
    return manifest
