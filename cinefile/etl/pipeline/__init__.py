"""Import pipeline package.

Public API:
    - ImportOrchestrator: list imports, startup preload, interactive search
    - load_manifest: read the startup manifest
"""

from cinefile.etl.pipeline.job import (
    ImportInProgressError,
    ImportJob,
    ImportState,
    PreloadReport,
    SearchOutcome,
)
from cinefile.etl.pipeline.manifest import (
    CatalogManifest,
    ManifestEntry,
    ManifestError,
    load_manifest,
)
from cinefile.etl.pipeline.orchestrator import ImportOrchestrator

__all__ = [
    "CatalogManifest",
    "ImportInProgressError",
    "ImportJob",
    "ImportOrchestrator",
    "ImportState",
    "ManifestEntry",
    "ManifestError",
    "PreloadReport",
    "SearchOutcome",
    "load_manifest",
]
