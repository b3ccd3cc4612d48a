"""Movie catalog: data model, merge engine, projections and state container.

Usage:
    from cinefile.catalog import CatalogStore, Movie, SortOption
"""

from cinefile.catalog.schemas import (
    ALL_LISTS_ID,
    MISSING_RANK,
    ImportRow,
    Movie,
    MovieList,
    SortOption,
    ViewPreferences,
)
from cinefile.catalog.merger import CatalogIndex, CatalogMerger, MergeStats, merge_batch
from cinefile.catalog.projector import (
    completion_progress,
    completion_stats,
    filter_by_title,
    project,
    watchlist,
)
from cinefile.catalog.store import (
    CatalogError,
    CatalogEvent,
    CatalogStore,
    ListNotEditableError,
    Notification,
    UnknownListError,
    UnknownMovieError,
)

__all__ = [
    "ALL_LISTS_ID",
    "MISSING_RANK",
    "CatalogError",
    "CatalogEvent",
    "CatalogIndex",
    "CatalogMerger",
    "CatalogStore",
    "ImportRow",
    "ListNotEditableError",
    "MergeStats",
    "Movie",
    "MovieList",
    "Notification",
    "SortOption",
    "UnknownListError",
    "UnknownMovieError",
    "ViewPreferences",
    "completion_progress",
    "completion_stats",
    "filter_by_title",
    "merge_batch",
    "project",
    "watchlist",
]
