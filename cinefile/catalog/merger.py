"""Catalog merge engine.

Merges a batch of resolved movies into the in-memory catalog using the
movie id as primary key and case-insensitive title + year as fallback,
without ever overwriting user-owned state.
"""

import logging
from dataclasses import dataclass, field

from cinefile.catalog.schemas import Movie

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

PROVIDER_FIELDS = (
    "title",
    "year",
    "director",
    "poster_url",
    "overview",
    "genres",
    "runtime_minutes",
    "cast",
    "critic_rating",
)
"""Fields owned by the metadata provider, refreshed on an id match."""

BACKFILL_FIELDS = (
    "director",
    "poster_url",
    "overview",
    "runtime_minutes",
    "genres",
    "cast",
)
"""Fields filled on a title + year match, only where currently empty."""


def is_absent(value: object) -> bool:
    """Check whether a provider field carries no information.

    Empty strings, zero numbers, empty lists and None all count as absent.

    Args:
        value: Field value.

    Returns:
        True if the value is absent.
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, int | float):
        return value == 0
    if isinstance(value, list | dict):
        return len(value) == 0
    return False


# =============================================================================
# MERGE STATISTICS
# =============================================================================


@dataclass
class MergeStats:
    """Statistics for a merge operation.

    Attributes:
        list_id: List the batch was imported for.
        total_input: Movies in the incoming batch.
        merged_by_id: Batch entries merged into an entry with the same id.
        merged_by_title_year: Batch entries merged by title and year.
        added: Batch entries appended as new catalog entries.
        folded: Ids of entries absorbed by a refreshed entry, mapped to the kept id.
    """

    list_id: str = ""
    total_input: int = 0
    merged_by_id: int = 0
    merged_by_title_year: int = 0
    added: int = 0
    folded: dict[str, str] = field(default_factory=dict)

    @property
    def total_merged(self) -> int:
        """Calculate entries merged into existing ones."""
        return self.merged_by_id + self.merged_by_title_year

    def log_summary(self) -> None:
        """Log merge statistics summary."""
        logger.info(
            "Merge '%s': %d movies (id=%d, title+year=%d, added=%d)",
            self.list_id,
            self.total_input,
            self.merged_by_id,
            self.merged_by_title_year,
            self.added,
        )


# =============================================================================
# CATALOG INDEX
# =============================================================================


@dataclass
class CatalogIndex:
    """Index of catalog entries by id and by title + year.

    Attributes:
        by_id: Mapping of movie id to catalog entry.
        by_title_year: Mapping of (lower title, year) to catalog entry.
    """

    by_id: dict[str, Movie] = field(default_factory=dict)
    by_title_year: dict[tuple[str, int], Movie] = field(default_factory=dict)

    @classmethod
    def build(cls, catalog: list[Movie]) -> "CatalogIndex":
        """Index an existing catalog.

        Args:
            catalog: Catalog entries.

        Returns:
            Populated index.
        """
        index = cls()
        for movie in catalog:
            index.add(movie)
        return index

    def add(self, movie: Movie) -> None:
        """Register a catalog entry.

        The first entry registered for a title + year keeps the slot.

        Args:
            movie: Entry to register.
        """
        self.by_id[movie.id] = movie
        self.by_title_year.setdefault(movie.identity_key, movie)

    def find_by_id(self, movie_id: str) -> Movie | None:
        """Find an entry by id."""
        return self.by_id.get(movie_id)

    def find_by_title_year(self, movie: Movie) -> Movie | None:
        """Find an entry with the same case-insensitive title and year."""
        return self.by_title_year.get(movie.identity_key)

    def remove(self, movie: Movie) -> None:
        """Drop an entry from both indices."""
        if self.by_id.get(movie.id) is movie:
            del self.by_id[movie.id]
        if self.by_title_year.get(movie.identity_key) is movie:
            del self.by_title_year[movie.identity_key]


# =============================================================================
# MERGER
# =============================================================================


class CatalogMerger:
    """Merges imported batches into the catalog in place.

    Uses two-stage matching:
    1. Exact id match: provider fields refreshed, user fields kept
    2. Case-insensitive title + year: existing entry is canonical, backfill only

    Attributes:
        stats: Statistics of the last merge.
    """

    def __init__(self) -> None:
        """Initialize merger with empty statistics."""
        self.stats = MergeStats()

    # =========================================================================
    # Public API
    # =========================================================================

    def merge(self, catalog: list[Movie], batch: list[Movie], list_id: str) -> MergeStats:
        """Merge a batch into the catalog.

        Args:
            catalog: Catalog entries, mutated in place.
            batch: Incoming movies tagged with their list ranks.
            list_id: List the batch was imported for.

        Returns:
            Statistics for this merge.
        """
        self.stats = MergeStats(list_id=list_id, total_input=len(batch))
        index = CatalogIndex.build(catalog)

        for incoming in batch:
            self._merge_one(catalog, index, incoming)

        self.stats.log_summary()
        return self.stats

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _merge_one(self, catalog: list[Movie], index: CatalogIndex, incoming: Movie) -> None:
        """Merge a single incoming movie.

        Args:
            catalog: Catalog entries.
            index: Index kept in sync with the catalog.
            incoming: Incoming movie.
        """
        existing = index.find_by_id(incoming.id)
        if existing is not None:
            old_key = existing.identity_key
            self._merge_same_id(existing, incoming)
            self.stats.merged_by_id += 1
            if existing.identity_key != old_key:
                self._reindex_identity(catalog, index, existing, old_key)
            return

        existing = index.find_by_title_year(incoming)
        if existing is not None:
            self._merge_same_title_year(existing, incoming)
            self.stats.merged_by_title_year += 1
            logger.debug("Merged '%s' (%s) into %s", incoming.title, incoming.id, existing.id)
            return

        added = incoming.model_copy(deep=True)
        catalog.append(added)
        index.add(added)
        self.stats.added += 1

    @staticmethod
    def _merge_same_id(existing: Movie, incoming: Movie) -> None:
        """Refresh provider fields and union rankings, keeping user state.

        Args:
            existing: Catalog entry, updated in place.
            incoming: Incoming movie with the same id.
        """
        for name in PROVIDER_FIELDS:
            value = getattr(incoming, name)
            if not is_absent(value):
                setattr(existing, name, _copy_value(value))
        existing.list_rankings = {**existing.list_rankings, **incoming.list_rankings}

    @staticmethod
    def _merge_same_title_year(existing: Movie, incoming: Movie) -> None:
        """Union rankings and backfill empty fields of the canonical entry.

        Args:
            existing: Canonical catalog entry, updated in place.
            incoming: Incoming movie with the same title and year.
        """
        for name in BACKFILL_FIELDS:
            if is_absent(getattr(existing, name)):
                value = getattr(incoming, name)
                if not is_absent(value):
                    setattr(existing, name, _copy_value(value))
        existing.list_rankings = {**existing.list_rankings, **incoming.list_rankings}

    def _reindex_identity(
        self,
        catalog: list[Movie],
        index: CatalogIndex,
        refreshed: Movie,
        old_key: tuple[str, int],
    ) -> None:
        """Keep one entry per title + year after an id refresh renamed an entry.

        When another entry already holds the new title + year, it is folded
        into the refreshed one and removed from the catalog.

        Args:
            catalog: Catalog entries.
            index: Index kept in sync with the catalog.
            refreshed: Entry whose title or year just changed.
            old_key: Its title + year before the refresh.
        """
        if index.by_title_year.get(old_key) is refreshed:
            del index.by_title_year[old_key]

        other = index.by_title_year.get(refreshed.identity_key)
        if other is not None and other is not refreshed:
            self._fold(refreshed, other)
            index.remove(other)
            catalog[:] = [movie for movie in catalog if movie is not other]
            self.stats.folded[other.id] = refreshed.id
            logger.debug("Folded '%s' (%s) into %s", other.title, other.id, refreshed.id)

        index.by_title_year[refreshed.identity_key] = refreshed

    @staticmethod
    def _fold(kept: Movie, absorbed: Movie) -> None:
        """Absorb a duplicate: rankings, empty provider fields and user state.

        Args:
            kept: Entry that stays in the catalog, updated in place.
            absorbed: Entry about to be removed.
        """
        for name in BACKFILL_FIELDS:
            if is_absent(getattr(kept, name)):
                value = getattr(absorbed, name)
                if not is_absent(value):
                    setattr(kept, name, _copy_value(value))
        kept.list_rankings = {**absorbed.list_rankings, **kept.list_rankings}

        if absorbed.watched and not kept.watched:
            kept.watched = True
            kept.watched_date = absorbed.watched_date
        kept.in_watchlist = kept.in_watchlist or absorbed.in_watchlist
        if kept.user_rating is None:
            kept.user_rating = absorbed.user_rating


def _copy_value(value: object) -> object:
    """Copy list values so catalog entries never share containers."""
    if isinstance(value, list):
        return list(value)
    return value


def merge_batch(catalog: list[Movie], batch: list[Movie], list_id: str) -> MergeStats:
    """Merge a batch into the catalog with a fresh merger.

    Args:
        catalog: Catalog entries, mutated in place.
        batch: Incoming movies.
        list_id: List the batch belongs to.

    Returns:
        Merge statistics.
    """
    return CatalogMerger().merge(catalog, batch, list_id)
