"""Catalog state container.

Owns the in-memory catalog, the known lists and the persisted view
preferences. Renderers read through synchronous getters and react to
changes through subscribed callbacks. Every mutation is expected to run
on a single owner (the event loop thread); there is no locking.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any

from cinefile.catalog import projector
from cinefile.catalog.merger import CatalogMerger, MergeStats
from cinefile.catalog.schemas import (
    ALL_LISTS_ID,
    Movie,
    MovieList,
    SortOption,
    ViewPreferences,
)
from cinefile.storage.preferences import InMemoryPreferencesStore, PreferencesPort

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================


class CatalogError(Exception):
    """Base exception for catalog mutations."""

    pass


class UnknownMovieError(CatalogError, KeyError):
    """Raised when a movie id is not in the catalog."""

    pass


class UnknownListError(CatalogError, KeyError):
    """Raised when a list id is not known."""

    pass


class ListNotEditableError(CatalogError):
    """Raised when trying to edit a system-provided list."""

    pass


# =============================================================================
# EVENTS
# =============================================================================


class CatalogEvent(StrEnum):
    """Notifications emitted to subscribers."""

    CATALOG_CHANGED = "catalog_changed"
    LISTS_CHANGED = "lists_changed"
    PREFERENCES_CHANGED = "preferences_changed"
    IMPORT_PROGRESS = "import_progress"
    IMPORT_STATE = "import_state"


@dataclass(frozen=True)
class Notification:
    """A change notification.

    Attributes:
        event: What changed.
        payload: Event details (ids, progress values).
    """

    event: CatalogEvent
    payload: dict[str, Any] = field(default_factory=dict)


Observer = Callable[[Notification], None]


# =============================================================================
# STORE
# =============================================================================


class CatalogStore:
    """In-memory catalog with a user mutation API.

    Attributes:
        merger: Merge engine applied to imported batches.
    """

    def __init__(
        self,
        persistence: PreferencesPort | None = None,
        movies: list[Movie] | None = None,
    ) -> None:
        """Initialize the store and load persisted preferences.

        Args:
            persistence: Preferences port. Defaults to an in-memory one.
            movies: Initial catalog entries.
        """
        self._persistence: PreferencesPort = persistence or InMemoryPreferencesStore()
        self._movies: list[Movie] = list(movies or [])
        self._system_lists: list[MovieList] = []
        self._observers: list[Observer] = []
        self.merger = CatalogMerger()

        self._preferences = self._persistence.load_preferences()
        self.reconcile_user_lists()

    # -------------------------------------------------------------------------
    # Getters
    # -------------------------------------------------------------------------

    @property
    def movies(self) -> list[Movie]:
        """Catalog entries in canonical order (do not mutate directly)."""
        return self._movies

    @property
    def preferences(self) -> ViewPreferences:
        """Current view preferences."""
        return self._preferences

    @property
    def lists(self) -> list[MovieList]:
        """System lists followed by user-created lists."""
        return [*self._system_lists, *self._preferences.user_lists]

    @property
    def user_lists(self) -> list[MovieList]:
        """User-created lists."""
        return list(self._preferences.user_lists)

    def get_movie(self, movie_id: str) -> Movie:
        """Return a movie by id.

        Raises:
            UnknownMovieError: If the id is not in the catalog.
        """
        for movie in self._movies:
            if movie.id == movie_id:
                return movie
        raise UnknownMovieError(movie_id)

    def get_list(self, list_id: str) -> MovieList:
        """Return a list by id.

        Raises:
            UnknownListError: If the id is not known.
        """
        for movie_list in self.lists:
            if movie_list.id == list_id:
                return movie_list
        raise UnknownListError(list_id)

    @property
    def selected_list(self) -> MovieList | None:
        """Currently selected list, None for the "all lists" sentinel."""
        if self._preferences.selected_list_id == ALL_LISTS_ID:
            return None
        try:
            return self.get_list(self._preferences.selected_list_id)
        except UnknownListError:
            return None

    def visible_movies(self) -> list[Movie]:
        """Movies of the selected list, ordered by the current sort state."""
        return projector.project(
            self._movies,
            self._preferences.selected_list_id,
            self._preferences.sort_option,
            self._preferences.sort_ascending,
        )

    def completion(self, list_id: str | None = None) -> tuple[int, int]:
        """Watched and total counts for a list (default: the selected one)."""
        return projector.completion_stats(
            self._movies, list_id or self._preferences.selected_list_id
        )

    def watchlist(self) -> list[Movie]:
        """Movies on the watchlist."""
        return projector.watchlist(self._movies)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register a change observer.

        Args:
            observer: Callback receiving notifications.

        Returns:
            Function removing the observer.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def notify(self, event: CatalogEvent, **payload: Any) -> None:
        """Send a notification to every observer.

        A failing observer is logged and does not prevent delivery to others.

        Args:
            event: Event type.
            **payload: Event details.
        """
        notification = Notification(event=event, payload=payload)
        for observer in list(self._observers):
            try:
                observer(notification)
            except Exception:
                logger.exception("Observer failed on %s", event)

    # -------------------------------------------------------------------------
    # Import Integration
    # -------------------------------------------------------------------------

    def register_system_lists(self, lists: list[MovieList]) -> None:
        """Register system lists, replacing any with the same id.

        Args:
            lists: System lists from the startup manifest.
        """
        known = {movie_list.id: movie_list for movie_list in self._system_lists}
        for movie_list in lists:
            known[movie_list.id] = movie_list.model_copy(update={"is_user_created": None})
        self._system_lists = list(known.values())
        self.notify(CatalogEvent.LISTS_CHANGED)

    def apply_batch(self, batch: list[Movie], list_id: str) -> MergeStats:
        """Merge an imported batch into the catalog.

        Args:
            batch: Resolved movies tagged with their rank in the list.
            list_id: List the batch was imported for.

        Returns:
            Merge statistics.
        """
        stats = self.merger.merge(self._movies, batch, list_id)
        if stats.folded:
            self._replace_user_list_ids(stats.folded)
        self.notify(CatalogEvent.CATALOG_CHANGED, list_id=list_id)
        return stats

    # -------------------------------------------------------------------------
    # User Mutations: movies
    # -------------------------------------------------------------------------

    def toggle_watched(self, movie_id: str, on: date | None = None) -> Movie:
        """Flip the watched flag, recording or clearing the watched date.

        Args:
            movie_id: Movie to update.
            on: Date to record when marking watched (default today).

        Returns:
            Updated movie.
        """
        movie = self.get_movie(movie_id)
        movie.watched = not movie.watched
        movie.watched_date = (on or date.today()) if movie.watched else None
        self.notify(CatalogEvent.CATALOG_CHANGED, movie_id=movie_id)
        return movie

    def toggle_watchlist(self, movie_id: str) -> Movie:
        """Add the movie to the watchlist, or remove it."""
        movie = self.get_movie(movie_id)
        movie.in_watchlist = not movie.in_watchlist
        self.notify(CatalogEvent.CATALOG_CHANGED, movie_id=movie_id)
        return movie

    def set_user_rating(self, movie_id: str, rating: float | None) -> Movie:
        """Set or clear the user's rating (0-10).

        Raises:
            pydantic.ValidationError: If the rating is out of range.
        """
        movie = self.get_movie(movie_id)
        movie.user_rating = rating
        self.notify(CatalogEvent.CATALOG_CHANGED, movie_id=movie_id)
        return movie

    def add_movie(self, movie: Movie) -> Movie:
        """Add a movie found by interactive search, merging duplicates.

        Args:
            movie: Movie to add.

        Returns:
            The catalog entry now representing the movie.
        """
        stats = self.merger.merge(self._movies, [movie], list_id="")
        if stats.folded:
            self._replace_user_list_ids(stats.folded)
        self.notify(CatalogEvent.CATALOG_CHANGED, movie_id=movie.id)
        for entry in self._movies:
            if entry.id == movie.id or entry.identity_key == movie.identity_key:
                return entry
        return self.get_movie(movie.id)

    # -------------------------------------------------------------------------
    # User Mutations: preferences
    # -------------------------------------------------------------------------

    def set_sort_option(self, option: SortOption) -> None:
        """Change the sort option and persist it."""
        self._preferences.sort_option = SortOption(option)
        self._save_preferences()

    def set_sort_ascending(self, ascending: bool) -> None:
        """Choose baseline (True) or reversed (False) order and persist it."""
        self._preferences.sort_ascending = ascending
        self._save_preferences()

    def toggle_sort_direction(self) -> None:
        """Flip between baseline and reversed order."""
        self.set_sort_ascending(not self._preferences.sort_ascending)

    def select_list(self, list_id: str) -> None:
        """Select the list shown by the list view.

        Raises:
            UnknownListError: If the id is neither known nor the sentinel.
        """
        if list_id != ALL_LISTS_ID:
            self.get_list(list_id)
        self._preferences.selected_list_id = list_id
        self._save_preferences()

    def set_show_adult_content(self, enabled: bool) -> None:
        """Include or exclude adult titles from searches."""
        self._preferences.show_adult_content = enabled
        self._save_preferences()

    def reset_preferences(self) -> None:
        """Restore default view preferences, keeping user lists."""
        user_lists = self._preferences.user_lists
        self._preferences = ViewPreferences(user_lists=user_lists)
        self._save_preferences()

    # -------------------------------------------------------------------------
    # User Mutations: lists
    # -------------------------------------------------------------------------

    def create_user_list(self, name: str, description: str = "") -> MovieList:
        """Create an empty user list.

        Args:
            name: Display name.
            description: Optional description.

        Returns:
            The created list.
        """
        movie_list = MovieList(
            id=f"user-{uuid.uuid4().hex[:12]}",
            name=name.strip() or "Untitled List",
            description=description,
            source="My Lists",
            year=date.today().year,
            is_user_created=True,
        )
        self._preferences.user_lists.append(movie_list)
        self._save_lists()
        logger.info("Created user list '%s' (%s)", movie_list.name, movie_list.id)
        return movie_list

    def rename_user_list(self, list_id: str, name: str, description: str | None = None) -> MovieList:
        """Rename a user list and optionally change its description."""
        movie_list = self._get_user_list(list_id)
        movie_list.name = name.strip() or movie_list.name
        if description is not None:
            movie_list.description = description
        self._save_lists()
        return movie_list

    def delete_user_list(self, list_id: str) -> None:
        """Delete a user list.

        The list's ranking entry is removed from every movie. Movies left
        with no list and no user state are dropped from the catalog.

        Args:
            list_id: User list to delete.
        """
        movie_list = self._get_user_list(list_id)
        self._preferences.user_lists.remove(movie_list)

        kept: list[Movie] = []
        for movie in self._movies:
            if list_id in movie.list_rankings:
                movie.list_rankings = {
                    key: rank for key, rank in movie.list_rankings.items() if key != list_id
                }
                if not movie.list_rankings and not movie.has_user_state:
                    continue
            kept.append(movie)
        removed = len(self._movies) - len(kept)
        self._movies[:] = kept

        if self._preferences.selected_list_id == list_id:
            self._preferences.selected_list_id = ALL_LISTS_ID

        self._save_lists()
        self.notify(CatalogEvent.CATALOG_CHANGED, list_id=list_id)
        logger.info("Deleted user list %s (%d movies dropped)", list_id, removed)

    def add_to_user_list(self, list_id: str, movie_id: str) -> None:
        """Append a movie to a user list (no-op if already present)."""
        movie_list = self._get_user_list(list_id)
        self.get_movie(movie_id)
        if movie_id not in movie_list.movie_ids:
            movie_list.movie_ids = [*movie_list.movie_ids, movie_id]
        self._save_lists()

    def remove_from_user_list(self, list_id: str, movie_id: str) -> None:
        """Remove a movie from a user list, renumbering the remaining ones."""
        movie_list = self._get_user_list(list_id)
        movie_list.movie_ids = [mid for mid in movie_list.movie_ids if mid != movie_id]
        for movie in self._movies:
            if movie.id == movie_id and list_id in movie.list_rankings:
                movie.list_rankings = {
                    key: rank for key, rank in movie.list_rankings.items() if key != list_id
                }
        self._save_lists()

    def move_in_user_list(self, list_id: str, movie_id: str, new_index: int) -> None:
        """Move a movie to a new position within a user list.

        Raises:
            UnknownMovieError: If the movie is not in the list.
        """
        movie_list = self._get_user_list(list_id)
        if movie_id not in movie_list.movie_ids:
            raise UnknownMovieError(movie_id)
        ids = [mid for mid in movie_list.movie_ids if mid != movie_id]
        new_index = max(0, min(new_index, len(ids)))
        ids.insert(new_index, movie_id)
        movie_list.movie_ids = ids
        self._save_lists()

    def reconcile_user_lists(self) -> None:
        """Project user list ordering into movie rankings.

        Each movie in a user list gets rank = position + 1 for that list;
        stale ranking entries for user lists are dropped.
        """
        user_ranks: dict[str, dict[str, int]] = {}
        for movie_list in self._preferences.user_lists:
            for position, movie_id in enumerate(movie_list.movie_ids, start=1):
                user_ranks.setdefault(movie_id, {})[movie_list.id] = position

        user_list_ids = {movie_list.id for movie_list in self._preferences.user_lists}
        for movie in self._movies:
            rankings = {
                key: rank
                for key, rank in movie.list_rankings.items()
                if key not in user_list_ids and not key.startswith("user-")
            }
            rankings.update(user_ranks.get(movie.id, {}))
            if rankings != movie.list_rankings:
                movie.list_rankings = rankings

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def save_snapshot(self) -> None:
        """Persist the catalog entries."""
        self._persistence.save_catalog(self._movies)
        logger.info("Catalog snapshot saved (%d movies)", len(self._movies))

    def load_snapshot(self) -> int:
        """Replace the catalog with the persisted snapshot.

        Returns:
            Number of movies loaded.
        """
        self._movies = self._persistence.load_catalog()
        self.reconcile_user_lists()
        self.notify(CatalogEvent.CATALOG_CHANGED)
        return len(self._movies)

    # -------------------------------------------------------------------------
    # Internal Methods
    # -------------------------------------------------------------------------

    def _get_user_list(self, list_id: str) -> MovieList:
        movie_list = self.get_list(list_id)
        if not movie_list.is_editable:
            raise ListNotEditableError(f"List '{list_id}' is not user-created")
        return movie_list

    def _replace_user_list_ids(self, replacements: dict[str, str]) -> None:
        """Point user lists at the entries that absorbed folded duplicates."""
        for movie_list in self._preferences.user_lists:
            ids: list[str] = []
            for movie_id in movie_list.movie_ids:
                movie_id = replacements.get(movie_id, movie_id)
                if movie_id not in ids:
                    ids.append(movie_id)
            movie_list.movie_ids = ids
        self._save_lists()

    def _save_preferences(self) -> None:
        self._persistence.save_preferences(self._preferences)
        self.notify(CatalogEvent.PREFERENCES_CHANGED)

    def _save_lists(self) -> None:
        self.reconcile_user_lists()
        self._persistence.save_preferences(self._preferences)
        self.notify(CatalogEvent.LISTS_CHANGED)
