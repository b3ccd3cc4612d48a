"""Persistence ports for view preferences and catalog snapshots."""

import logging
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from cinefile.catalog.schemas import Movie, ViewPreferences
from cinefile.storage.json_store import JsonStore

logger = logging.getLogger(__name__)

PREFERENCES_KEY = "preferences"
CATALOG_KEY = "catalog"

_MOVIES_ADAPTER = TypeAdapter(list[Movie])


class PreferencesPort(Protocol):
    """Narrow load/save interface the catalog store persists through."""

    def load_preferences(self) -> ViewPreferences: ...

    def save_preferences(self, preferences: ViewPreferences) -> None: ...

    def load_catalog(self) -> list[Movie]: ...

    def save_catalog(self, movies: list[Movie]) -> None: ...


class JsonPreferencesStore:
    """Preferences port implemented on top of a JsonStore."""

    def __init__(self, store: JsonStore | None = None) -> None:
        """Initialize with an optional backing store.

        Args:
            store: Backing key-value store. Defaults to a JsonStore in the state dir.
        """
        self._store = store or JsonStore()

    def load_preferences(self) -> ViewPreferences:
        """Load preferences, falling back to defaults when missing or invalid."""
        raw = self._store.load(PREFERENCES_KEY)
        if raw is None:
            return ViewPreferences()
        try:
            return ViewPreferences.model_validate(raw)
        except ValidationError as e:
            logger.warning("Invalid stored preferences, using defaults: %s", e)
            return ViewPreferences()

    def save_preferences(self, preferences: ViewPreferences) -> None:
        """Persist preferences, including the user-created lists."""
        self._store.save(PREFERENCES_KEY, preferences.model_dump(mode="json"))

    def load_catalog(self) -> list[Movie]:
        """Load the catalog snapshot (empty when missing or invalid)."""
        raw = self._store.load(CATALOG_KEY)
        if raw is None:
            return []
        try:
            return _MOVIES_ADAPTER.validate_python(raw)
        except ValidationError as e:
            logger.warning("Invalid catalog snapshot ignored: %s", e)
            return []

    def save_catalog(self, movies: list[Movie]) -> None:
        """Persist a catalog snapshot."""
        self._store.save(CATALOG_KEY, _MOVIES_ADAPTER.dump_python(movies, mode="json"))


class InMemoryPreferencesStore:
    """Preferences port keeping everything in memory."""

    def __init__(self, preferences: ViewPreferences | None = None) -> None:
        self.preferences = preferences or ViewPreferences()
        self.movies: list[Movie] = []
        self.save_count = 0

    def load_preferences(self) -> ViewPreferences:
        return self.preferences.model_copy(deep=True)

    def save_preferences(self, preferences: ViewPreferences) -> None:
        self.preferences = preferences.model_copy(deep=True)
        self.save_count += 1

    def load_catalog(self) -> list[Movie]:
        return [movie.model_copy(deep=True) for movie in self.movies]

    def save_catalog(self, movies: list[Movie]) -> None:
        self.movies = [movie.model_copy(deep=True) for movie in movies]
