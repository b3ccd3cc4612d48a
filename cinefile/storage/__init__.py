"""Durable storage: JSON key-value store and preferences port."""

from cinefile.storage.json_store import JsonStore
from cinefile.storage.preferences import (
    CATALOG_KEY,
    PREFERENCES_KEY,
    InMemoryPreferencesStore,
    JsonPreferencesStore,
    PreferencesPort,
)

__all__ = [
    "CATALOG_KEY",
    "PREFERENCES_KEY",
    "InMemoryPreferencesStore",
    "JsonPreferencesStore",
    "JsonStore",
    "PreferencesPort",
]
