"""Durable key-value store backed by one JSON file per key."""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonStore:
    """Persist small JSON documents under a state directory.

    Each key maps to `<prefix>_<key>.json`. Writes go to a temporary file
    that replaces the target, so a crash never leaves half a document.
    """

    def __init__(
        self,
        state_dir: Path | None = None,
        prefix: str = "cinefile",
    ) -> None:
        """Initialize the store.

        Args:
            state_dir: Directory for state files. Defaults to settings.paths.state_dir.
            prefix: Prefix for state filenames.
        """
        if state_dir is None:
            from cinefile.settings import settings

            state_dir = settings.paths.state_dir
        self._state_dir = state_dir
        self._prefix = prefix
        self._state_dir.mkdir(parents=True, exist_ok=True)

    @property
    def state_dir(self) -> Path:
        """Return state directory path."""
        return self._state_dir

    def save(self, key: str, value: Any) -> Path:
        """Save a JSON-serializable value under a key.

        Args:
            key: Store key.
            value: Value to persist.

        Returns:
            Path to the written file.
        """
        path = self._build_path(key)
        document = {"saved_at": datetime.now().isoformat(), "value": value}

        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, ensure_ascii=False, default=str)
        os.replace(tmp_path, path)

        logger.debug("State saved: %s", path.name)
        return path

    def load(self, key: str) -> Any | None:
        """Load the value stored under a key.

        A corrupted file is logged and treated as missing.

        Args:
            key: Store key.

        Returns:
            Stored value or None if absent.
        """
        path = self._build_path(key)
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Corrupted state file %s: %s", path.name, e)
            return None

        if not isinstance(document, dict) or "value" not in document:
            logger.warning("Unexpected state layout in %s", path.name)
            return None
        return document["value"]

    def delete(self, key: str) -> bool:
        """Delete the value stored under a key.

        Args:
            key: Store key.

        Returns:
            True if deleted, False if not found.
        """
        path = self._build_path(key)
        if not path.exists():
            return False
        path.unlink()
        logger.debug("State deleted: %s", path.name)
        return True

    def exists(self, key: str) -> bool:
        """Check if a key has a stored value."""
        return self._build_path(key).exists()

    def _build_path(self, key: str) -> Path:
        """Build the file path for a key.

        Args:
            key: Store key.

        Returns:
            Full path to the state file.
        """
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._state_dir / f"{self._prefix}_{safe_key}.json"
