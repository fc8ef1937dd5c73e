from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol


logger = logging.getLogger(__name__)

STORAGE_KEY_INGREDIENTS = "smart_fridge_ingredients"
STORAGE_KEY_APP_SETTINGS = "smart_fridge_app_settings"
STORAGE_KEY_SAVED_RECIPES = "smart_fridge_saved_recipes"
STORAGE_KEY_FOLDERS = "smart_fridge_folders"


class KeyValueStore(Protocol):
    """Protocol describing the persistence required by the stores.

    Values are JSON blobs. Implementations hand back the raw serialized text
    so that a corrupt entry can be detected and discarded by the caller.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the serialized value for ``key`` or ``None`` if unset."""

    def set(self, key: str, value: Any) -> None:
        """Serialize ``value`` as JSON and store it under ``key``."""


def load_json(store: KeyValueStore, key: str) -> Any:
    """Return the decoded value stored under ``key``.

    ``None`` is returned both for a missing key and for a value that fails to
    decode; the latter is logged and otherwise ignored.
    """

    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        logger.error("Failed to parse stored value for %s: %s", key, exc)
        return None


__all__ = [
    "KeyValueStore",
    "STORAGE_KEY_APP_SETTINGS",
    "STORAGE_KEY_FOLDERS",
    "STORAGE_KEY_INGREDIENTS",
    "STORAGE_KEY_SAVED_RECIPES",
    "load_json",
]
