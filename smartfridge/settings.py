from __future__ import annotations

import logging
from dataclasses import fields

from .errors import ConfigurationError
from .models import AppSettings
from .storage import STORAGE_KEY_APP_SETTINGS, KeyValueStore, load_json


logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = AppSettings()

_FIELD_NAMES = tuple(f.name for f in fields(AppSettings))


class SettingsStore:
    """Holds the single persisted :class:`AppSettings` record."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._settings = self._load()

    def _load(self) -> AppSettings:
        data = load_json(self._store, STORAGE_KEY_APP_SETTINGS)
        if data is None:
            return DEFAULT_SETTINGS
        if not isinstance(data, dict):
            logger.error("Ignoring stored settings of type %s", type(data).__name__)
            return DEFAULT_SETTINGS

        # Stored fields win; anything missing keeps its default.
        merged = {
            name: str(data[name]) for name in _FIELD_NAMES if isinstance(data.get(name), str)
        }
        return AppSettings(**{**DEFAULT_SETTINGS.to_dict(), **merged})

    def get(self) -> AppSettings:
        return self._settings

    def save(self, settings: AppSettings) -> AppSettings:
        if not settings.is_complete():
            raise ConfigurationError("请填写完整信息 (API 地址、密钥和模型)")

        self._settings = settings
        self._store.set(STORAGE_KEY_APP_SETTINGS, settings.to_dict())
        logger.info("Saved provider settings for model %s", settings.model)
        return settings


__all__ = ["DEFAULT_SETTINGS", "SettingsStore"]
