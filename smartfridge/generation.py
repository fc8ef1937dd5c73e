from __future__ import annotations

import logging
import threading
from typing import List, Optional

from .inventory import InventoryStore
from .models import Recipe, UserPreferences
from .provider import ProviderClient
from .settings import SettingsStore


logger = logging.getLogger(__name__)


class GenerationService:
    """Runs one generation at a time and keeps the latest candidates in memory."""

    def __init__(
        self,
        provider: ProviderClient,
        inventory: InventoryStore,
        settings: SettingsStore,
    ) -> None:
        self._provider = provider
        self._inventory = inventory
        self._settings = settings
        self._busy = threading.Lock()
        self.latest: List[Recipe] = []

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def generate(self, preferences: UserPreferences) -> Optional[List[Recipe]]:
        """Generate recipes, or return ``None`` if a generation is already running."""

        if not self._busy.acquire(blocking=False):
            logger.info("Generation already in progress; ignoring request")
            return None
        try:
            recipes = self._provider.generate(self._inventory.list(), preferences, self._settings.get())
        finally:
            self._busy.release()

        self.latest = recipes
        logger.info("Generated %d recipes", len(recipes))
        return recipes


__all__ = ["GenerationService"]
