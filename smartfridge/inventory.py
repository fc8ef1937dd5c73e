from __future__ import annotations

import logging
import time
from typing import List

from .models import Category, Ingredient
from .storage import STORAGE_KEY_INGREDIENTS, KeyValueStore, load_json


logger = logging.getLogger(__name__)


class InventoryStore:
    """Ingredients the user has on hand, written through on every change."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._ingredients: List[Ingredient] = self._load()

    def _load(self) -> List[Ingredient]:
        data = load_json(self._store, STORAGE_KEY_INGREDIENTS)
        if data is None:
            return []
        try:
            return [Ingredient.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Discarding stored ingredients: %s", exc)
            return []

    def _persist(self) -> None:
        self._store.set(STORAGE_KEY_INGREDIENTS, [item.to_dict() for item in self._ingredients])

    def _new_id(self) -> str:
        taken = {item.id for item in self._ingredients}
        stamp = time.time_ns()
        while str(stamp) in taken:
            stamp += 1
        return str(stamp)

    def add(self, name: str, category: Category) -> Ingredient:
        name = name.strip()
        if not name:
            raise ValueError("Ingredient name must not be empty.")

        ingredient = Ingredient(id=self._new_id(), name=name, category=Category.parse(category))
        self._ingredients = [*self._ingredients, ingredient]
        self._persist()
        return ingredient

    def remove(self, ingredient_id: str) -> None:
        remaining = [item for item in self._ingredients if item.id != ingredient_id]
        if len(remaining) == len(self._ingredients):
            return
        self._ingredients = remaining
        self._persist()

    def list(self) -> List[Ingredient]:
        return list(self._ingredients)

    def list_by_category(self, category: Category) -> List[Ingredient]:
        category = Category.parse(category)
        return [item for item in self._ingredients if item.category is category]

    def __len__(self) -> int:
        return len(self._ingredients)


__all__ = ["InventoryStore"]
