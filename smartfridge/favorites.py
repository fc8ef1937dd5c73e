from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .errors import FolderError, ParseError
from .models import DEFAULT_FOLDER, Recipe, SavedRecipe
from .schemas import FavoriteEdit, SavedRecipeSchema, validate
from .storage import (
    STORAGE_KEY_FOLDERS,
    STORAGE_KEY_SAVED_RECIPES,
    KeyValueStore,
    load_json,
)


logger = logging.getLogger(__name__)

DEFAULT_FOLDERS = [DEFAULT_FOLDER, "健康餐", "快手菜", "周末大餐"]

FAILURE_NOTES_HEADER = "⚠️ 避坑指南："

_ID_ALPHABET = string.digits + string.ascii_lowercase


def format_failure_notes(failure_points: List[str]) -> str:
    if not failure_points:
        return ""
    bullets = "\n".join(f"• {point}" for point in failure_points)
    return f"{FAILURE_NOTES_HEADER}\n{bullets}"


def _new_saved_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}{suffix}"


def saved_recipe_from_dict(data: Dict[str, Any]) -> SavedRecipe:
    """Build a :class:`SavedRecipe` from its camelCase JSON form.

    Raises :class:`~smartfridge.errors.ParseError` when any field is missing
    or has the wrong type.
    """

    return validate(SavedRecipeSchema, data, "recipe").to_saved_recipe()


class FavoritesStore:
    """Saved recipes and the folders they are filed under.

    Every saved recipe's folder is either in :meth:`folders` or the default
    folder; this holds after loading and after each mutation.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._folders = self._load_folders()
        self._recipes = self._load_recipes()

        orphaned = [r.id for r in self._recipes if r.folder not in self._folders]
        if orphaned:
            logger.warning("Moving %d saved recipes with unknown folders to %s", len(orphaned), DEFAULT_FOLDER)
            self._recipes = [
                r if r.folder in self._folders else r.with_folder(DEFAULT_FOLDER) for r in self._recipes
            ]
            self._persist_recipes()

    def _load_folders(self) -> List[str]:
        data = load_json(self._store, STORAGE_KEY_FOLDERS)
        if data is None:
            return list(DEFAULT_FOLDERS)
        if not isinstance(data, list) or not all(isinstance(name, str) for name in data):
            logger.error("Discarding stored folders: expected a list of names")
            return list(DEFAULT_FOLDERS)

        folders: List[str] = []
        for name in data:
            if name not in folders:
                folders.append(name)
        if DEFAULT_FOLDER not in folders:
            folders.insert(0, DEFAULT_FOLDER)
        return folders

    def _load_recipes(self) -> List[SavedRecipe]:
        data = load_json(self._store, STORAGE_KEY_SAVED_RECIPES)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.error("Discarding stored saved recipes: expected a list")
            return []
        try:
            return [saved_recipe_from_dict(item) for item in data]
        except ParseError as exc:
            logger.error("Discarding stored saved recipes: %s", exc)
            return []

    def _persist_recipes(self) -> None:
        self._store.set(STORAGE_KEY_SAVED_RECIPES, [r.to_dict() for r in self._recipes])

    def _persist_folders(self) -> None:
        self._store.set(STORAGE_KEY_FOLDERS, list(self._folders))

    # Recipes

    def save(self, recipe: Recipe) -> SavedRecipe:
        fields = recipe.recipe_fields() if isinstance(recipe, SavedRecipe) else recipe.to_dict()
        saved = SavedRecipe(
            **fields,
            id=_new_saved_id(),
            savedAt=int(time.time() * 1000),
            userNotes=format_failure_notes(list(recipe.failurePoints)),
            folder=DEFAULT_FOLDER,
        )
        self._recipes = [saved, *self._recipes]
        self._persist_recipes()
        return saved

    def get(self, recipe_id: str) -> Optional[SavedRecipe]:
        return next((r for r in self._recipes if r.id == recipe_id), None)

    def remove(self, recipe_id: str) -> None:
        remaining = [r for r in self._recipes if r.id != recipe_id]
        if len(remaining) == len(self._recipes):
            return
        self._recipes = remaining
        self._persist_recipes()

    def update(self, updated: SavedRecipe) -> None:
        """Replace the saved recipe with the same id. Unknown ids are ignored."""

        if self.get(updated.id) is None:
            return
        if updated.folder not in self._folders:
            logger.warning("Recipe %s filed under unknown folder %r; using %s", updated.id, updated.folder, DEFAULT_FOLDER)
            updated = updated.with_folder(DEFAULT_FOLDER)

        self._recipes = [updated if r.id == updated.id else r for r in self._recipes]
        self._persist_recipes()

    def edit(self, recipe_id: str, data: Dict[str, Any]) -> Optional[SavedRecipe]:
        """Apply the user-editable fields in ``data`` to a saved recipe.

        Fields absent from ``data`` keep their stored value, as do ``id`` and
        ``savedAt``. Returns the updated recipe, or ``None`` for an unknown id.
        """

        current = self.get(recipe_id)
        if current is None:
            return None
        changes = validate(FavoriteEdit, data, "recipe").changes()
        self.update(replace(current, **changes))
        return self.get(recipe_id)

    def list(self, folder: Optional[str] = None, search_query: Optional[str] = None) -> List[SavedRecipe]:
        query = (search_query or "").strip().lower()

        def matches(recipe: SavedRecipe) -> bool:
            if folder is not None and (recipe.folder or DEFAULT_FOLDER) != folder:
                return False
            if not query:
                return True
            return (
                query in recipe.name.lower()
                or query in recipe.description.lower()
                or query in (recipe.userNotes or "").lower()
            )

        return [r for r in self._recipes if matches(r)]

    # Folders

    def folders(self) -> List[str]:
        return list(self._folders)

    def deletable_folders(self) -> List[str]:
        return [name for name in self._folders if name != DEFAULT_FOLDER]

    def create_folder(self, name: str) -> None:
        if not name.strip():
            raise FolderError("收藏夹名称不能为空")
        if name in self._folders:
            return
        self._folders = [*self._folders, name]
        self._persist_folders()

    def delete_folder(self, name: str) -> None:
        """Remove ``name`` and move its recipes to the default folder."""

        if name == DEFAULT_FOLDER:
            raise FolderError(f"“{DEFAULT_FOLDER}”不能删除")
        if name not in self._folders:
            return

        folders = [f for f in self._folders if f != name]
        recipes = [r.with_folder(DEFAULT_FOLDER) if r.folder == name else r for r in self._recipes]

        self._folders, self._recipes = folders, recipes
        self._persist_folders()
        self._persist_recipes()


__all__ = ["DEFAULT_FOLDERS", "FavoritesStore", "format_failure_notes", "saved_recipe_from_dict"]
