from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional


DEFAULT_FOLDER = "默认清单"

CUISINE_STYLES = ["随机惊喜", "中式家常", "川湘麻辣", "粤式清淡", "日韩料理", "西式简餐", "东南亚风味"]

TASTE_PREFERENCES = ["无特殊偏好", "清淡", "香辣", "酸甜", "咸鲜", "蒜香", "低脂/健康"]


class Category(str, Enum):
    """Storage location of an ingredient. Declaration order is display order."""

    REFRIGERATED = "冷藏"
    FROZEN = "冷冻"
    ROOM_TEMP = "常温"
    STAPLE = "主食"
    CONDIMENT = "调料"

    @classmethod
    def parse(cls, value: str) -> "Category":
        """Accept either the member name (``FROZEN``) or its value (``冷冻``)."""

        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown category: {value!r}") from None


@dataclass(frozen=True)
class Ingredient:
    """An item the user keeps in the fridge or pantry."""

    id: str
    name: str
    category: Category

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "category": self.category.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ingredient":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            category=Category.parse(data["category"]),
        )


@dataclass
class Recipe:
    """A recipe suggested by the model. Lives in memory until it is saved."""

    name: str
    description: str
    difficulty: str
    cookingTime: str
    mainIngredientsUsed: List[str] = field(default_factory=list)
    missingIngredients: List[str] = field(default_factory=list)
    steps: List[str] = field(default_factory=list)
    failurePoints: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SavedRecipe(Recipe):
    """A recipe promoted into favorites."""

    id: str = ""
    savedAt: int = 0
    userNotes: Optional[str] = None
    folder: str = DEFAULT_FOLDER

    def recipe_fields(self) -> Dict[str, Any]:
        data = self.to_dict()
        for key in ("id", "savedAt", "userNotes", "folder"):
            data.pop(key)
        return data

    def with_folder(self, folder: str) -> "SavedRecipe":
        return replace(self, folder=folder)


@dataclass(frozen=True)
class UserPreferences:
    """Per-request generation preferences. Never persisted."""

    cuisine: str = CUISINE_STYLES[0]
    taste: str = TASTE_PREFERENCES[0]
    additionalNotes: Optional[str] = None
    mustUseIngredientIds: FrozenSet[str] = frozenset()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        notes = data.get("additionalNotes")
        must_use = data.get("mustUseIngredientIds")
        if must_use is None:
            must_use = []
        if not isinstance(must_use, list):
            raise ValueError("mustUseIngredientIds 必须是食材 id 列表")
        return cls(
            cuisine=data.get("cuisine") or CUISINE_STYLES[0],
            taste=data.get("taste") or TASTE_PREFERENCES[0],
            additionalNotes=notes.strip() if isinstance(notes, str) and notes.strip() else None,
            mustUseIngredientIds=frozenset(str(i) for i in must_use),
        )


@dataclass(frozen=True)
class AppSettings:
    """Connection settings for the text generation provider."""

    apiUrl: str = "https://generativelanguage.googleapis.com"
    apiKey: str = ""
    model: str = "gemini-2.0-flash-exp"

    def is_complete(self) -> bool:
        return all(value.strip() for value in (self.apiUrl, self.apiKey, self.model))

    def masked(self) -> Dict[str, Any]:
        key = self.apiKey
        if len(key) > 8:
            shown = f"{key[:4]}...{key[-4:]}"
        else:
            shown = "*" * len(key)
        return {"apiUrl": self.apiUrl, "apiKey": shown, "model": self.model, "configured": bool(key)}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ModelOption:
    name: str
    displayName: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "AppSettings",
    "CUISINE_STYLES",
    "Category",
    "DEFAULT_FOLDER",
    "Ingredient",
    "ModelOption",
    "Recipe",
    "SavedRecipe",
    "TASTE_PREFERENCES",
    "UserPreferences",
]
