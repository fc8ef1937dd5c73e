from __future__ import annotations

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ParseError
from .models import DEFAULT_FOLDER, Recipe, SavedRecipe


T = TypeVar("T", bound=BaseModel)


class RecipeSchema(BaseModel):
    """Shape every recipe must have, whether it comes from the model or a client."""

    model_config = ConfigDict(strict=True)

    name: str
    description: str
    difficulty: str
    cookingTime: str
    mainIngredientsUsed: List[str] = Field(default_factory=list)
    missingIngredients: List[str] = Field(default_factory=list)
    steps: List[str] = Field(min_length=1)
    failurePoints: List[str] = Field(default_factory=list)

    def to_recipe(self) -> Recipe:
        return Recipe(**self.model_dump())


class SavedRecipeSchema(RecipeSchema):
    id: str
    savedAt: int
    userNotes: Optional[str] = None
    folder: str = DEFAULT_FOLDER

    def to_saved_recipe(self) -> SavedRecipe:
        data = self.model_dump()
        data["folder"] = data["folder"] or DEFAULT_FOLDER
        return SavedRecipe(**data)


class FavoriteEdit(BaseModel):
    """Fields a user may change on a saved recipe. Unset fields keep their value."""

    model_config = ConfigDict(strict=True)

    name: str = ""
    description: str = ""
    cookingTime: str = ""
    folder: str = DEFAULT_FOLDER
    userNotes: Optional[str] = None
    steps: List[str] = Field(default_factory=list, min_length=1)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def _location(path: str, loc: tuple) -> str:
    return path + "".join(f"[{part}]" if isinstance(part, int) else f".{part}" for part in loc)


def validate(schema: Type[T], data: Any, path: str, raw_text: str = "") -> T:
    """Validate ``data`` against ``schema``, reporting failures as :class:`ParseError`.

    The message names the offending field path, e.g. ``recipes[1].steps``.
    """

    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(f"{_location(path, tuple(err['loc']))}: {err['msg']}" for err in exc.errors())
        raise ParseError(f"数据格式不正确 ({problems})", raw_text, exc) from exc


__all__ = ["FavoriteEdit", "RecipeSchema", "SavedRecipeSchema", "validate"]
