from __future__ import annotations

import json
import logging
import re
from typing import Any, List

from .errors import ParseError
from .models import Recipe
from .schemas import RecipeSchema, validate


logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r"^```[\w-]*\s*")
_CLOSING_FENCE = re.compile(r"\s*```$")


def strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = _OPENING_FENCE.sub("", text, count=1)
        text = _CLOSING_FENCE.sub("", text, count=1)
    return text


def extract_array_text(text: str) -> str:
    """Cut ``text`` down to the span between the first ``[`` and the last ``]``."""

    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def validate_recipe(data: Any, path: str, raw_text: str = "") -> Recipe:
    """Check one decoded recipe object and build a :class:`Recipe` from it."""

    return validate(RecipeSchema, data, path, raw_text).to_recipe()


def parse_recipes(raw_text: str) -> List[Recipe]:
    """Turn free-form model output into a list of recipes.

    Code fences and any prose around the outermost JSON array are dropped
    before decoding. Every element is then validated; the list may be empty.
    """

    text = extract_array_text(strip_code_fence(raw_text))

    try:
        decoded = json.loads(text)
    except ValueError as exc:
        logger.error("Model output is not valid JSON (%s): %s", exc, raw_text)
        raise ParseError(f"无法解析模型返回的 JSON: {exc}", raw_text, exc) from exc

    if not isinstance(decoded, list):
        logger.error("Model output is not a JSON array: %s", raw_text)
        raise ParseError("模型返回的内容不是食谱数组", raw_text)

    try:
        return [validate_recipe(item, f"recipes[{index}]", raw_text) for index, item in enumerate(decoded)]
    except ParseError as exc:
        logger.error("Model output failed validation (%s): %s", exc.message, raw_text)
        raise


__all__ = ["extract_array_text", "parse_recipes", "strip_code_fence", "validate_recipe"]
