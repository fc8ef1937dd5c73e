from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from smartfridge.models import Recipe


class InMemoryKeyValueStore:
    """Dict-backed key-value store used for tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})
        self.writes: List[str] = []

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = json.dumps(value, ensure_ascii=False)
        self.writes.append(key)

    def load(self, key: str) -> Any:
        return json.loads(self.data[key])


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """Stands in for :class:`requests.Session`, replaying queued outcomes."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._outcomes: List[Any] = []

    def queue(self, outcome: Any) -> None:
        self._outcomes.append(outcome)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def make_recipe(**overrides: Any) -> Recipe:
    fields = {
        "name": "番茄炒蛋",
        "description": "酸甜下饭的家常菜",
        "difficulty": "简单",
        "cookingTime": "15分钟",
        "mainIngredientsUsed": ["番茄", "鸡蛋"],
        "missingIngredients": ["葱"],
        "steps": ["中火将锅烧热，倒入蛋液翻炒约30秒至凝固后盛出。", "下番茄块翻炒2分钟至出汁，倒回鸡蛋拌匀。"],
        "failurePoints": ["鸡蛋炒太久会发老"],
    }
    fields.update(overrides)
    return Recipe(**fields)


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def network_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")
