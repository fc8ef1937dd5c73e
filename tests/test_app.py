from __future__ import annotations

import json
from urllib.parse import quote

from conftest import FakeResponse, FakeSession, InMemoryKeyValueStore, make_recipe
from smartfridge import create_app
from smartfridge.models import DEFAULT_FOLDER
from smartfridge.provider import ProviderClient


def create_test_client():
    storage = InMemoryKeyValueStore()
    session = FakeSession()
    app = create_app(store=storage, provider=ProviderClient(session))
    app.config.update(TESTING=True)
    return app.test_client(), storage, session


def _configure(client):
    response = client.put(
        "/api/settings",
        json={"apiUrl": "https://api.example.com", "apiKey": "sk-1234567890", "model": "gpt-4o-mini"},
    )
    assert response.status_code == 200


def _completion(recipes):
    content = json.dumps([r.to_dict() for r in recipes], ensure_ascii=False)
    return FakeResponse(payload={"choices": [{"message": {"content": content}}]})


def test_health_check():
    client, _, _ = create_test_client()
    assert client.get("/").get_json() == {"status": "ok"}


def test_inventory_add_list_and_remove():
    client, _, _ = create_test_client()

    response = client.post("/api/inventory", json={"name": "鸡蛋", "category": "冷藏"})
    assert response.status_code == 201
    egg = response.get_json()
    client.post("/api/inventory", json={"name": "饺子", "category": "FROZEN"})

    listed = client.get("/api/inventory").get_json()["ingredients"]
    assert [i["name"] for i in listed] == ["鸡蛋", "饺子"]
    frozen = client.get("/api/inventory", query_string={"category": "FROZEN"}).get_json()["ingredients"]
    assert [i["category"] for i in frozen] == ["冷冻"]

    assert client.delete(f"/api/inventory/{egg['id']}").status_code == 204
    assert client.delete(f"/api/inventory/{egg['id']}").status_code == 204
    assert [i["name"] for i in client.get("/api/inventory").get_json()["ingredients"]] == ["饺子"]


def test_cannot_add_ingredient_without_name():
    client, storage, _ = create_test_client()

    response = client.post("/api/inventory", json={"name": "  ", "category": "冷藏"})

    assert response.status_code == 400
    assert "请输入食材名称" in response.get_json()["error"]
    assert not storage.writes


def test_unknown_category_is_rejected():
    client, _, _ = create_test_client()
    response = client.post("/api/inventory", json={"name": "鸡蛋", "category": "冰柜"})
    assert response.status_code == 400


def test_settings_are_masked_and_incomplete_settings_rejected():
    client, _, _ = create_test_client()
    _configure(client)

    shown = client.get("/api/settings").get_json()
    assert shown["apiKey"] == "sk-1...7890"
    assert shown["model"] == "gpt-4o-mini"

    response = client.put("/api/settings", json={"apiUrl": "https://api.example.com", "apiKey": ""})
    assert response.status_code == 400
    assert client.get("/api/settings").get_json()["model"] == "gpt-4o-mini"


def test_connection_test_lists_models():
    client, _, session = create_test_client()
    _configure(client)
    session.queue(FakeResponse(payload={"data": [{"id": "gpt-4o-mini"}]}))

    response = client.post("/api/settings/test", json={"apiKey": "sk-other"})

    assert response.status_code == 200
    assert response.get_json() == {"models": [{"name": "gpt-4o-mini", "displayName": "gpt-4o-mini"}]}
    assert session.calls[0]["headers"]["Authorization"] == "Bearer sk-other"


def test_generate_without_ingredients_is_a_configuration_error():
    client, _, session = create_test_client()
    _configure(client)

    response = client.post("/api/recipes/generate", json={"cuisine": "中式家常"})

    assert response.status_code == 400
    assert "食材" in response.get_json()["error"]
    assert session.calls == []


def test_generate_returns_and_remembers_recipes():
    client, _, session = create_test_client()
    _configure(client)
    egg = client.post("/api/inventory", json={"name": "鸡蛋", "category": "冷藏"}).get_json()
    session.queue(_completion([make_recipe()]))

    response = client.post(
        "/api/recipes/generate",
        json={"cuisine": "中式家常", "taste": "咸鲜", "mustUseIngredientIds": [egg["id"]]},
    )

    assert response.status_code == 200
    assert response.get_json()["recipes"][0]["name"] == "番茄炒蛋"
    assert client.get("/api/recipes").get_json()["recipes"][0]["name"] == "番茄炒蛋"
    user_prompt = session.calls[0]["json"]["messages"][1]["content"]
    assert "必须包含的食材: 鸡蛋" in user_prompt


def test_provider_errors_become_single_messages():
    client, _, session = create_test_client()
    _configure(client)
    client.post("/api/inventory", json={"name": "鸡蛋", "category": "冷藏"})
    session.queue(FakeResponse(401, {"error": {"message": "invalid key"}}))
    session.queue(FakeResponse(payload={"choices": [{"message": {"content": "抱歉，我做不到。"}}]}))

    unauthorized = client.post("/api/recipes/generate", json={})
    unparseable = client.post("/api/recipes/generate", json={})

    assert unauthorized.status_code == 502
    assert "401" in unauthorized.get_json()["error"]
    assert "invalid key" in unauthorized.get_json()["error"]
    assert unparseable.status_code == 422


def test_must_use_ids_must_be_a_list():
    client, _, session = create_test_client()
    _configure(client)
    client.post("/api/inventory", json={"name": "鸡蛋", "category": "冷藏"})

    response = client.post("/api/recipes/generate", json={"mustUseIngredientIds": "abc"})

    assert response.status_code == 400
    assert session.calls == []


def test_save_edit_and_delete_favorite():
    client, storage, _ = create_test_client()

    response = client.post("/api/favorites", json=make_recipe(failurePoints=["A", "B"]).to_dict())
    assert response.status_code == 201
    saved = response.get_json()
    assert saved["folder"] == DEFAULT_FOLDER
    assert "A" in saved["userNotes"] and "B" in saved["userNotes"]

    edited = {**saved, "name": "番茄炒蛋（少油版）", "folder": "快手菜", "userNotes": "少放油"}
    response = client.put(f"/api/favorites/{saved['id']}", json=edited)
    assert response.status_code == 200
    assert response.get_json()["folder"] == "快手菜"

    listed = client.get("/api/favorites", query_string={"folder": "快手菜", "q": "少油"}).get_json()["recipes"]
    assert [r["id"] for r in listed] == [saved["id"]]
    assert len(client.get("/api/favorites", query_string={"folder": "全部"}).get_json()["recipes"]) == 1

    assert client.delete(f"/api/favorites/{saved['id']}").status_code == 204
    assert client.get("/api/favorites").get_json()["recipes"] == []
    assert storage.load("smart_fridge_saved_recipes") == []


def test_update_missing_favorite_is_not_found():
    client, _, _ = create_test_client()
    response = client.put("/api/favorites/missing", json=make_recipe().to_dict())
    assert response.status_code == 404


def test_partial_edit_keeps_untouched_fields():
    client, _, _ = create_test_client()
    saved = client.post("/api/favorites", json=make_recipe(failurePoints=["A"]).to_dict()).get_json()

    response = client.put(
        f"/api/favorites/{saved['id']}",
        json={"name": "番茄炒蛋（少油版）", "cookingTime": "10分钟", "steps": ["一锅出。"], "savedAt": [1]},
    )

    assert response.status_code == 200
    edited = response.get_json()
    assert edited["name"] == "番茄炒蛋（少油版）"
    assert edited["steps"] == ["一锅出。"]
    for key in ("id", "savedAt", "mainIngredientsUsed", "missingIngredients", "failurePoints", "userNotes", "folder"):
        assert edited[key] == saved[key]


def test_edit_with_empty_steps_is_rejected():
    client, _, _ = create_test_client()
    saved = client.post("/api/favorites", json=make_recipe().to_dict()).get_json()

    response = client.put(f"/api/favorites/{saved['id']}", json={"steps": []})

    assert response.status_code == 400
    assert "recipe.steps" in response.get_json()["error"]
    assert client.get("/api/favorites").get_json()["recipes"] == [saved]


def test_save_malformed_recipe_is_rejected():
    client, _, _ = create_test_client()
    response = client.post("/api/favorites", json={"name": "没有步骤"})
    assert response.status_code == 400


def test_folder_lifecycle():
    client, _, _ = create_test_client()

    response = client.post("/api/folders", json={"name": "夜宵"})
    assert response.status_code == 201
    assert "夜宵" in response.get_json()["folders"]

    saved = client.post("/api/favorites", json=make_recipe().to_dict()).get_json()
    client.put(f"/api/favorites/{saved['id']}", json={**saved, "folder": "夜宵"})

    response = client.delete(f"/api/folders/{quote('夜宵')}")
    assert response.status_code == 200
    payload = response.get_json()
    assert "夜宵" not in payload["folders"]
    assert payload["default"] == DEFAULT_FOLDER
    assert DEFAULT_FOLDER not in payload["deletable"]

    recipes = client.get("/api/favorites").get_json()["recipes"]
    assert recipes[0]["folder"] == DEFAULT_FOLDER


def test_default_folder_cannot_be_deleted():
    client, _, _ = create_test_client()

    response = client.delete(f"/api/folders/{quote(DEFAULT_FOLDER)}")

    assert response.status_code == 400
    assert DEFAULT_FOLDER in client.get("/api/folders").get_json()["folders"]
