import logging
import os
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from .errors import (
    ConfigurationError,
    FolderError,
    ParseError,
    ProviderError,
    SmartFridgeError,
)
from .favorites import FavoritesStore
from .generation import GenerationService
from .inventory import InventoryStore
from .models import DEFAULT_FOLDER, AppSettings, Category, UserPreferences
from .parser import validate_recipe
from .provider import DEFAULT_TIMEOUT, ProviderClient
from .settings import SettingsStore
from .storage import KeyValueStore

try:
    from .gcp_storage import FirestoreKeyValueStore
except ImportError:  # pragma: no cover - allows running tests without optional deps
    FirestoreKeyValueStore = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

ALL_FOLDERS = "全部"


def _status_for(error: SmartFridgeError) -> int:
    if isinstance(error, (ConfigurationError, FolderError)):
        return 400
    if isinstance(error, ProviderError):
        return 502
    if isinstance(error, ParseError):
        return 422
    return 500


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _bad_request(message: str) -> Tuple[Any, int]:
    return jsonify({"error": message}), 400


def create_app(
    store: Optional[KeyValueStore] = None,
    provider: Optional[ProviderClient] = None,
) -> Flask:
    """Create and configure the Flask application.

    Parameters
    ----------
    store:
        Optional key-value store for persisted state. When ``None`` the
        application will use :class:`FirestoreKeyValueStore` configured
        through environment variables.
    provider:
        Optional provider client. When ``None`` a client is created with the
        timeout from ``SMART_FRIDGE_REQUEST_TIMEOUT``.
    """

    logging.basicConfig(level=os.environ.get("SMART_FRIDGE_LOG_LEVEL", "INFO").upper())

    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "development-secret-change-me")
    app.json.ensure_ascii = False

    if store is None:
        if FirestoreKeyValueStore is None:
            raise RuntimeError(
                "google-cloud-firestore is not installed. Install it or pass an "
                "explicit key-value store to create_app."
            )
        store = FirestoreKeyValueStore.from_env()

    if provider is None:
        timeout = float(os.environ.get("SMART_FRIDGE_REQUEST_TIMEOUT", DEFAULT_TIMEOUT))
        provider = ProviderClient(timeout=timeout)

    settings_store = SettingsStore(store)
    inventory = InventoryStore(store)
    favorites = FavoritesStore(store)
    generation = GenerationService(provider, inventory, settings_store)

    app.config.update(
        SETTINGS_STORE=settings_store,
        INVENTORY=inventory,
        FAVORITES=favorites,
        GENERATION=generation,
        PROVIDER=provider,
    )

    @app.errorhandler(SmartFridgeError)
    def handle_app_error(error: SmartFridgeError):
        status = _status_for(error)
        if status >= 500:
            logger.warning("Request failed: %s", error.message)
        return jsonify({"error": error.message}), status

    @app.get("/")
    def index():
        return jsonify({"status": "ok"})

    # Inventory

    @app.get("/api/inventory")
    def list_ingredients():
        category = request.args.get("category")
        if category:
            try:
                items = inventory.list_by_category(Category.parse(category))
            except ValueError as exc:
                return _bad_request(str(exc))
        else:
            items = inventory.list()
        return jsonify({"ingredients": [item.to_dict() for item in items]})

    @app.post("/api/inventory")
    def add_ingredient():
        body = _json_body()
        name = str(body.get("name", "")).strip()
        if not name:
            return _bad_request("请输入食材名称")

        try:
            category = Category.parse(body.get("category", Category.REFRIGERATED.value))
        except ValueError as exc:
            return _bad_request(str(exc))

        ingredient = inventory.add(name, category)
        return jsonify(ingredient.to_dict()), 201

    @app.delete("/api/inventory/<ingredient_id>")
    def remove_ingredient(ingredient_id: str):
        inventory.remove(ingredient_id)
        return "", 204

    # Settings

    @app.get("/api/settings")
    def get_settings():
        return jsonify(settings_store.get().masked())

    @app.put("/api/settings")
    def save_settings():
        body = _json_body()
        settings = AppSettings(
            apiUrl=str(body.get("apiUrl", "")),
            apiKey=str(body.get("apiKey", "")),
            model=str(body.get("model", "")),
        )
        saved = settings_store.save(settings)
        return jsonify(saved.masked())

    @app.post("/api/settings/test")
    def test_connection():
        current = settings_store.get().to_dict()
        overrides = {k: str(v) for k, v in _json_body().items() if k in current and v is not None}
        models = provider.test_connection(AppSettings(**{**current, **overrides}))
        return jsonify({"models": [option.to_dict() for option in models]})

    # Recipes

    @app.get("/api/recipes")
    def latest_recipes():
        return jsonify({"recipes": [recipe.to_dict() for recipe in generation.latest]})

    @app.post("/api/recipes/generate")
    def generate_recipes():
        try:
            preferences = UserPreferences.from_dict(_json_body())
        except ValueError as exc:
            return _bad_request(str(exc))

        recipes = generation.generate(preferences)
        if recipes is None:
            return jsonify({"error": "正在生成食谱，请稍候"}), 409
        return jsonify({"recipes": [recipe.to_dict() for recipe in recipes]})

    # Favorites

    @app.get("/api/favorites")
    def list_favorites():
        folder = request.args.get("folder") or None
        if folder == ALL_FOLDERS:
            folder = None
        recipes = favorites.list(folder=folder, search_query=request.args.get("q"))
        return jsonify({"recipes": [recipe.to_dict() for recipe in recipes]})

    @app.post("/api/favorites")
    def save_favorite():
        try:
            recipe = validate_recipe(_json_body(), "recipe")
        except ParseError as exc:
            return _bad_request(exc.message)

        saved = favorites.save(recipe)
        return jsonify(saved.to_dict()), 201

    @app.put("/api/favorites/<recipe_id>")
    def update_favorite(recipe_id: str):
        try:
            updated = favorites.edit(recipe_id, _json_body())
        except ParseError as exc:
            return _bad_request(exc.message)

        if updated is None:
            return jsonify({"error": "收藏不存在"}), 404
        return jsonify(updated.to_dict())

    @app.delete("/api/favorites/<recipe_id>")
    def remove_favorite(recipe_id: str):
        favorites.remove(recipe_id)
        return "", 204

    # Folders

    def folder_payload():
        return jsonify(
            {
                "folders": favorites.folders(),
                "default": DEFAULT_FOLDER,
                "deletable": favorites.deletable_folders(),
            }
        )

    @app.get("/api/folders")
    def list_folders():
        return folder_payload()

    @app.post("/api/folders")
    def create_folder():
        favorites.create_folder(str(_json_body().get("name", "")).strip())
        return folder_payload(), 201

    @app.delete("/api/folders/<path:name>")
    def delete_folder(name: str):
        favorites.delete_folder(name)
        return folder_payload()

    return app


__all__ = ["create_app"]
