"""Adapter for the two supported text generation backends.

A configured base URL is either the vendor's native API (detected by its
domain) or any endpoint speaking the chat-completions protocol. The kind is
decided once per call and threaded through request building and response
extraction.
"""

from __future__ import annotations

import enum
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .errors import ConfigurationError, EmptyResponseError, ProviderConnectionError
from .models import AppSettings, Ingredient, ModelOption, Recipe, UserPreferences
from .parser import parse_recipes
from .prompts import PromptPair, build_prompts


logger = logging.getLogger(__name__)

NATIVE_DOMAIN_MARKER = "googleapis.com"
NATIVE_VERSION_SUFFIX = "/v1beta"
COMPATIBLE_VERSION_SEGMENT = "/v1"
NATIVE_MODEL_PREFIX = "models/"
NATIVE_MODEL_KEYWORDS = ("gemini", "flash", "pro")

TEMPERATURE = 0.7
DEFAULT_TIMEOUT = 60.0
ERROR_EXCERPT_LENGTH = 100


class ProviderKind(enum.Enum):
    NATIVE = "native"
    COMPATIBLE = "compatible"


def normalize_base_url(url: str) -> str:
    """Trim whitespace, trailing slashes and a pasted ``/v1beta`` suffix."""

    cleaned = url.strip()
    while True:
        previous = cleaned
        cleaned = cleaned.rstrip("/").strip()
        if cleaned.endswith(NATIVE_VERSION_SUFFIX):
            cleaned = cleaned[: -len(NATIVE_VERSION_SUFFIX)]
        if cleaned == previous:
            return cleaned


def detect_provider_kind(base_url: str) -> ProviderKind:
    if NATIVE_DOMAIN_MARKER in base_url:
        return ProviderKind.NATIVE
    return ProviderKind.COMPATIBLE


def ensure_version_segment(base_url: str) -> str:
    if base_url.endswith(COMPATIBLE_VERSION_SEGMENT):
        return base_url
    return base_url + COMPATIBLE_VERSION_SEGMENT


def _headers(kind: ProviderKind, api_key: str) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if kind is ProviderKind.NATIVE:
        headers["x-goog-api-key"] = api_key
    else:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def models_url(kind: ProviderKind, base_url: str) -> str:
    if kind is ProviderKind.NATIVE:
        return f"{base_url}/v1beta/models"
    return f"{ensure_version_segment(base_url)}/models"


def generation_request(
    kind: ProviderKind, base_url: str, model: str, prompts: PromptPair
) -> Tuple[str, Dict[str, Any]]:
    """Return the URL and JSON body for a generation call."""

    if kind is ProviderKind.NATIVE:
        url = f"{base_url}/v1beta/models/{model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompts.system_prompt + "\n" + prompts.user_prompt}]}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "responseMimeType": "application/json",
            },
        }
        return url, body

    url = f"{ensure_version_segment(base_url)}/chat/completions"
    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": prompts.system_prompt},
            {"role": "user", "content": prompts.user_prompt},
        ],
        "temperature": TEMPERATURE,
        # Best effort; some compatible providers ignore it.
        "response_format": {"type": "json_object"},
    }
    return url, body


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _field(data: Any, name: str) -> Any:
    return data.get(name) if isinstance(data, dict) else None


def extract_text(kind: ProviderKind, data: Any) -> str:
    """Pull the generated text out of a response; ``""`` when any level is missing."""

    if kind is ProviderKind.NATIVE:
        content = _field(_first(_field(data, "candidates")), "content")
        text = _field(_first(_field(content, "parts")), "text")
    else:
        message = _field(_first(_field(data, "choices")), "message")
        text = _field(message, "content")
    return text if isinstance(text, str) else ""


def parse_model_list(kind: ProviderKind, data: Any) -> List[ModelOption]:
    if kind is ProviderKind.NATIVE:
        models = _field(data, "models")
        if not isinstance(models, list):
            return []
        options = []
        for entry in models:
            raw_name = _field(entry, "name")
            if not isinstance(raw_name, str):
                continue
            name = raw_name.replace(NATIVE_MODEL_PREFIX, "", 1)
            if not any(keyword in name for keyword in NATIVE_MODEL_KEYWORDS):
                continue
            options.append(ModelOption(name=name, displayName=_field(entry, "displayName") or raw_name))
        return options

    models = _field(data, "data")
    if not isinstance(models, list):
        return []
    return [
        ModelOption(name=entry["id"], displayName=entry["id"])
        for entry in models
        if isinstance(_field(entry, "id"), str)
    ]


def describe_http_error(prefix: str, response: requests.Response) -> str:
    message = f"{prefix} ({response.status_code})"
    body = response.text or ""
    try:
        error = json.loads(body).get("error")
    except (ValueError, AttributeError):
        return f"{message}: {body[:ERROR_EXCERPT_LENGTH]}"

    if isinstance(error, dict) and error.get("message"):
        return f"{message}: {error['message']}"
    if isinstance(error, dict) and error.get("code"):
        return f"{message}: Error Code {error['code']}"
    return f"{message}: {body[:ERROR_EXCERPT_LENGTH]}"


class ProviderClient:
    """Talks to the configured provider. No retries are attempted."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def _connection(self, settings: AppSettings) -> Tuple[ProviderKind, str, str]:
        api_url = settings.apiUrl.strip()
        api_key = settings.apiKey.strip()
        if not api_url or not api_key:
            raise ConfigurationError("请先配置 API 地址和密钥")

        base_url = normalize_base_url(api_url)
        return detect_provider_kind(base_url), base_url, api_key

    def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        error_prefix: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            response = self._session.request(
                method, url, headers=headers, json=body, timeout=self._timeout
            )
        except requests.RequestException as exc:
            logger.error("Request to %s failed: %s", url, exc)
            raise ProviderConnectionError(f"{error_prefix}: 网络错误，无法连接到服务 ({exc})") from exc

        if not response.ok:
            message = describe_http_error(error_prefix, response)
            logger.error("Provider returned %s for %s: %s", response.status_code, url, message)
            raise ProviderConnectionError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Provider returned a non-JSON body for %s: %s", url, response.text[:ERROR_EXCERPT_LENGTH])
            raise EmptyResponseError(f"{error_prefix}: 服务返回了无法识别的响应") from exc

    def test_connection(self, settings: AppSettings) -> List[ModelOption]:
        """List the models available with ``settings``; doubles as a credentials check."""

        kind, base_url, api_key = self._connection(settings)
        logger.info("Listing models from %s provider", kind.value)
        data = self._send(
            "GET",
            models_url(kind, base_url),
            headers=_headers(kind, api_key),
            error_prefix="连接失败",
        )
        return parse_model_list(kind, data)

    def complete(self, settings: AppSettings, prompts: PromptPair) -> str:
        """Send one generation request and return the raw model text."""

        kind, base_url, api_key = self._connection(settings)
        model = settings.model.strip()
        if not model:
            raise ConfigurationError("请先在设置中选择模型")

        url, body = generation_request(kind, base_url, model, prompts)
        logger.info("Generating recipes with %s provider, model %s", kind.value, model)
        data = self._send(
            "POST",
            url,
            headers=_headers(kind, api_key),
            error_prefix="API 请求失败",
            body=body,
        )

        text = extract_text(kind, data)
        if not text.strip():
            raise EmptyResponseError("API 返回了空内容。")
        return text

    def generate(
        self,
        ingredients: Sequence[Ingredient],
        preferences: UserPreferences,
        settings: AppSettings,
    ) -> List[Recipe]:
        self._connection(settings)
        if not ingredients:
            raise ConfigurationError("请先添加一些食材到冰箱！")

        prompts = build_prompts(ingredients, preferences)
        return parse_recipes(self.complete(settings, prompts))


__all__ = [
    "DEFAULT_TIMEOUT",
    "ProviderClient",
    "ProviderKind",
    "detect_provider_kind",
    "ensure_version_segment",
    "extract_text",
    "generation_request",
    "models_url",
    "normalize_base_url",
    "parse_model_list",
]
