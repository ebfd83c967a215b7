"""AI Provider abstraction layer.

Supports OpenAI and OpenRouter (OpenAI-compatible) with a unified interface
for chat completions and image generation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from smartresponse.core.config import settings
from smartresponse.core.errors import BackendFulfillmentError, ConfigurationError
from smartresponse.db.enums import AIProviderName


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str | list[dict[str, Any]]


@dataclass
class ChatResponse:
    """Response from an AI provider."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str
    images: list[str] = field(default_factory=list)


@dataclass
class ImageResponse:
    """Images returned by a generation endpoint (URLs or data URIs)."""

    images: list[str]
    model: str


def _error_from_response(provider: str, model: str, response: httpx.Response) -> BackendFulfillmentError:
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    # OpenRouter sometimes sends the error as a bare string
    if isinstance(error, dict):
        detail = error.get("message")
    elif isinstance(error, str):
        detail = error
    else:
        detail = None
    detail = detail or response.text
    return BackendFulfillmentError(
        f"{provider} API error: {response.status_code} {response.reason_phrase}. {detail}",
        provider=provider,
        model_id=model,
    )


def _extract_message_images(message: dict[str, Any]) -> list[str]:
    images: list[str] = []
    for image in message.get("images") or []:
        url = (image.get("image_url") or {}).get("url")
        if url:
            images.append(url)
    return images


def _extract_generation_images(data: dict[str, Any]) -> list[str]:
    images: list[str] = []
    for item in data.get("data") or []:
        if item.get("url"):
            images.append(item["url"])
        elif item.get("b64_json"):
            images.append(f"data:image/png;base64,{item['b64_json']}")
    return images


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    name: AIProviderName

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model: str,
        temperature: float | None = 0.7,
        max_tokens: int | None = 2000,
        modalities: list[str] | None = None,
        image_config: dict[str, Any] | None = None,
    ) -> ChatResponse:
        """Send a chat completion request."""
        pass

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        model: str,
        size: str | None = None,
        aspect_ratio: str | None = None,
    ) -> ImageResponse:
        """Call the provider's dedicated image generation endpoint."""
        pass


class OpenAICompatibleProvider(AIProvider):
    """Provider speaking the OpenAI REST dialect."""

    def __init__(self, api_key: str, base_url: str, timeout: float | None = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.AI_REQUEST_TIMEOUT_SECONDS

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}{path}",
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.RequestError as exc:
            raise BackendFulfillmentError(
                f"{self.name.value} request failed: {exc}",
                provider=self.name.value,
                model_id=model,
            ) from exc

        if response.status_code >= 400:
            raise _error_from_response(self.name.value, model, response)
        return response.json()

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str,
        temperature: float | None = 0.7,
        max_tokens: int | None = 2000,
        modalities: list[str] | None = None,
        image_config: dict[str, Any] | None = None,
    ) -> ChatResponse:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if modalities:
            payload["modalities"] = modalities
        if image_config:
            payload["image_config"] = image_config

        data = await self._post("/chat/completions", model, payload)

        choices = data.get("choices") or []
        message = (choices[0].get("message") or {}) if choices else {}
        usage = data.get("usage") or {}
        return ChatResponse(
            content=message.get("content") or "",
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            model=model,
            images=_extract_message_images(message),
        )


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI API provider."""

    name = AIProviderName.OPENAI

    def __init__(self, api_key: str, base_url: str | None = None, timeout: float | None = None):
        super().__init__(api_key, base_url or settings.OPENAI_BASE_URL, timeout)

    async def generate_image(
        self,
        prompt: str,
        model: str,
        size: str | None = None,
        aspect_ratio: str | None = None,
    ) -> ImageResponse:
        payload: dict[str, Any] = {"model": model, "prompt": prompt, "n": 1}
        if size:
            payload["size"] = size
        data = await self._post("/images/generations", model, payload)
        return ImageResponse(images=_extract_generation_images(data), model=model)


class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter API provider (routes to many upstream models)."""

    name = AIProviderName.OPENROUTER

    def __init__(self, api_key: str, base_url: str | None = None, timeout: float | None = None):
        super().__init__(api_key, base_url or settings.OPENROUTER_BASE_URL, timeout)

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["HTTP-Referer"] = settings.SITE_URL
        headers["X-Title"] = settings.APP_TITLE
        return headers

    async def generate_image(
        self,
        prompt: str,
        model: str,
        size: str | None = None,
        aspect_ratio: str | None = None,
    ) -> ImageResponse:
        payload: dict[str, Any] = {"model": model, "prompt": prompt, "n": 1}
        if aspect_ratio:
            payload["aspect_ratio"] = aspect_ratio
        data = await self._post("/images/generations", model, payload)
        return ImageResponse(images=_extract_generation_images(data), model=model)


def get_provider(provider_name: AIProviderName | str, api_key: str | None = None) -> AIProvider:
    """Factory function to get the appropriate AI provider."""
    provider_name = AIProviderName(provider_name)
    if provider_name == AIProviderName.OPENROUTER:
        key = api_key or settings.OPENROUTER_API_KEY
        if not key:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")
        return OpenRouterProvider(key)
    key = api_key or settings.OPENAI_API_KEY
    if not key:
        raise ConfigurationError("OPENAI_API_KEY is not configured")
    return OpenAIProvider(key)
