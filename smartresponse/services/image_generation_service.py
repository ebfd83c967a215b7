"""Image generation with provider-specific fallback.

The default provider is called through its image endpoint and errors are
surfaced unchanged. OpenRouter models expose images through two different
surfaces: some have a dedicated image endpoint, others only return images
from a chat completion with image output enabled. The dedicated endpoint is
tried first; only a "no endpoint for this model" failure moves on to the
chat-completion request, and the two are never issued concurrently.
"""

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from smartresponse.core.errors import BackendCapabilityError, BackendFulfillmentError
from smartresponse.db.enums import AIProviderName, ImageSize
from smartresponse.services import ai_provider
from smartresponse.services.ai_provider import ChatMessage
from smartresponse.services.model_router import require_model

logger = logging.getLogger(__name__)

IMAGE_MODALITIES = ["image", "text"]

_ASPECT_RATIOS = {
    ImageSize.SQUARE.value: "1:1",
    ImageSize.PORTRAIT.value: "2:3",
    ImageSize.LANDSCAPE.value: "3:2",
}

# Error wording OpenRouter uses when a model has no image route.
# TODO: switch to a structured error code once OpenRouter returns one for missing routes.
_MISSING_ENDPOINT_MARKERS = ("No endpoints found", "endpoint")


@dataclass
class ImageResult:
    """Generated images as URLs or data URIs. Always a list."""

    images: list[str] = field(default_factory=list)


def size_to_aspect_ratio(size: str | None) -> str | None:
    if not size:
        return None
    return _ASPECT_RATIOS.get(size)


def is_missing_endpoint_error(message: str) -> bool:
    """True when a backend error means the model lacks this endpoint."""
    return any(marker in message for marker in _MISSING_ENDPOINT_MARKERS)


def _image_part(image: str | bytes) -> dict[str, Any]:
    if isinstance(image, bytes):
        encoded = base64.b64encode(image).decode("ascii")
        return {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}}
    return {"type": "image_url", "image_url": {"url": image}}


def build_fallback_content(
    prompt: str, reference_images: Sequence[str | bytes] = ()
) -> str | list[dict[str, Any]]:
    """Pack prompt text and reference images into chat message content."""
    parts: list[dict[str, Any]] = []
    if prompt:
        parts.append({"type": "text", "text": prompt})
    parts.extend(_image_part(image) for image in reference_images)

    if len(parts) == 1 and parts[0]["type"] == "text":
        return prompt
    return parts


def _require_images(images: Sequence[str], provider: AIProviderName, model_id: str) -> ImageResult:
    if not images:
        raise BackendFulfillmentError(
            "Model returned no image. Try another model or check the API key.",
            provider=provider.value,
            model_id=model_id,
        )
    return ImageResult(images=list(images))


async def _generate_via_image_endpoint(
    provider: ai_provider.AIProvider, model_id: str, prompt: str, aspect_ratio: str | None
) -> ImageResult:
    try:
        response = await provider.generate_image(prompt, model_id, aspect_ratio=aspect_ratio)
    except BackendFulfillmentError as exc:
        if is_missing_endpoint_error(str(exc)):
            raise BackendCapabilityError(str(exc)) from exc
        raise
    return _require_images(response.images, provider.name, model_id)


async def _generate_via_chat(
    provider: ai_provider.AIProvider,
    model_id: str,
    prompt: str,
    aspect_ratio: str | None,
    reference_images: Sequence[str | bytes],
) -> ImageResult:
    response = await provider.chat(
        [ChatMessage(role="user", content=build_fallback_content(prompt, reference_images))],
        model=model_id,
        temperature=None,
        max_tokens=None,
        modalities=IMAGE_MODALITIES,
        image_config={"aspect_ratio": aspect_ratio} if aspect_ratio else None,
    )
    return _require_images(response.images, provider.name, model_id)


async def _generate_openrouter_image(
    model_id: str,
    prompt: str,
    aspect_ratio: str | None,
    reference_images: Sequence[str | bytes],
) -> ImageResult:
    provider = ai_provider.get_provider(AIProviderName.OPENROUTER)
    context = f"OpenRouter image generation failed (model: {model_id})"

    try:
        logger.info("Trying image endpoint for model=%s", model_id)
        return await _generate_via_image_endpoint(provider, model_id, prompt, aspect_ratio)
    except BackendCapabilityError as capability_error:
        primary_message = str(capability_error)
    # Any other BackendFulfillmentError already carries provider/model and propagates as-is

    logger.info("Image endpoint unavailable for model=%s, falling back to chat completion", model_id)
    try:
        return await _generate_via_chat(provider, model_id, prompt, aspect_ratio, reference_images)
    except BackendFulfillmentError as fallback_error:
        logger.error("Chat completion fallback failed for model=%s: %s", model_id, fallback_error)
        raise BackendFulfillmentError(
            f"{context}: {fallback_error}. Original error: {primary_message}",
            provider=AIProviderName.OPENROUTER.value,
            model_id=model_id,
        ) from fallback_error


async def generate_image(
    model_string: str | None,
    prompt: str,
    size: str | None = None,
    reference_images: Sequence[str | bytes] = (),
) -> ImageResult:
    """Generate images with the configured model, falling back where the backend requires."""
    parsed = require_model(model_string, "image")

    if parsed.provider == AIProviderName.OPENROUTER:
        return await _generate_openrouter_image(
            parsed.model_id, prompt, size_to_aspect_ratio(size), reference_images
        )

    provider = ai_provider.get_provider(parsed.provider)
    request_size = size if size and size != ImageSize.AUTO.value else None
    response = await provider.generate_image(prompt, parsed.model_id, size=request_size)
    return _require_images(response.images, parsed.provider, parsed.model_id)
