"""Model routing.

Model settings are compact `provider:modelId` strings ("openrouter:google/
gemini-pro", or just "gpt-4o" for the default provider). Unknown provider
tokens fall back to the default provider so new tokens degrade instead of
breaking generation. An empty model id is always a configuration error;
there is no built-in default model.
"""

from dataclasses import dataclass

from smartresponse.core.errors import ConfigurationError
from smartresponse.db.enums import DEFAULT_AI_PROVIDER, AIProviderName
from smartresponse.services import ai_provider


@dataclass(frozen=True)
class ParsedModel:
    provider: AIProviderName
    model_id: str


@dataclass(frozen=True)
class TextModel:
    """A text model bound to the client that serves it."""

    provider: AIProviderName
    model_id: str
    client: ai_provider.AIProvider


def _parse_provider(token: str) -> AIProviderName:
    try:
        return AIProviderName(token.strip().lower())
    except ValueError:
        return DEFAULT_AI_PROVIDER


def parse_model_string(model_string: str | None) -> ParsedModel:
    normalized = (model_string or "").strip()
    if not normalized:
        return ParsedModel(provider=DEFAULT_AI_PROVIDER, model_id="")

    provider_token, separator, model_id = normalized.partition(":")
    if not separator:
        return ParsedModel(provider=DEFAULT_AI_PROVIDER, model_id=normalized)

    return ParsedModel(provider=_parse_provider(provider_token), model_id=model_id.strip())


def require_model(model_string: str | None, kind: str) -> ParsedModel:
    """Parse and reject an empty model id with a ConfigurationError."""
    parsed = parse_model_string(model_string)
    if not parsed.model_id:
        raise ConfigurationError(
            f"Unable to determine {kind} model: system setting is empty"
        )
    return parsed


def resolve_text_model(model_string: str | None) -> TextModel:
    parsed = require_model(model_string, "text")
    return TextModel(
        provider=parsed.provider,
        model_id=parsed.model_id,
        client=ai_provider.get_provider(parsed.provider),
    )
