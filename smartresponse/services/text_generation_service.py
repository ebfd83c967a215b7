"""Text generation and visitor URL fetching."""

import html
import logging
import re

import httpx

from smartresponse.core.config import settings
from smartresponse.core.errors import BackendFulfillmentError
from smartresponse.services.ai_provider import ChatMessage
from smartresponse.services.model_router import resolve_text_model

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are an expert consultant. Analyze the provided content and give personalized, actionable recommendations.

IMPORTANT FORMATTING RULES:
- Write in plain text only, NO markdown formatting
- Do NOT use asterisks, hashtags, or any special characters for emphasis
- Use simple paragraphs separated by blank lines
- Keep your response clean, readable, and professional"""

IMPROVE_PROMPT_INSTRUCTIONS = (
    "You improve prompts for an AI that analyzes a visitor's website and writes "
    "recommendations. Rewrite the prompt to be clear, specific and well structured. "
    "Keep the original language and intent. Return only the improved prompt."
)

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")

USER_AGENT = "Mozilla/5.0 (compatible; SmartResponseBot/1.0)"


def html_to_text(markup: str, max_chars: int | None = None) -> str:
    """Strip scripts, styles and tags and collapse whitespace."""
    text = _SCRIPT_RE.sub("", markup)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", html.unescape(text)).strip()
    limit = max_chars if max_chars is not None else settings.URL_CONTENT_MAX_CHARS
    return text[:limit]


async def fetch_url_content(url: str) -> str:
    """
    Fetch a visitor URL and return its visible text.

    Never raises: fetch failures become a short explanation the model can
    still work with.
    """
    try:
        async with httpx.AsyncClient(
            timeout=settings.URL_FETCH_TIMEOUT_SECONDS, follow_redirects=True
        ) as client:
            response = await client.get(url, headers={"User-Agent": USER_AGENT})
    except httpx.HTTPError as exc:
        logger.warning("Error fetching visitor URL: %s", exc)
        return f"Error fetching URL: {exc}"

    if response.status_code >= 400:
        return f"Unable to fetch URL content (Status: {response.status_code})"

    text = html_to_text(response.text)
    return text or "Unable to extract meaningful content from URL"


def build_system_prompt(
    form_prompt: str | None,
    global_prompt: str | None = None,
    knowledge: list[str] | None = None,
) -> str:
    sections = [form_prompt or DEFAULT_SYSTEM_PROMPT]
    if global_prompt:
        sections.append(global_prompt)
    if knowledge:
        sections.append("Reference materials:\n\n" + "\n\n---\n\n".join(knowledge))
    return "\n\n".join(sections)


def build_user_prompt(url: str, url_content: str, custom_fields: dict | None = None) -> str:
    lines = [f"URL: {url}", "", "Content:", url_content]
    if custom_fields:
        lines.append("")
        lines.append("Additional details:")
        lines.extend(f"- {key}: {value}" for key, value in custom_fields.items())
    lines.append("")
    lines.append("Please provide your analysis and recommendations.")
    return "\n".join(lines)


async def generate_text(
    model_string: str | None,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 1500,
) -> str:
    """Run a chat completion with the configured text model."""
    text_model = resolve_text_model(model_string)
    response = await text_model.client.chat(
        [
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=user_prompt),
        ],
        model=text_model.model_id,
        max_tokens=max_tokens,
    )
    if not response.content:
        raise BackendFulfillmentError(
            "Empty response from model",
            provider=text_model.provider.value,
            model_id=text_model.model_id,
        )
    return response.content


async def improve_prompt(model_string: str | None, prompt: str) -> str:
    return await generate_text(model_string, IMPROVE_PROMPT_INSTRUCTIONS, prompt)
