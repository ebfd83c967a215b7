"""Enum definitions for application constants."""

from enum import Enum


class AccountRole(str, Enum):
    """
    Account roles.

    - USER: Form owner with configurable quotas
    - SUPERADMIN: Platform admin (system settings, model selection)
    """
    USER = "user"
    SUPERADMIN = "superadmin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class QuotaResource(str, Enum):
    """Independently limited per-account resources."""
    FORMS = "forms"
    LEADS = "leads"
    STORAGE_BYTES = "storage_bytes"
    DAILY_TESTS = "daily_tests"


# Counter read failures block these; best-effort accounting is let through
FAIL_CLOSED_RESOURCES = frozenset(
    {QuotaResource.FORMS, QuotaResource.LEADS, QuotaResource.STORAGE_BYTES}
)


class AIProviderName(str, Enum):
    """AI backends reachable through a `provider:modelId` setting."""
    OPENAI = "openai"
    OPENROUTER = "openrouter"


DEFAULT_AI_PROVIDER = AIProviderName.OPENAI


class ResultFormat(str, Enum):
    """What a form generates for the visitor."""
    TEXT = "text"
    IMAGE = "image"


class ImageSize(str, Enum):
    """Image sizes a form may request."""
    SQUARE = "1024x1024"
    PORTRAIT = "1024x1536"
    LANDSCAPE = "1536x1024"
    AUTO = "auto"


class LeadStatus(str, Enum):
    COMPLETED = "completed"


class SystemSettingKey(str, Enum):
    """Process-wide settings editable by superadmins."""
    TEXT_MODEL = "text_model"
    IMAGE_MODEL = "image_model"
    GLOBAL_TEXT_PROMPT = "global_text_prompt"
    GLOBAL_IMAGE_PROMPT = "global_image_prompt"
