"""Data normalization utilities for consistent data quality."""

from typing import Optional


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize email to lowercase.

    Args:
        email: Raw email input

    Returns:
        Lowercased email or None if empty
    """
    if not email:
        return None
    return email.strip().lower() or None


def normalize_custom_fields(fields: Optional[dict]) -> dict:
    """Drop empty keys and strip string values from visitor-supplied fields."""
    if not fields:
        return {}
    cleaned = {}
    for key, value in fields.items():
        key = str(key).strip()
        if not key:
            continue
        cleaned[key] = value.strip() if isinstance(value, str) else value
    return cleaned
