"""Structured logging helpers (PII-safe)."""

import hashlib
from typing import Any


def mask_email(email: str | None) -> str:
    """Return a short stable fingerprint for an email so logs never carry it."""
    if not email:
        return ""
    digest = hashlib.sha256(email.strip().lower().encode()).hexdigest()
    return f"email:{digest[:12]}"


def build_log_context(
    *,
    account_id: str | None = None,
    form_id: str | None = None,
    lead_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if account_id:
        context["account_id"] = str(account_id)
    if form_id:
        context["form_id"] = str(form_id)
    if lead_id:
        context["lead_id"] = str(lead_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
