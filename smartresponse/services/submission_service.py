"""Submission pipeline.

admission -> model resolution -> text or image generation -> lead write
-> lead counter -> notification.

Standard submitters are checked for duplicates and lead quota before any
AI call is made, so a rejected visitor never costs a generation. Owners
previewing their own form spend a daily test instead.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

import anyio
from sqlalchemy.orm import Session

from smartresponse.core.config import settings
from smartresponse.core.errors import BackendFulfillmentError, QuotaExceededError
from smartresponse.core.structured_logging import build_log_context, mask_email
from smartresponse.db.enums import QuotaResource, ResultFormat
from smartresponse.db.models import Form
from smartresponse.services import (
    admission_service,
    form_service,
    image_generation_service,
    knowledge_file_service,
    lead_service,
    model_router,
    quota_store,
    system_settings_service,
    text_generation_service,
)
from smartresponse.services.lead_service import LeadPayload, LeadSubmitResult
from smartresponse.services.notification_service import (
    LeadCreatedEvent,
    NotificationDispatcher,
)
from smartresponse.utils.normalization import normalize_custom_fields, normalize_email

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    result_format: ResultFormat
    text: str | None = None
    images: list[str] = field(default_factory=list)

    @property
    def image_url(self) -> str | None:
        return self.images[0] if self.images else None


@dataclass
class SubmissionOutcome:
    lead: LeadSubmitResult
    generation: GenerationResult


def _consume_owner_test(db: Session, form: Form) -> None:
    decision = admission_service.consume_daily_test(db, form.owner_id)
    if not decision.allowed:
        raise QuotaExceededError(
            QuotaResource.DAILY_TESTS.value, decision.current, decision.limit
        )


def _build_image_prompt(
    form_prompt: str | None,
    global_prompt: str | None,
    url: str,
    url_content: str,
    custom_fields: dict[str, Any],
) -> str:
    sections = [p for p in (form_prompt, global_prompt) if p]
    sections.append(text_generation_service.build_user_prompt(url, url_content, custom_fields))
    return "\n\n".join(sections)


async def generate_for_form(
    db: Session,
    form: Form,
    url: str,
    custom_fields: dict[str, Any] | None = None,
) -> GenerationResult:
    """Run the form's configured generation. Settings are read before any network call."""
    fields = normalize_custom_fields(custom_fields)
    result_format = ResultFormat(form.result_format)

    if result_format == ResultFormat.IMAGE:
        model_string = system_settings_service.get_image_model(db)
        global_prompt = system_settings_service.get_global_image_prompt(db)
    else:
        model_string = system_settings_service.get_text_model(db)
        global_prompt = system_settings_service.get_global_text_prompt(db)
    model_router.require_model(model_string, result_format.value)
    knowledge = knowledge_file_service.get_knowledge_texts(db, form.id)
    form_prompt = form.system_prompt
    image_size = form.image_size

    try:
        with anyio.fail_after(settings.AI_REQUEST_TIMEOUT_SECONDS):
            url_content = await text_generation_service.fetch_url_content(url)

            if result_format == ResultFormat.IMAGE:
                prompt = _build_image_prompt(
                    form_prompt, global_prompt, url, url_content, fields
                )
                image = await image_generation_service.generate_image(
                    model_string, prompt, size=image_size
                )
                return GenerationResult(result_format=result_format, images=image.images)

            text = await text_generation_service.generate_text(
                model_string,
                text_generation_service.build_system_prompt(form_prompt, global_prompt, knowledge),
                text_generation_service.build_user_prompt(url, url_content, fields),
            )
            return GenerationResult(result_format=result_format, text=text)
    except TimeoutError as exc:
        raise BackendFulfillmentError("AI request timed out") from exc


async def generate_preview(
    db: Session,
    form_id: uuid.UUID,
    url: str,
    custom_fields: dict[str, Any] | None = None,
    current_account_id: uuid.UUID | None = None,
) -> GenerationResult:
    """
    Generate content for a form without storing a lead.

    Raises:
        FormNotFoundError: form missing, or inactive and caller is not the owner
        QuotaExceededError: owner is out of daily tests
    """
    form = form_service.get_public_form(db, form_id, current_account_id)
    if current_account_id is not None and current_account_id == form.owner_id:
        _consume_owner_test(db, form)
    return await generate_for_form(db, form, url, custom_fields)


def record_lead(
    db: Session,
    form_id: uuid.UUID,
    email: str,
    payload: LeadPayload,
    current_account_id: uuid.UUID | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> LeadSubmitResult:
    """Store the lead and hand a LeadCreatedEvent to the dispatcher."""
    result = lead_service.submit_lead(db, form_id, email, payload, current_account_id)

    if dispatcher is not None:
        form = form_service.get_form(db, form_id)
        owner = form.owner if form else None
        dispatcher.notify(
            LeadCreatedEvent(
                form_id=form_id,
                form_name=form.name if form else "",
                lead_id=result.lead_id,
                owner_email=owner.email if owner else None,
                respondent_email=normalize_email(email) or email,
                url=payload.url,
                result_text=payload.result_text,
                result_image_url=payload.result_image_url,
                notify_owner=bool(form and form.notify_on_new_lead),
                send_to_respondent=bool(form and form.send_email_to_respondent),
            )
        )
    return result


async def process_submission(
    db: Session,
    form_id: uuid.UUID,
    email: str,
    url: str,
    custom_fields: dict[str, Any] | None = None,
    current_account_id: uuid.UUID | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> SubmissionOutcome:
    """
    Full visitor submission: admit, generate, store, notify.

    Raises:
        FormNotFoundError, DuplicateSubmissionError, QuotaExceededError,
        ConfigurationError, BackendFulfillmentError, PersistenceError
    """
    normalized = normalize_email(email)
    if not normalized:
        raise ValueError("Email is required")

    form = form_service.get_public_form(db, form_id, current_account_id)
    is_owner = current_account_id is not None and current_account_id == form.owner_id
    log_context = build_log_context(account_id=form.owner_id, form_id=form_id)

    if is_owner:
        _consume_owner_test(db, form)
    elif not lead_service.is_test_address(normalized):
        lead_service.ensure_not_duplicate(db, form_id, normalized)
        admission_service.require_admission(db, form.owner_id, QuotaResource.LEADS)

    generation = await generate_for_form(db, form, url, custom_fields)
    logger.info(
        "Generated %s result for %s", generation.result_format.value, mask_email(normalized),
        extra=log_context,
    )

    payload = LeadPayload(
        url=url,
        result_text=generation.text,
        result_image_url=generation.image_url,
        custom_fields=normalize_custom_fields(custom_fields),
    )
    lead = record_lead(db, form_id, normalized, payload, current_account_id, dispatcher)
    return SubmissionOutcome(lead=lead, generation=generation)


def get_submission_usage(db: Session, form_id: uuid.UUID, email: str) -> int:
    """How many leads exist for (form, email). 0 or 1 for standard submitters."""
    normalized = normalize_email(email)
    if not normalized:
        return 0
    form_service.get_public_form(db, form_id)
    return quota_store.count_form_leads(db, form_id, normalized)
