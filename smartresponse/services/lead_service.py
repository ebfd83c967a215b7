"""Lead capture with at-most-once semantics per (form, email).

Privileged submitters (the designated test address and the form owner)
replace their previous lead and never touch lead quotas. Everyone else
gets one lead per form; the (form_id, email) unique constraint is what
catches two racing submissions.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from smartresponse.core.config import settings
from smartresponse.core.errors import (
    DuplicateSubmissionError,
    FormNotFoundError,
    PersistenceError,
)
from smartresponse.core.structured_logging import build_log_context, mask_email
from smartresponse.db.enums import LeadStatus, QuotaResource
from smartresponse.db.models import Form, Lead
from smartresponse.services import admission_service, quota_store
from smartresponse.utils.normalization import normalize_email

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "A submission from this email already exists"


@dataclass
class LeadPayload:
    url: str | None = None
    result_text: str | None = None
    result_image_url: str | None = None
    custom_fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LeadSubmitResult:
    created: bool
    lead_id: uuid.UUID
    privileged: bool


def is_test_address(email: str | None) -> bool:
    normalized = normalize_email(email)
    return bool(normalized) and normalized == normalize_email(settings.TEST_EMAIL)


def is_form_owner(db: Session, account_id: uuid.UUID | None, form_id: uuid.UUID) -> bool:
    if not account_id:
        return False
    owner_id = db.scalar(select(Form.owner_id).where(Form.id == form_id))
    return owner_id is not None and owner_id == account_id


def is_privileged_submitter(
    db: Session, email: str, form_id: uuid.UUID, account_id: uuid.UUID | None
) -> bool:
    return is_test_address(email) or is_form_owner(db, account_id, form_id)


def find_lead(db: Session, form_id: uuid.UUID, email: str) -> Lead | None:
    return db.scalar(
        select(Lead).where(Lead.form_id == form_id, Lead.email == normalize_email(email))
    )


def get_form(db: Session, form_id: uuid.UUID) -> Form:
    form = db.get(Form, form_id)
    if not form:
        raise FormNotFoundError("Form not found")
    return form


def ensure_not_duplicate(db: Session, form_id: uuid.UUID, email: str) -> None:
    if find_lead(db, form_id, email) is not None:
        raise DuplicateSubmissionError(DUPLICATE_MESSAGE)


def _insert_lead(db: Session, form_id: uuid.UUID, email: str, payload: LeadPayload) -> Lead:
    lead = Lead(
        id=uuid.uuid4(),
        form_id=form_id,
        email=email,
        url=payload.url,
        result_text=payload.result_text,
        result_image_url=payload.result_image_url,
        status=LeadStatus.COMPLETED.value,
        custom_fields=payload.custom_fields or None,
    )
    db.add(lead)
    db.flush()
    return lead


def _persist(db: Session, form_id: uuid.UUID, email: str, payload: LeadPayload, *, replace: bool) -> Lead:
    try:
        if replace:
            db.execute(delete(Lead).where(Lead.form_id == form_id, Lead.email == email))
        lead = _insert_lead(db, form_id, email, payload)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateSubmissionError(DUPLICATE_MESSAGE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("Failed to save submission") from exc
    return lead


def submit_lead(
    db: Session,
    form_id: uuid.UUID,
    email: str,
    payload: LeadPayload,
    current_account_id: uuid.UUID | None = None,
) -> LeadSubmitResult:
    """
    Store a lead for (form_id, email).

    Raises:
        FormNotFoundError: form does not exist
        DuplicateSubmissionError: standard submitter already has a lead
        QuotaExceededError: account lead limit reached
        PersistenceError: storage write failed (counters untouched)
    """
    normalized = normalize_email(email)
    if not normalized:
        raise ValueError("Email is required")

    form = get_form(db, form_id)
    owner_id = form.owner_id
    log_context = build_log_context(account_id=owner_id, form_id=form_id)
    privileged = is_privileged_submitter(db, normalized, form_id, current_account_id)

    if privileged:
        lead = _persist(db, form_id, normalized, payload, replace=True)
        logger.info(
            "Privileged lead replaced for %s", mask_email(normalized), extra=log_context
        )
        return LeadSubmitResult(created=True, lead_id=lead.id, privileged=True)

    ensure_not_duplicate(db, form_id, normalized)
    admission_service.require_admission(db, owner_id, QuotaResource.LEADS)

    lead = _persist(db, form_id, normalized, payload, replace=False)
    lead_id = lead.id

    # Display counter only; quota checks recount Lead rows
    try:
        quota_store.increment_form_lead_count(db, form_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to bump lead_count for stored lead", extra=log_context)

    logger.info("Lead %s stored for %s", lead_id, mask_email(normalized), extra=log_context)
    return LeadSubmitResult(created=True, lead_id=lead_id, privileged=False)
