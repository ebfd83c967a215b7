"""Form ownership, creation and generation settings."""

import logging
import uuid

from sqlalchemy.orm import Session

from smartresponse.core.errors import FormNotFoundError, QuotaExceededError
from smartresponse.db.enums import ImageSize, QuotaResource, ResultFormat
from smartresponse.db.models import Account, Form
from smartresponse.services import admission_service

logger = logging.getLogger(__name__)

DEFAULT_FORM_NAME = "My form"
DEFAULT_SYSTEM_PROMPT = (
    "You are an expert business consultant. Analyze the provided website and "
    "generate clear, actionable recommendations."
)


class FormPublishingDisabledError(Exception):
    """Account is not allowed to publish forms."""

    pass


def get_form(db: Session, form_id: uuid.UUID) -> Form | None:
    return db.get(Form, form_id)


def get_owned_form(db: Session, account_id: uuid.UUID, form_id: uuid.UUID) -> Form:
    form = db.get(Form, form_id)
    if not form or form.owner_id != account_id:
        raise FormNotFoundError("Form not found")
    return form


def get_public_form(
    db: Session, form_id: uuid.UUID, viewer_account_id: uuid.UUID | None = None
) -> Form:
    """Active forms are public; inactive forms are visible to their owner only."""
    form = db.get(Form, form_id)
    if not form:
        raise FormNotFoundError("Form not found")
    if not form.is_active and form.owner_id != viewer_account_id:
        raise FormNotFoundError("Form not found")
    return form


def list_forms(db: Session, account_id: uuid.UUID) -> list[Form]:
    return (
        db.query(Form)
        .filter(Form.owner_id == account_id)
        .order_by(Form.created_at.desc())
        .all()
    )


def create_form(db: Session, account: Account, name: str | None = None) -> Form:
    """
    Create a form for the account.

    Raises:
        FormPublishingDisabledError: account cannot publish forms
        QuotaExceededError: form limit reached
    """
    if not account.can_publish_forms:
        raise FormPublishingDisabledError(
            "Form publishing is disabled for this account. Contact an administrator."
        )

    decision = admission_service.check_admission(db, account.id, QuotaResource.FORMS)
    if not decision.allowed:
        raise QuotaExceededError(QuotaResource.FORMS.value, decision.current, decision.limit)

    form = Form(
        owner_id=account.id,
        name=(name or "").strip() or DEFAULT_FORM_NAME,
        is_active=False,
        lead_count=0,
        result_format=ResultFormat.TEXT.value,
        system_prompt=DEFAULT_SYSTEM_PROMPT,
        image_size=ImageSize.SQUARE.value,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("Form %s created for account=%s", form.id, account.id)
    return form


def update_form(
    db: Session,
    form: Form,
    *,
    name: str | None = None,
    is_active: bool | None = None,
    result_format: ResultFormat | None = None,
    system_prompt: str | None = None,
    image_size: ImageSize | None = None,
    notify_on_new_lead: bool | None = None,
    send_email_to_respondent: bool | None = None,
) -> Form:
    if name is not None:
        form.name = name.strip() or form.name
    if is_active is not None:
        form.is_active = is_active
    if result_format is not None:
        form.result_format = ResultFormat(result_format).value
    if system_prompt is not None:
        form.system_prompt = system_prompt
    if image_size is not None:
        form.image_size = ImageSize(image_size).value
    if notify_on_new_lead is not None:
        form.notify_on_new_lead = notify_on_new_lead
    if send_email_to_respondent is not None:
        form.send_email_to_respondent = send_email_to_respondent

    db.commit()
    db.refresh(form)
    return form
