"""Public form endpoints for visitors (generation, lead capture, usage)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from smartresponse.core.deps import get_db, get_notification_dispatcher, get_optional_account
from smartresponse.core.rate_limit import PUBLIC_SUBMIT_LIMIT, limiter
from smartresponse.schemas.submission import (
    GenerateRequest,
    GenerateResponse,
    LeadCreateRequest,
    LeadCreateResponse,
    SubmissionRequest,
    SubmissionResponse,
    UsageResponse,
)
from smartresponse.services import submission_service
from smartresponse.services.lead_service import LeadPayload
from smartresponse.services.notification_service import NotificationDispatcher

router = APIRouter(prefix="/public/forms", tags=["public"])


def _account_id(account) -> UUID | None:
    return account.id if account else None


@router.post("/{form_id}/generate", response_model=GenerateResponse)
@limiter.limit(PUBLIC_SUBMIT_LIMIT)
async def generate(
    request: Request,
    form_id: UUID,
    data: GenerateRequest,
    db: Session = Depends(get_db),
    account=Depends(get_optional_account),
):
    """Generate a result for a visitor URL without storing a lead."""
    result = await submission_service.generate_preview(
        db, form_id, data.url, data.custom_fields, _account_id(account)
    )
    return GenerateResponse(
        result_format=result.result_format, text=result.text, images=result.images
    )


@router.post("/{form_id}/leads", response_model=LeadCreateResponse, status_code=201)
@limiter.limit(PUBLIC_SUBMIT_LIMIT)
def create_lead(
    request: Request,
    form_id: UUID,
    data: LeadCreateRequest,
    db: Session = Depends(get_db),
    account=Depends(get_optional_account),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Store a lead for an already generated result."""
    payload = LeadPayload(
        url=data.url,
        result_text=data.result_text,
        result_image_url=data.result_image_url,
        custom_fields=data.custom_fields,
    )
    try:
        result = submission_service.record_lead(
            db, form_id, data.email, payload, _account_id(account), dispatcher
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return LeadCreateResponse(lead_id=result.lead_id, privileged=result.privileged)


@router.post("/{form_id}/submissions", response_model=SubmissionResponse, status_code=201)
@limiter.limit(PUBLIC_SUBMIT_LIMIT)
async def submit(
    request: Request,
    form_id: UUID,
    data: SubmissionRequest,
    db: Session = Depends(get_db),
    account=Depends(get_optional_account),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Admit, generate, store and notify in one request."""
    try:
        outcome = await submission_service.process_submission(
            db,
            form_id,
            data.email,
            data.url,
            data.custom_fields,
            _account_id(account),
            dispatcher,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SubmissionResponse(
        lead_id=outcome.lead.lead_id,
        result_format=outcome.generation.result_format,
        text=outcome.generation.text,
        images=outcome.generation.images,
    )


@router.get("/{form_id}/usage", response_model=UsageResponse)
def get_usage(form_id: UUID, email: str, db: Session = Depends(get_db)):
    count = submission_service.get_submission_usage(db, form_id, email)
    return UsageResponse(count=count, exists=count > 0)
