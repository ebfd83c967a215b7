"""Form management endpoints for authenticated accounts."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from smartresponse.core.deps import get_current_account, get_db
from smartresponse.schemas.form import (
    FormCreate,
    FormRead,
    FormUpdate,
    KnowledgeFileRead,
    QuotaSnapshot,
    QuotaUsage,
)
from smartresponse.services import admission_service, form_service, knowledge_file_service

router = APIRouter(prefix="/forms", tags=["forms"])


@router.get("", response_model=list[FormRead])
def list_forms(account=Depends(get_current_account), db: Session = Depends(get_db)):
    return form_service.list_forms(db, account.id)


@router.post("", response_model=FormRead, status_code=201)
def create_form(
    data: FormCreate,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    try:
        return form_service.create_form(db, account, data.name)
    except form_service.FormPublishingDisabledError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.get("/{form_id}", response_model=FormRead)
def get_form(form_id: UUID, account=Depends(get_current_account), db: Session = Depends(get_db)):
    return form_service.get_owned_form(db, account.id, form_id)


@router.patch("/{form_id}", response_model=FormRead)
def update_form(
    form_id: UUID,
    data: FormUpdate,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    form = form_service.get_owned_form(db, account.id, form_id)
    return form_service.update_form(db, form, **data.model_dump(exclude_unset=True))


@router.get("/{form_id}/quota", response_model=QuotaSnapshot)
def get_quota(form_id: UUID, account=Depends(get_current_account), db: Session = Depends(get_db)):
    """Usage against every account limit, from the perspective of one form's owner."""
    form = form_service.get_owned_form(db, account.id, form_id)
    snapshot = admission_service.get_usage_snapshot(db, form.owner_id)
    return QuotaSnapshot(
        **{
            name: QuotaUsage(
                current=decision.current, limit=decision.limit, remaining=decision.remaining
            )
            for name, decision in snapshot.items()
        }
    )


@router.get("/{form_id}/knowledge-files", response_model=list[KnowledgeFileRead])
def list_knowledge_files(
    form_id: UUID, account=Depends(get_current_account), db: Session = Depends(get_db)
):
    form = form_service.get_owned_form(db, account.id, form_id)
    return knowledge_file_service.list_knowledge_files(db, form.id)


@router.post("/{form_id}/knowledge-files", response_model=KnowledgeFileRead, status_code=201)
async def upload_knowledge_file(
    form_id: UUID,
    file: UploadFile = File(...),
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    form = form_service.get_owned_form(db, account.id, form_id)
    content = await file.read()
    return knowledge_file_service.add_knowledge_file(
        db, form, file.filename or "upload", file.content_type, content
    )


@router.delete("/{form_id}/knowledge-files/{file_id}", status_code=204)
def delete_knowledge_file(
    form_id: UUID,
    file_id: UUID,
    account=Depends(get_current_account),
    db: Session = Depends(get_db),
):
    form = form_service.get_owned_form(db, account.id, form_id)
    if not knowledge_file_service.delete_knowledge_file(db, form, file_id):
        raise HTTPException(status_code=404, detail="File not found")
