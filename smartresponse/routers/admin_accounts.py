"""Superadmin endpoints for account quota limits."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from smartresponse.core.deps import get_db, require_superadmin
from smartresponse.schemas.account import AccountQuotaRead, AccountQuotaUpdate
from smartresponse.services import account_service

router = APIRouter(prefix="/admin/accounts", tags=["admin"])


@router.patch("/{account_id}/quotas", response_model=AccountQuotaRead)
def update_quotas(
    account_id: UUID,
    data: AccountQuotaUpdate,
    account=Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    """Update limits and publishing rights. Null clears a limit."""
    try:
        return account_service.update_account_quotas(
            db, account, account_id, data.model_dump(exclude_unset=True)
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
