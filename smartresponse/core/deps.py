"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from smartresponse.core.security import decode_session_token
from smartresponse.db.session import SessionLocal
from smartresponse.services.notification_service import NotificationDispatcher, get_dispatcher


# Cookie name
COOKIE_NAME = "sr_session"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_notification_dispatcher() -> NotificationDispatcher:
    return get_dispatcher()


def _load_account(request: Request, db: Session):
    # Import here to avoid circular imports
    from smartresponse.db.models import Account

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None, "Not authenticated"

    try:
        payload = decode_session_token(token)
        account_id = UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        return None, "Invalid session"

    account = db.get(Account, account_id)
    if not account:
        return None, "Account not found"
    if not account.is_active:
        return None, "Account disabled"
    return account, None


def get_current_account(request: Request, db: Session = Depends(get_db)):
    """
    Get authenticated account from session cookie.

    Raises:
        HTTPException 401: Authentication failed
    """
    account, error = _load_account(request, db)
    if account is None:
        raise HTTPException(status_code=401, detail=error)
    return account


def get_optional_account(request: Request, db: Session = Depends(get_db)):
    """Account for public endpoints: None for anonymous visitors."""
    account, _ = _load_account(request, db)
    return account


def require_superadmin(account=Depends(get_current_account)):
    """
    Require the superadmin role.

    Raises:
        HTTPException 403: Caller is not a superadmin
    """
    if not account.is_superadmin:
        raise HTTPException(status_code=403, detail="Superadmin access required")
    return account
