"""Account administration: quota limits and publishing rights."""

import logging
import uuid
from typing import Any

from sqlalchemy.orm import Session

from smartresponse.core.errors import AccountNotFoundError
from smartresponse.db.models import Account

logger = logging.getLogger(__name__)

# None clears a limit (unlimited)
QUOTA_FIELDS = ("max_forms", "max_leads", "max_storage_bytes", "daily_test_limit")


def get_account(db: Session, account_id: uuid.UUID) -> Account:
    account = db.get(Account, account_id)
    if not account:
        raise AccountNotFoundError("Account not found")
    return account


def update_account_quotas(
    db: Session,
    actor: Account,
    account_id: uuid.UUID,
    changes: dict[str, Any],
) -> Account:
    """
    Set quota limits and publishing rights on another account.

    Only keys present in `changes` are written. Superadmins cannot edit
    their own quotas.

    Raises:
        PermissionError: actor is not a superadmin, or targets itself
        AccountNotFoundError: no such account
        ValueError: nothing to update, or an invalid value
    """
    if not actor.is_superadmin:
        raise PermissionError("Only superadmins can change account quotas")
    if actor.id == account_id:
        raise PermissionError("You cannot change your own quotas")

    updates = {k: v for k, v in changes.items() if k in QUOTA_FIELDS or k == "can_publish_forms"}
    if not updates:
        raise ValueError("No quota fields to update")
    for field_name in QUOTA_FIELDS:
        value = updates.get(field_name)
        if value is not None and value < 0:
            raise ValueError(f"{field_name} cannot be negative")
    if "can_publish_forms" in updates and updates["can_publish_forms"] is None:
        raise ValueError("can_publish_forms must be true or false")

    account = get_account(db, account_id)
    for field_name, value in updates.items():
        setattr(account, field_name, value)
    db.commit()
    db.refresh(account)

    logger.info(
        "Quotas updated for account=%s by account=%s fields=%s",
        account.id,
        actor.id,
        sorted(updates),
    )
    return account
