"""Usage counters and account limits.

Counts are recomputed from stored rows; increments are issued as single
UPDATE statements relative to the current column value so concurrent
submissions never lose updates. Functions here flush but never commit.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smartresponse.db.models import Account, DailyTestUsage, Form, KnowledgeFile, Lead


@dataclass(frozen=True)
class AccountLimits:
    """Configured limits for an account. None means unlimited."""

    max_forms: int | None
    max_leads: int | None
    max_storage_bytes: int | None
    daily_test_limit: int | None


def current_usage_date() -> date:
    """Daily test counters roll over at UTC midnight."""
    return datetime.now(timezone.utc).date()


def get_account_limits(db: Session, account_id: uuid.UUID) -> AccountLimits:
    account = db.get(Account, account_id)
    if not account:
        raise ValueError("Account not found")
    return AccountLimits(
        max_forms=account.max_forms,
        max_leads=account.max_leads,
        max_storage_bytes=account.max_storage_bytes,
        daily_test_limit=account.daily_test_limit,
    )


def count_forms(db: Session, account_id: uuid.UUID) -> int:
    return db.scalar(
        select(func.count(Form.id)).where(Form.owner_id == account_id)
    ) or 0


def count_leads(db: Session, account_id: uuid.UUID) -> int:
    """Count stored leads across every form the account owns."""
    return db.scalar(
        select(func.count(Lead.id))
        .join(Form, Form.id == Lead.form_id)
        .where(Form.owner_id == account_id)
    ) or 0


def count_form_leads(db: Session, form_id: uuid.UUID, email: str | None = None) -> int:
    stmt = select(func.count(Lead.id)).where(Lead.form_id == form_id)
    if email is not None:
        stmt = stmt.where(Lead.email == email)
    return db.scalar(stmt) or 0


def count_storage_bytes(db: Session, account_id: uuid.UUID) -> int:
    """Sum knowledge file sizes across every form the account owns."""
    total = db.scalar(
        select(func.coalesce(func.sum(KnowledgeFile.file_size), 0))
        .join(Form, Form.id == KnowledgeFile.form_id)
        .where(Form.owner_id == account_id)
    )
    return int(total or 0)


def get_daily_test_count(
    db: Session, account_id: uuid.UUID, on_date: date | None = None
) -> int:
    """Read today's test count; a row left over from a previous day reads as 0."""
    on_date = on_date or current_usage_date()
    usage = db.get(DailyTestUsage, account_id, populate_existing=True)
    if not usage or usage.usage_date != on_date:
        return 0
    return usage.test_count


def increment_daily_test_count(
    db: Session, account_id: uuid.UUID, on_date: date | None = None
) -> int:
    """
    Atomically increment the account's test counter and return the new value.

    The first increment on a new day resets the counter to 1 in the same
    statement. The row is created on first use.
    """
    on_date = on_date or current_usage_date()
    new_count = _bump_daily_test_row(db, account_id, on_date)
    if new_count is not None:
        return new_count

    try:
        with db.begin_nested():
            db.add(DailyTestUsage(account_id=account_id, usage_date=on_date, test_count=1))
        return 1
    except IntegrityError:
        # Another request created the row first
        new_count = _bump_daily_test_row(db, account_id, on_date)
        if new_count is None:
            raise
        return new_count


def _bump_daily_test_row(db: Session, account_id: uuid.UUID, on_date: date) -> int | None:
    stmt = (
        update(DailyTestUsage)
        .where(DailyTestUsage.account_id == account_id)
        .values(
            test_count=case(
                (DailyTestUsage.usage_date == on_date, DailyTestUsage.test_count + 1),
                else_=1,
            ),
            usage_date=on_date,
        )
        .returning(DailyTestUsage.test_count)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).scalar_one_or_none()


def increment_form_lead_count(db: Session, form_id: uuid.UUID) -> int | None:
    """Atomically bump the denormalized display counter. Returns the new value."""
    stmt = (
        update(Form)
        .where(Form.id == form_id)
        .values(lead_count=Form.lead_count + 1)
        .returning(Form.lead_count)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).scalar_one_or_none()
