"""Quota admission for forms, leads, storage and daily AI tests.

check_admission is a pure read-and-decide step: the caller performs the
gated action and increments counters afterwards. When counters cannot be
read, write-amplifying resources fail closed while daily test accounting
fails open so a monitoring outage never blocks generation.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from smartresponse.core.errors import AdmissionUnavailableError, QuotaExceededError
from smartresponse.db.enums import FAIL_CLOSED_RESOURCES, QuotaResource
from smartresponse.services import quota_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    resource: QuotaResource
    allowed: bool
    current: int
    limit: int | None

    @property
    def remaining(self) -> int | None:
        if self.limit is None:
            return None
        return max(self.limit - self.current, 0)


def _read_usage(
    db: Session, account_id: uuid.UUID, resource: QuotaResource
) -> tuple[int, int | None]:
    limits = quota_store.get_account_limits(db, account_id)
    if resource == QuotaResource.FORMS:
        return quota_store.count_forms(db, account_id), limits.max_forms
    if resource == QuotaResource.LEADS:
        return quota_store.count_leads(db, account_id), limits.max_leads
    if resource == QuotaResource.STORAGE_BYTES:
        return quota_store.count_storage_bytes(db, account_id), limits.max_storage_bytes
    if resource == QuotaResource.DAILY_TESTS:
        return quota_store.get_daily_test_count(db, account_id), limits.daily_test_limit
    raise ValueError(f"Unknown quota resource: {resource}")


def _decide(resource: QuotaResource, current: int, limit: int | None, delta: int) -> AdmissionDecision:
    if limit is None:
        return AdmissionDecision(resource=resource, allowed=True, current=current, limit=None)
    return AdmissionDecision(
        resource=resource,
        allowed=current + delta <= limit,
        current=current,
        limit=limit,
    )


def check_admission(
    db: Session,
    account_id: uuid.UUID,
    resource: QuotaResource | str,
    delta: int = 1,
) -> AdmissionDecision:
    """Decide whether `delta` more units of `resource` fit within the account limit."""
    resource = QuotaResource(resource)
    try:
        current, limit = _read_usage(db, account_id, resource)
    except SQLAlchemyError as exc:
        if resource in FAIL_CLOSED_RESOURCES:
            logger.error(
                "Quota read failed; denying %s for account=%s",
                resource.value,
                account_id,
                exc_info=exc,
            )
            raise AdmissionUnavailableError(resource.value) from exc
        logger.warning(
            "Quota read failed; allowing %s for account=%s",
            resource.value,
            account_id,
            exc_info=exc,
        )
        return AdmissionDecision(resource=resource, allowed=True, current=0, limit=None)

    return _decide(resource, current, limit, delta)


def require_admission(
    db: Session,
    account_id: uuid.UUID,
    resource: QuotaResource | str,
    delta: int = 1,
) -> AdmissionDecision:
    """Like check_admission, but raise QuotaExceededError on denial."""
    decision = check_admission(db, account_id, resource, delta)
    if not decision.allowed:
        raise QuotaExceededError(decision.resource.value, decision.current, decision.limit)
    return decision


def consume_daily_test(db: Session, account_id: uuid.UUID) -> AdmissionDecision:
    """
    Count one AI test against today's limit.

    Increments first (atomic increment-and-return) and then compares, so
    two concurrent tests can never both take the last slot. Denied attempts
    stay counted. Commits the increment. Store failures let the test through.
    """
    try:
        limits = quota_store.get_account_limits(db, account_id)
        new_count = quota_store.increment_daily_test_count(db, account_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Daily test accounting failed; allowing test for account=%s",
            account_id,
            exc_info=exc,
        )
        return AdmissionDecision(
            resource=QuotaResource.DAILY_TESTS, allowed=True, current=0, limit=None
        )

    # Report usage before this test, matching check_admission(delta=1)
    return _decide(QuotaResource.DAILY_TESTS, new_count - 1, limits.daily_test_limit, 1)


def get_usage_snapshot(db: Session, account_id: uuid.UUID) -> dict[str, AdmissionDecision]:
    """Current usage for every resource (zero delta), keyed by resource name."""
    return {
        resource.value: check_admission(db, account_id, resource, delta=0)
        for resource in QuotaResource
    }
