"""Tests for quota admission and daily test accounting."""

from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from smartresponse.core.errors import AdmissionUnavailableError, QuotaExceededError
from smartresponse.db.enums import QuotaResource
from smartresponse.db.models import KnowledgeFile, Lead
from smartresponse.services import admission_service, quota_store


def _add_leads(db, form, count):
    for i in range(count):
        db.add(Lead(form_id=form.id, email=f"visitor{i}@example.com"))
    db.commit()


def test_unlimited_account_is_always_admitted(db, test_account, test_form):
    _add_leads(db, test_form, 5)

    decision = admission_service.check_admission(db, test_account.id, QuotaResource.LEADS)

    assert decision.allowed is True
    assert decision.current == 5
    assert decision.limit is None
    assert decision.remaining is None


def test_lead_limit_rejects_the_next_lead(db, account_factory, form_factory):
    account = account_factory(max_leads=3)
    form = form_factory(account)
    _add_leads(db, form, 3)

    decision = admission_service.check_admission(db, account.id, QuotaResource.LEADS)

    assert decision.allowed is False
    assert decision.current == 3
    assert decision.limit == 3

    with pytest.raises(QuotaExceededError) as exc_info:
        admission_service.require_admission(db, account.id, QuotaResource.LEADS)
    assert exc_info.value.resource == "leads"
    assert exc_info.value.current == 3
    assert exc_info.value.limit == 3


def test_lead_count_spans_all_owned_forms(db, account_factory, form_factory):
    account = account_factory(max_leads=4)
    first = form_factory(account)
    second = form_factory(account, name="Second")
    _add_leads(db, first, 2)
    db.add(Lead(form_id=second.id, email="a@example.com"))
    db.commit()

    decision = admission_service.check_admission(db, account.id, QuotaResource.LEADS)

    assert decision.current == 3
    assert decision.allowed is True
    assert decision.remaining == 1


def test_lead_count_ignores_display_counter(db, account_factory, form_factory):
    account = account_factory(max_leads=1)
    form_factory(account, lead_count=50)

    decision = admission_service.check_admission(db, account.id, "leads")

    assert decision.current == 0
    assert decision.allowed is True


def test_storage_admission_uses_delta(db, account_factory, form_factory):
    account = account_factory(max_storage_bytes=1000)
    form = form_factory(account)
    db.add(KnowledgeFile(form_id=form.id, file_name="a.txt", content_type="text/plain", file_size=600))
    db.commit()

    assert admission_service.check_admission(
        db, account.id, QuotaResource.STORAGE_BYTES, delta=400
    ).allowed is True
    denied = admission_service.check_admission(
        db, account.id, QuotaResource.STORAGE_BYTES, delta=401
    )
    assert denied.allowed is False
    assert denied.current == 600


def test_forms_limit(db, account_factory, form_factory):
    account = account_factory(max_forms=1)
    form_factory(account)

    decision = admission_service.check_admission(db, account.id, QuotaResource.FORMS)

    assert decision.allowed is False
    assert (decision.current, decision.limit) == (1, 1)


@pytest.mark.parametrize(
    "resource",
    [QuotaResource.LEADS, QuotaResource.STORAGE_BYTES, QuotaResource.FORMS],
)
def test_counter_read_failure_fails_closed(db, test_account, monkeypatch, resource):
    def broken(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("database is down"))

    monkeypatch.setattr(quota_store, "get_account_limits", broken)

    with pytest.raises(AdmissionUnavailableError):
        admission_service.check_admission(db, test_account.id, resource)


def test_daily_test_read_failure_fails_open(db, test_account, monkeypatch):
    def broken(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("database is down"))

    monkeypatch.setattr(quota_store, "get_account_limits", broken)

    decision = admission_service.check_admission(db, test_account.id, QuotaResource.DAILY_TESTS)

    assert decision.allowed is True
    assert decision.current == 0
    assert decision.limit is None


def test_consume_daily_test_increments_then_denies(db, account_factory):
    account = account_factory(daily_test_limit=2)

    first = admission_service.consume_daily_test(db, account.id)
    second = admission_service.consume_daily_test(db, account.id)
    third = admission_service.consume_daily_test(db, account.id)

    assert (first.allowed, first.current) == (True, 0)
    assert (second.allowed, second.current) == (True, 1)
    assert (third.allowed, third.current, third.limit) == (False, 2, 2)
    # Denied attempts stay counted
    assert quota_store.get_daily_test_count(db, account.id) == 3


def test_consume_daily_test_fails_open_on_store_error(db, account_factory, monkeypatch):
    account = account_factory(daily_test_limit=0)

    def broken(*_args, **_kwargs):
        raise OperationalError("UPDATE", {}, Exception("locked"))

    monkeypatch.setattr(quota_store, "increment_daily_test_count", broken)

    decision = admission_service.consume_daily_test(db, account.id)

    assert decision.allowed is True
    assert decision.limit is None


def test_daily_counter_resets_on_new_utc_day(db, test_account):
    day = date(2026, 3, 1)
    for _ in range(4):
        quota_store.increment_daily_test_count(db, test_account.id, on_date=day)
    db.commit()

    assert quota_store.get_daily_test_count(db, test_account.id, on_date=day) == 4
    next_day = day + timedelta(days=1)
    assert quota_store.get_daily_test_count(db, test_account.id, on_date=next_day) == 0

    assert quota_store.increment_daily_test_count(db, test_account.id, on_date=next_day) == 1
    db.commit()
    assert quota_store.get_daily_test_count(db, test_account.id, on_date=next_day) == 1


def test_usage_snapshot_covers_every_resource(db, account_factory, form_factory):
    account = account_factory(max_forms=5, max_leads=10)
    form = form_factory(account)
    _add_leads(db, form, 2)

    snapshot = admission_service.get_usage_snapshot(db, account.id)

    assert set(snapshot) == {"forms", "leads", "storage_bytes", "daily_tests"}
    assert snapshot["forms"].current == 1
    assert snapshot["leads"].remaining == 8
    assert snapshot["storage_bytes"].limit is None
