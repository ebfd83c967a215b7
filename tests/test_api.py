"""HTTP tests for public, form, AI and admin endpoints."""

import uuid

import pytest

from smartresponse.core.config import settings
from smartresponse.core.errors import BackendFulfillmentError
from smartresponse.db.enums import SystemSettingKey
from smartresponse.db.models import Lead


# =============================================================================
# Public endpoints
# =============================================================================

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["version"] == settings.VERSION


@pytest.mark.asyncio
async def test_create_lead_then_duplicate(client, db, test_form, dispatcher):
    body = {"email": "visitor@example.com", "url": "https://acme.test", "result_text": "tips"}

    first = await client.post(f"/public/forms/{test_form.id}/leads", json=body)
    second = await client.post(f"/public/forms/{test_form.id}/leads", json=body)

    assert first.status_code == 201
    assert first.json()["success"] is True
    assert second.status_code == 409
    assert len(dispatcher.events) == 1
    assert db.query(Lead).filter(Lead.form_id == test_form.id).count() == 1


@pytest.mark.asyncio
async def test_lead_quota_error_body(client, account_factory, form_factory):
    account = account_factory(max_leads=1)
    form = form_factory(account)
    await client.post(f"/public/forms/{form.id}/leads", json={"email": "a@example.com"})

    response = await client.post(f"/public/forms/{form.id}/leads", json={"email": "b@example.com"})

    assert response.status_code == 403
    body = response.json()
    assert body["resource"] == "leads"
    assert body["current"] == 1
    assert body["limit"] == 1
    assert body["message"]


@pytest.mark.asyncio
async def test_test_address_never_rejected(client, account_factory, form_factory):
    account = account_factory(max_leads=0)
    form = form_factory(account)

    for _ in range(3):
        response = await client.post(
            f"/public/forms/{form.id}/leads", json={"email": settings.TEST_EMAIL}
        )
        assert response.status_code == 201
        assert response.json()["privileged"] is True


@pytest.mark.asyncio
async def test_lead_for_unknown_form(client):
    response = await client.post(
        f"/public/forms/{uuid.uuid4()}/leads", json={"email": "visitor@example.com"}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_submission_pipeline(
    client, test_form, configured_models, fake_provider, fake_url_fetch, dispatcher
):
    response = await client.post(
        f"/public/forms/{test_form.id}/submissions",
        json={"email": "visitor@example.com", "url": "https://acme.test"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["result_format"] == "text"
    assert data["text"] == "Generated recommendations"
    assert len(dispatcher.events) == 1


@pytest.mark.asyncio
async def test_submission_without_model_is_503(client, test_form, fake_provider, fake_url_fetch):
    response = await client.post(
        f"/public/forms/{test_form.id}/submissions",
        json={"email": "visitor@example.com", "url": "https://acme.test"},
    )

    assert response.status_code == 503
    assert "text model" in response.json()["detail"]


@pytest.mark.asyncio
async def test_backend_failure_is_502(
    client, test_form, configured_models, fake_provider, fake_url_fetch
):
    fake_provider.chat_error = BackendFulfillmentError("openai API error: 500", provider="openai")

    response = await client.post(
        f"/public/forms/{test_form.id}/generate", json={"url": "https://acme.test"}
    )

    assert response.status_code == 502


@pytest.mark.asyncio
async def test_owner_preview_spends_daily_tests(
    login, db, account_factory, form_factory, configured_models, fake_provider, fake_url_fetch
):
    owner = account_factory(daily_test_limit=1)
    form = form_factory(owner, is_active=False)
    client = login(owner)

    first = await client.post(f"/public/forms/{form.id}/generate", json={"url": "https://acme.test"})
    second = await client.post(f"/public/forms/{form.id}/generate", json={"url": "https://acme.test"})

    assert first.status_code == 200
    assert second.status_code == 403
    assert second.json()["resource"] == "daily_tests"


@pytest.mark.asyncio
async def test_inactive_form_is_404_for_visitors(client, form_factory, test_account):
    form = form_factory(test_account, is_active=False)

    response = await client.post(f"/public/forms/{form.id}/generate", json={"url": "https://acme.test"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_usage_endpoint(client, test_form):
    await client.post(f"/public/forms/{test_form.id}/leads", json={"email": "visitor@example.com"})

    used = await client.get(
        f"/public/forms/{test_form.id}/usage", params={"email": "Visitor@Example.com"}
    )
    unused = await client.get(
        f"/public/forms/{test_form.id}/usage", params={"email": "new@example.com"}
    )

    assert used.json() == {"count": 1, "exists": True}
    assert unused.json() == {"count": 0, "exists": False}


# =============================================================================
# Forms
# =============================================================================

@pytest.mark.asyncio
async def test_forms_require_auth(client):
    response = await client.post("/forms", json={"name": "New"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_session_cookie_is_401(client):
    client.cookies.set("sr_session", "not-a-token")

    response = await client.get("/forms")

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid session"


@pytest.mark.asyncio
async def test_disabled_account_is_401(login, account_factory):
    client = login(account_factory(is_active=False))

    response = await client.get("/forms")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_form_respects_quota(login, account_factory):
    account = account_factory(max_forms=1)
    client = login(account)

    created = await client.post("/forms", json={"name": "First"})
    rejected = await client.post("/forms", json={"name": "Second"})

    assert created.status_code == 201
    assert created.json()["is_active"] is False
    assert rejected.status_code == 403
    assert rejected.json() == {
        "message": rejected.json()["message"],
        "resource": "forms",
        "current": 1,
        "limit": 1,
    }


@pytest.mark.asyncio
async def test_create_form_requires_publishing_rights(login, account_factory):
    client = login(account_factory(can_publish_forms=False))

    response = await client.post("/forms", json={"name": "First"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_form_settings(authed_client, test_form):
    response = await authed_client.patch(
        f"/forms/{test_form.id}",
        json={"result_format": "image", "image_size": "1536x1024", "is_active": False},
    )

    assert response.status_code == 200
    assert response.json()["result_format"] == "image"
    assert response.json()["image_size"] == "1536x1024"


@pytest.mark.asyncio
async def test_other_accounts_form_is_404(login, account_factory, test_form):
    client = login(account_factory())

    response = await client.get(f"/forms/{test_form.id}/quota")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_quota_snapshot(authed_client, test_form):
    await authed_client.post(
        f"/public/forms/{test_form.id}/leads", json={"email": "visitor@example.com"}
    )

    response = await authed_client.get(f"/forms/{test_form.id}/quota")

    assert response.status_code == 200
    data = response.json()
    assert data["forms"]["current"] == 1
    assert data["daily_tests"]["limit"] is None


@pytest.mark.asyncio
async def test_knowledge_file_upload(authed_client, test_form):
    response = await authed_client.post(
        f"/forms/{test_form.id}/knowledge-files",
        files={"file": ("faq.txt", b"We ship worldwide.", "text/plain")},
    )

    assert response.status_code == 201
    assert response.json()["file_size"] == 18

    listing = await authed_client.get(f"/forms/{test_form.id}/knowledge-files")
    assert [f["file_name"] for f in listing.json()] == ["faq.txt"]


@pytest.mark.asyncio
async def test_knowledge_file_rejected_type(authed_client, test_form):
    response = await authed_client.post(
        f"/forms/{test_form.id}/knowledge-files",
        files={"file": ("photo.png", b"\x89PNG", "image/png")},
    )

    assert response.status_code == 400


# =============================================================================
# AI helpers and admin settings
# =============================================================================

@pytest.mark.asyncio
async def test_improve_prompt(authed_client, configured_models, fake_provider):
    fake_provider.chat_content = "  Improved prompt  "

    response = await authed_client.post("/ai/improve-prompt", json={"prompt": "write tips"})

    assert response.status_code == 200
    assert response.json() == {"prompt": "Improved prompt"}


@pytest.mark.asyncio
async def test_admin_settings_round_trip(login, superadmin):
    client = login(superadmin)

    updated = await client.put("/admin/settings/text_model", json={"value": "openrouter:meta/llama"})
    fetched = await client.get("/admin/settings/text_model")

    assert updated.status_code == 200
    assert fetched.json() == {"key": "text_model", "value": "openrouter:meta/llama"}


@pytest.mark.asyncio
async def test_admin_settings_update_is_visible_to_generation(
    login, superadmin, setting_writer, test_form, fake_provider, fake_url_fetch
):
    setting_writer(SystemSettingKey.TEXT_MODEL, "openai:gpt-4o-mini")
    client = login(superadmin)

    await client.post(f"/public/forms/{test_form.id}/generate", json={"url": "https://acme.test"})
    await client.put("/admin/settings/text_model", json={"value": "openai:gpt-4.1"})
    await client.post(f"/public/forms/{test_form.id}/generate", json={"url": "https://acme.test"})

    assert [call["model"] for call in fake_provider.chat_calls] == ["gpt-4o-mini", "gpt-4.1"]


@pytest.mark.asyncio
async def test_admin_settings_forbidden_for_regular_accounts(authed_client):
    response = await authed_client.put("/admin/settings/text_model", json={"value": "gpt-4o"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_setting_key(login, superadmin):
    response = await login(superadmin).get("/admin/settings/favorite_color")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_updates_account_quotas(login, superadmin, account_factory):
    account = account_factory(max_leads=5)
    client = login(superadmin)

    response = await client.patch(
        f"/admin/accounts/{account.id}/quotas", json={"max_forms": 2, "max_leads": None}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["max_forms"] == 2
    assert data["max_leads"] is None
    assert data["can_publish_forms"] is True


@pytest.mark.asyncio
async def test_account_quotas_forbidden_for_regular_accounts(authed_client, account_factory):
    response = await authed_client.patch(
        f"/admin/accounts/{account_factory().id}/quotas", json={"max_forms": 100}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_superadmin_cannot_edit_own_quotas(login, superadmin):
    response = await login(superadmin).patch(
        f"/admin/accounts/{superadmin.id}/quotas", json={"max_forms": 1}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_account_quotas_validation(login, superadmin, account_factory):
    client = login(superadmin)
    account = account_factory()

    empty = await client.patch(f"/admin/accounts/{account.id}/quotas", json={})
    negative = await client.patch(f"/admin/accounts/{account.id}/quotas", json={"max_leads": -1})
    missing = await client.patch(f"/admin/accounts/{uuid.uuid4()}/quotas", json={"max_leads": 1})

    assert empty.status_code == 422
    assert negative.status_code == 422
    assert missing.status_code == 404
