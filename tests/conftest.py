"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test
- Account/form fixtures and session-cookie auth
- HTTPX AsyncClient bound to the app
- Fake AI provider and recording notification dispatcher
"""
import os
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, Generator

# Must be set before the app (and its settings/limiter) are imported
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["RESEND_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from smartresponse.core.deps import COOKIE_NAME, get_db, get_notification_dispatcher
from smartresponse.core.errors import BackendFulfillmentError
from smartresponse.core.security import create_session_token
from smartresponse.db.base import Base
from smartresponse.db.enums import AccountRole, SystemSettingKey
from smartresponse.db.models import Account, Form, SystemSetting
from smartresponse.db.session import enable_sqlite_savepoints
from smartresponse.main import app
from smartresponse.services.ai_provider import ChatResponse, ImageResponse
from smartresponse.services.system_settings_service import settings_store


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine) -> Generator[Session, None, None]:
    """Database session on a private in-memory database. Commits are fine."""
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    settings_store.invalidate()
    yield
    settings_store.invalidate()


def make_account(db: Session, **overrides) -> Account:
    values = {
        "id": uuid.uuid4(),
        "email": f"owner-{uuid.uuid4().hex[:8]}@example.com",
        "role": AccountRole.USER.value,
    }
    values.update(overrides)
    account = Account(**values)
    db.add(account)
    db.commit()
    return account


def make_form(db: Session, owner: Account, **overrides) -> Form:
    values = {
        "id": uuid.uuid4(),
        "owner_id": owner.id,
        "name": "Website audit",
        "is_active": True,
        "system_prompt": "Review the website and suggest improvements.",
    }
    values.update(overrides)
    form = Form(**values)
    db.add(form)
    db.commit()
    return form


def set_setting(db: Session, key: SystemSettingKey, value: str | None) -> None:
    row = db.get(SystemSetting, key.value)
    if row is None:
        row = SystemSetting(key=key.value)
        db.add(row)
    row.value = value
    db.commit()
    settings_store.invalidate(key)


@pytest.fixture
def account_factory(db: Session):
    return lambda **overrides: make_account(db, **overrides)


@pytest.fixture
def form_factory(db: Session):
    return lambda owner, **overrides: make_form(db, owner, **overrides)


@pytest.fixture
def setting_writer(db: Session):
    return lambda key, value: set_setting(db, key, value)


@pytest.fixture(scope="function")
def test_account(db: Session) -> Account:
    return make_account(db)


@pytest.fixture(scope="function")
def test_form(db: Session, test_account: Account) -> Form:
    return make_form(db, test_account)


@pytest.fixture(scope="function")
def superadmin(db: Session) -> Account:
    return make_account(db, email="admin@example.com", role=AccountRole.SUPERADMIN.value)


@pytest.fixture(scope="function")
def configured_models(db: Session) -> None:
    set_setting(db, SystemSettingKey.TEXT_MODEL, "openai:gpt-4o-mini")
    set_setting(db, SystemSettingKey.IMAGE_MODEL, "openrouter:google/gemini-2.5-flash-image")


# =============================================================================
# Fakes
# =============================================================================

@dataclass
class FakeProvider:
    """Records calls; scripted responses or errors per method."""

    name: object = None
    chat_content: str = "Generated recommendations"
    chat_images: list[str] = field(default_factory=list)
    chat_error: Exception | None = None
    image_urls: list[str] = field(default_factory=lambda: ["https://img.example.com/1.png"])
    image_error: Exception | None = None
    chat_calls: list[dict] = field(default_factory=list)
    image_calls: list[dict] = field(default_factory=list)

    async def chat(self, messages, model, **kwargs):
        self.chat_calls.append({"messages": messages, "model": model, **kwargs})
        if self.chat_error:
            raise self.chat_error
        return ChatResponse(
            content=self.chat_content,
            prompt_tokens=10,
            completion_tokens=20,
            total_tokens=30,
            model=model,
            images=list(self.chat_images),
        )

    async def generate_image(self, prompt, model, **kwargs):
        self.image_calls.append({"prompt": prompt, "model": model, **kwargs})
        if self.image_error:
            raise self.image_error
        return ImageResponse(images=list(self.image_urls), model=model)


@pytest.fixture
def fake_provider(monkeypatch) -> FakeProvider:
    from smartresponse.db.enums import AIProviderName

    provider = FakeProvider()
    requested: list[AIProviderName] = []

    def fake_get_provider(provider_name, api_key=None):
        requested.append(AIProviderName(provider_name))
        provider.name = AIProviderName(provider_name)
        return provider

    monkeypatch.setattr("smartresponse.services.ai_provider.get_provider", fake_get_provider)
    provider.requested = requested
    return provider


@pytest.fixture
def fake_url_fetch(monkeypatch) -> list[str]:
    fetched: list[str] = []

    async def fake_fetch(url: str) -> str:
        fetched.append(url)
        return "Acme builds garden furniture."

    monkeypatch.setattr(
        "smartresponse.services.text_generation_service.fetch_url_content", fake_fetch
    )
    return fetched


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; keeps notified events."""

    def __init__(self) -> None:
        self.events: list = []

    def notify(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def missing_endpoint_error() -> BackendFulfillmentError:
    model_id = "google/gemini-2.5-flash-image"
    return BackendFulfillmentError(
        f"OpenRouter API error: 404 Not Found. No endpoints found for {model_id}.",
        provider="openrouter",
        model_id=model_id,
    )


# =============================================================================
# Auth / Client Fixtures
# =============================================================================

def session_cookie(account: Account) -> dict[str, str]:
    return {COOKIE_NAME: create_session_token(account.id, account.role)}


@pytest.fixture(scope="function")
async def client(db: Session, dispatcher: RecordingDispatcher) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient for public endpoints."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session, test_account: Account, dispatcher: RecordingDispatcher
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient carrying the form owner's session cookie."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=session_cookie(test_account),
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def login(client: AsyncClient):
    """Attach an account's session cookie to the shared client."""
    def _login(account: Account) -> AsyncClient:
        client.cookies.set(COOKIE_NAME, create_session_token(account.id, account.role))
        return client

    return _login
