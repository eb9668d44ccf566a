import os

# Must be set before storefront.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("OTLP_ENDPOINT", "")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import storefront.models  # noqa: F401
from storefront.clients.email import get_email_sender
from storefront.clients.payments import CheckoutSession, PaymentGateway, get_payment_gateway
from storefront.clients.sms import get_sms_sender
from storefront.config import settings
from storefront.database import Base, get_db
from storefront.exceptions import NotificationError, PaymentGatewayError, WebhookVerificationError


class FakeGateway(PaymentGateway):
    """Records checkout sessions and hands back a preset webhook event."""

    def __init__(self):
        super().__init__(secret_key="sk_test", webhook_secret="whsec_test")
        self.sessions: list[dict] = []
        self.fail = False
        self.next_event = None

    async def create_checkout_session(self, **kwargs) -> CheckoutSession:
        if self.fail:
            raise PaymentGatewayError("card_declined: raw processor detail")
        self.sessions.append(kwargs)
        session_id = f"cs_test_{len(self.sessions)}"
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")

    def verify_webhook(self, payload: bytes, signature: str):
        if signature != "valid" or self.next_event is None:
            raise WebhookVerificationError("Invalid signature")
        return self.next_event


class FakeEmailSender:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise NotificationError("Email rejected (500)")
        self.sent.append({"to": to, "subject": subject, "html": html})


class FakeSmsSender:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail_numbers: set[str] = set()

    async def send(self, to: str, body: str) -> None:
        if to in self.fail_numbers:
            raise NotificationError("SMS rejected (400)")
        self.sent.append((to, body))


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def sms_sender():
    return FakeSmsSender()


@pytest.fixture
def admin_settings(monkeypatch):
    monkeypatch.setattr(settings, "service_api_key", "svc-test-key")
    monkeypatch.setattr(settings, "admin_jwt_secret", "jwt-test-secret")
    monkeypatch.setattr(settings, "cron_secret", "cron-test-secret")
    monkeypatch.setattr(settings, "cron_trusted_header", "x-vercel-cron")
    return settings


@pytest_asyncio.fixture
async def client(session_factory, gateway, email_sender, sms_sender, admin_settings):
    from storefront.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_sms_sender] = lambda: sms_sender

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(admin_settings):
    return {"Authorization": f"Bearer {admin_settings.service_api_key}"}
