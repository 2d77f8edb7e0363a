import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

import httpx
import pytest

from newsletter_service.delivery.application.worker import DeliveryWorker
from newsletter_service.delivery.domain import RetryPolicy
from newsletter_service.main import create_app
from newsletter_service.models import Base, SubscriptionModel
from newsletter_service.shared.config import Settings
from newsletter_service.shared.database import DatabaseSessionFactory
from newsletter_service.shared.exceptions import TransientDeliveryError
from newsletter_service.subscriptions.domain import SubscriberEmail, SubscriptionStatus

TEST_PASSWORD = "correct horse battery staple"


@dataclass
class SentEmail:
    recipient: str
    subject: str
    html_content: str
    text_content: str


class RecordingEmailClient:
    """In-memory email transport; ``failures`` lists recipients that always fail."""

    def __init__(self) -> None:
        self.sent: List[SentEmail] = []
        self.attempts: List[str] = []
        self.failures: set = set()
        self.fail_everything = False

    async def send_email(
        self,
        recipient: SubscriberEmail,
        subject: str,
        html_content: str,
        text_content: str,
    ) -> None:
        self.attempts.append(str(recipient))
        if self.fail_everything or str(recipient) in self.failures:
            raise TransientDeliveryError("The email provider answered 500.")
        self.sent.append(SentEmail(str(recipient), subject, html_content, text_content))

    async def aclose(self) -> None:
        return None


@dataclass
class AdminUser:
    user_id: UUID
    username: str
    password: str


@pytest.fixture
def pg_database_url() -> str:
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set; skipping PostgreSQL-only tests")
    return url


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'newsletter.db'}",
        ENVIRONMENT="dev",
        TESTING=True,
        LOG_FORMAT="console",
        APP_BASE_URL="http://127.0.0.1:8000",
        JWT_SECRET="test-secret-that-is-long-enough-for-hs256",
        PASSWORD_TIME_COST=1,
        PASSWORD_MEMORY_COST=1024,
        DELIVERY_MAX_RETRIES=2,
        DELIVERY_BACKOFF_BASE_SECONDS=0.0,
        DELIVERY_BACKOFF_MAX_SECONDS=0.0,
        DELIVERY_IDLE_INTERVAL_SECONDS=0.01,
        DELIVERY_ERROR_INTERVAL_SECONDS=0.01,
    )


@pytest.fixture
async def database(settings):
    db = DatabaseSessionFactory(settings.DATABASE_URL)
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db
    await db.dispose()


@pytest.fixture
def email_client() -> RecordingEmailClient:
    return RecordingEmailClient()


@pytest.fixture
def app(settings, database, email_client):
    return create_app(settings, database=database, email_client=email_client)


@pytest.fixture
def services(app):
    return app.state.services


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def worker(settings, database, email_client) -> DeliveryWorker:
    return DeliveryWorker(
        database,
        email_client,
        RetryPolicy.from_settings(settings),
        idle_interval=settings.DELIVERY_IDLE_INTERVAL_SECONDS,
        error_interval=settings.DELIVERY_ERROR_INTERVAL_SECONDS,
    )


@pytest.fixture
async def test_user(services) -> AdminUser:
    username = f"admin-{uuid4().hex[:8]}"
    user_id = await services.auth.create_user(username, TEST_PASSWORD)
    return AdminUser(user_id=user_id, username=username, password=TEST_PASSWORD)


@pytest.fixture
async def logged_in_client(client, test_user):
    r = await client.post(
        "/login",
        data={"username": test_user.username, "password": test_user.password},
    )
    assert r.status_code == 303, r.text
    assert r.headers["location"] == "/admin/dashboard"
    return client


@pytest.fixture
def add_subscriber(database):
    async def _add(email: str, status: SubscriptionStatus = SubscriptionStatus.CONFIRMED,
                   name: Optional[str] = None) -> UUID:
        now = datetime.now(timezone.utc)
        model = SubscriptionModel(
            id=uuid4(),
            email=email,
            name=name or email.split("@")[0],
            subscribed_at=now,
            status=status.value,
            created_at=now,
            updated_at=now,
        )
        async with database.get_session() as session:
            session.add(model)
            await session.commit()
        return model.id

    return _add
