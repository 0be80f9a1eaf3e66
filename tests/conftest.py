"""Pytest fixtures for API and service tests."""

import os
from collections.abc import Generator
from dataclasses import dataclass, field

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db, get_push_sender
from app.core.webpush.encoding import b64url_encode
from app.core.webpush.sender import WebPushSender
from app.core.webpush.vapid import VapidKeyPair
from app.db import models  # noqa: F401  # Imported for side effects
from app.db.base import Base
from app.db.models import (
    HydrationLog,
    HydrationSettings,
    PushSubscription,
    ScheduledNotification,
    SystemConfig,
    User,
)
from app.main import create_app

TABLES = [
    User.__table__,
    PushSubscription.__table__,
    ScheduledNotification.__table__,
    SystemConfig.__table__,
    HydrationSettings.__table__,
    HydrationLog.__table__,
]


@dataclass
class Subscriber:
    """A simulated browser: its ECDH key pair and auth secret."""

    endpoint: str
    private_key: ec.EllipticCurvePrivateKey
    p256dh: str
    auth: str

    @classmethod
    def create(cls, endpoint: str) -> "Subscriber":
        private_key = ec.generate_private_key(ec.SECP256R1())
        public = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        )
        return cls(
            endpoint=endpoint,
            private_key=private_key,
            p256dh=b64url_encode(public),
            auth=b64url_encode(os.urandom(16)),
        )


@dataclass
class PushServiceStub:
    """Records push requests and answers with per-endpoint statuses."""

    requests: list = field(default_factory=list)
    statuses: dict = field(default_factory=dict)
    headers: dict = field(default_factory=dict)
    failing: set = field(default_factory=set)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = str(request.url)
        if endpoint in self.failing:
            raise httpx.ConnectTimeout("Timed out", request=request)
        return httpx.Response(
            self.statuses.get(endpoint, 201),
            headers=self.headers.get(endpoint, {}),
        )


@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=TABLES)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture(autouse=True)
def clean_tables(db_engine) -> Generator[None, None, None]:
    yield
    with db_engine.begin() as connection:
        for table in reversed(TABLES):
            connection.execute(table.delete())


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def vapid_keys() -> VapidKeyPair:
    return VapidKeyPair.generate()


@pytest.fixture()
def push_service() -> PushServiceStub:
    return PushServiceStub()


@pytest.fixture()
def push_sender(vapid_keys, push_service) -> Generator[WebPushSender, None, None]:
    http_client = httpx.Client(transport=httpx.MockTransport(push_service.handler))
    sender = WebPushSender(vapid_keys, "mailto:test@example.com", client=http_client)
    try:
        yield sender
    finally:
        http_client.close()


@pytest.fixture()
def user(db_session) -> User:
    user = User(email="push-user@example.com", hashed_password="test", is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def other_user(db_session) -> User:
    user = User(email="other-user@example.com", hashed_password="test", is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def subscriber() -> Subscriber:
    return Subscriber.create("https://push.example.com/send/device-one")


@pytest.fixture()
def second_subscriber() -> Subscriber:
    return Subscriber.create("https://updates.push.example.org/wpush/v2/device-two")


@pytest.fixture()
def client(db_session: Session, push_sender: WebPushSender) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_push_sender() -> Generator[WebPushSender, None, None]:
        yield push_sender

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_sender] = override_get_push_sender
    with TestClient(app) as test_client:
        yield test_client


def register_and_login(client: TestClient, email: str, password: str = "verysecure") -> dict:
    client.post("/api/v1/auth/register", json={"email": email, "password": password})
    login_response = client.post(
        "/api/v1/auth/login", json={"email": email, "password": password}
    )
    token = login_response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(client: TestClient) -> dict:
    return register_and_login(client, "subscriber@example.com")
