from __future__ import annotations

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["EMAIL_PROVIDER"] = "dev"
os.environ["DEBUG"] = "false"
os.environ["AWS_REGION"] = "us-east-1"
for _key in (
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "DEEPSEEK_API_KEY",
    "OPENROUTER_API_KEY",
    "GROQ_API_KEY",
    "SECRETS_ENCRYPTION_KEY",
):
    os.environ[_key] = ""

from typing import Callable, Dict, List  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from iara.core.security import create_access_token, get_password_hash  # noqa: E402
from iara.db.database import Base, build_engine, get_db  # noqa: E402
from iara.db.models import ApprovalStatus, User, UserApproval, UserRole  # noqa: E402
from iara.main import app  # noqa: E402
from iara.services.ai_service import ai_service  # noqa: E402
from iara.services.notification_service import notification_service  # noqa: E402
from iara.services.s3_service import s3_service  # noqa: E402

PASSWORD = "s3cret-pass"

engine = build_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeS3Client:
    """Records calls made through S3Service."""

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    def put_object(self, Bucket, Key, Body, ContentType, Metadata=None):
        self.objects[Key] = Body
        return {}

    def delete_object(self, Bucket, Key):
        self.deleted.append(Key)
        self.objects.pop(Key, None)
        return {}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://signed.example/{Params['Bucket']}/{Params['Key']}?expires={ExpiresIn}"

    def head_bucket(self, Bucket):
        return {}


class ProviderStub:
    """httpx.MockTransport handler; records requests, answers with `responder`."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = self._unexpected

    @staticmethod
    def _unexpected(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"Unexpected outbound request to {request.url}")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def openai_reply(text: str, model: str = "deepseek-chat") -> Dict:
    return {"model": model, "choices": [{"message": {"role": "assistant", "content": text}}]}


def anthropic_reply(text: str, model: str = "claude-3-sonnet-20240229") -> Dict:
    return {"model": model, "content": [{"type": "text", "text": text}]}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture(autouse=True)
def fake_s3(monkeypatch):
    fake = FakeS3Client()
    monkeypatch.setattr(s3_service, "s3_client", fake)
    return fake


@pytest.fixture(autouse=True)
def provider_stub(monkeypatch):
    stub = ProviderStub()
    monkeypatch.setattr(ai_service, "transport", httpx.MockTransport(stub))
    monkeypatch.setattr(notification_service, "transport", httpx.MockTransport(stub))
    return stub


def make_user(
    db,
    email: str,
    role: UserRole = UserRole.user,
    confirmed: bool = True,
    active: bool = True,
    approval: ApprovalStatus = ApprovalStatus.approved,
) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(PASSWORD),
        display_name=email.split("@")[0].title(),
        role=role,
        is_active=active,
        email_confirmed=confirmed,
    )
    db.add(user)
    db.flush()
    db.add(UserApproval(user_id=user.id, email=email, display_name=user.display_name, status=approval))
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def user(db) -> User:
    return make_user(db, "lawyer@example.com")


@pytest.fixture
def other_user(db) -> User:
    return make_user(db, "other@example.com")


@pytest.fixture
def admin(db) -> User:
    return make_user(db, "admin@example.com", role=UserRole.admin)


@pytest.fixture
def headers(user) -> Dict[str, str]:
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin) -> Dict[str, str]:
    return auth_headers(admin)
