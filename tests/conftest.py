import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are cached on first import, so the environment goes first.
os.environ.update(
    {
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_KEY": "anon-key",
        "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
        "SUPABASE_JWT_SECRET": "test-jwt-secret",
        "DATABASE_URL": "sqlite://",
        "SHOPIFY_STORE_URL": "snuff-shop.myshopify.com",
        "SHOPIFY_ACCESS_TOKEN": "shpat_test",
    }
)

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.errors import GatewayError
from app.core.gateway import CredentialGateway, get_gateway
from app.database import get_session
from app.main import app
from app.models.user import UserProfile
from app.routers.auth import otp_registry
from app.schemas.auth import GatewaySession, Identity

JWT_SECRET = "test-jwt-secret"


def make_token(identity: Identity, expires_in: int = 3600) -> str:
    claims = {
        "sub": str(identity.id),
        "email": identity.email,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


def auth_header(identity: Identity) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(identity)}"}


class FakeGateway(CredentialGateway):
    """In-memory stand-in for Supabase Auth."""

    def __init__(self):
        self.identities: dict[str, Identity] = {}
        self.codes: dict[str, str] = {}
        self.sent: list[str] = []
        self.deleted: list[uuid.UUID] = []
        self.send_error: str | None = None
        self.verify_calls = 0

    def add_identity(self, email: str) -> Identity:
        identity = Identity(id=uuid.uuid4(), email=email)
        self.identities[email] = identity
        return identity

    def send_code(self, email, allow_new_user=False):
        if self.send_error:
            raise GatewayError(self.send_error)
        if email not in self.identities and not allow_new_user:
            raise GatewayError("Signups not allowed for otp")
        self.sent.append(email)
        self.codes[email] = "123456"

    def verify_code(self, email, code):
        self.verify_calls += 1
        if self.codes.get(email) != code:
            raise GatewayError("Token has expired or is invalid")
        del self.codes[email]
        identity = self.identities[email]
        return GatewaySession(
            access_token=make_token(identity),
            refresh_token="refresh",
            expires_in=3600,
            identity=identity,
        )

    def create_identity(self, email, full_name=None):
        if email in self.identities:
            raise GatewayError("Error creating user: already registered")
        return self.add_identity(email)

    def delete_identity(self, identity_id):
        self.deleted.append(identity_id)
        for email, identity in list(self.identities.items()):
            if identity.id == identity_id:
                del self.identities[email]

    def list_identities(self):
        return list(self.identities.values())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(session, gateway):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_gateway] = lambda: gateway
    otp_registry.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    otp_registry.clear()


@pytest.fixture
def make_user(session, gateway):
    """Create a gateway identity and, unless role is None, a profile."""

    def _make(email: str, role: str | None = "user", full_name: str = "Test User") -> Identity:
        identity = gateway.add_identity(email)
        if role is not None:
            session.add(UserProfile(id=identity.id, full_name=full_name, role=role))
            session.commit()
        return identity

    return _make
