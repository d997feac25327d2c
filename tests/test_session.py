import uuid

import pytest

from app.core.config import get_settings
from app.core.errors import AuthenticationRequired, ConfigurationError
from app.core.routes import admit, classify_path
from app.core.session import (
    BearerSessionProvider,
    InMemorySessionProvider,
    SessionProvider,
    resolve_session,
)
from app.models.user import UserProfile
from app.schemas.auth import Identity

from conftest import make_token

ALICE = Identity(id=uuid.uuid4(), email="alice@example.com")


def profile_for(identity: Identity, role: str, full_name: str = "Alice Admin") -> UserProfile:
    return UserProfile(id=identity.id, full_name=full_name, role=role)


# ----- resolve_session -----


def test_guest_session():
    info = resolve_session(None, None)
    assert info.is_authenticated is False
    assert info.is_admin is False
    assert info.display_name == "User"


def test_identity_without_profile_is_authenticated_but_not_admin():
    info = resolve_session(ALICE, None)
    assert info.is_authenticated is True
    assert info.is_admin is False
    assert info.display_name == "alice"
    assert info.user_id == ALICE.id


def test_admin_profile():
    info = resolve_session(ALICE, profile_for(ALICE, "admin"))
    assert info.is_admin is True
    assert info.display_name == "Alice Admin"


def test_user_profile_is_not_admin():
    assert resolve_session(ALICE, profile_for(ALICE, "user")).is_admin is False


def test_display_name_falls_back_to_user():
    nameless = Identity(id=uuid.uuid4(), email=None)
    assert resolve_session(nameless, None).display_name == "User"


# ----- Route classification -----


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/auth/signin", "public"),
        ("/auth/callback", "public"),
        ("/admin", "admin"),
        ("/admin/users", "admin"),
        ("/setup/create-admin", "admin"),
        ("/debug", "admin"),
        ("/", "protected"),
        ("/specification/123", "protected"),
        ("/anything-else", "protected"),
        ("/_next/static/chunk.js", None),
        ("/favicon.ico", None),
        ("/logo.svg", None),
    ],
)
def test_classify_path(path, expected):
    assert classify_path(path) == expected


def test_protected_path_without_session_redirects_to_sign_in():
    decision = admit("/specification/42", resolve_session(None, None))
    assert decision.action == "redirect"
    assert decision.location == "/auth/signin?redirectedFrom=%2Fspecification%2F42"


def test_admin_path_without_session_redirects_to_sign_in():
    decision = admit("/admin/users", resolve_session(None, None))
    assert decision.location.startswith("/auth/signin")


@pytest.mark.parametrize("path", ["/admin", "/admin/users", "/setup", "/debug"])
def test_admin_path_for_non_admin_redirects_to_landing(path):
    for profile in (None, profile_for(ALICE, "user")):
        decision = admit(path, resolve_session(ALICE, profile))
        assert decision.action == "redirect"
        assert decision.location == "/"


def test_admin_path_for_admin_is_allowed():
    decision = admit("/admin/users", resolve_session(ALICE, profile_for(ALICE, "admin")))
    assert decision.action == "allow"


def test_public_path_allowed_for_guest():
    assert admit("/auth/signin", resolve_session(None, None)).action == "allow"


# ----- Session providers -----


def test_bearer_provider_decodes_token():
    provider = BearerSessionProvider(make_token(ALICE), get_settings())
    identity = provider.get_session()
    assert identity.id == ALICE.id
    assert identity.email == ALICE.email


def test_bearer_provider_without_token_is_guest():
    assert BearerSessionProvider(None, get_settings()).get_session() is None


def test_bearer_provider_rejects_expired_token():
    provider = BearerSessionProvider(make_token(ALICE, expires_in=-60), get_settings())
    with pytest.raises(AuthenticationRequired):
        provider.get_session()


def test_bearer_provider_without_secret_is_configuration_error():
    settings = get_settings().model_copy(update={"SUPABASE_JWT_SECRET": None})
    with pytest.raises(ConfigurationError):
        BearerSessionProvider(make_token(ALICE), settings).get_session()


def test_in_memory_provider_notifies_listeners():
    provider = InMemorySessionProvider()
    seen = []
    unsubscribe = provider.on_session_change(seen.append)

    provider.set_session(ALICE)
    provider.set_session(ALICE)
    unsubscribe()
    provider.clear()

    assert seen == [ALICE]
    assert provider.get_session() is None


def test_session_provider_requires_get_session():
    class Incomplete(SessionProvider):
        pass

    with pytest.raises(TypeError):
        Incomplete()
