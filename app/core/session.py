# app/core/session.py
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable

from jose import jwt, JWTError

from app.core.config import Settings
from app.core.errors import AuthenticationRequired
from app.models.user import UserProfile
from app.schemas.auth import Identity, SessionInfo

SessionListener = Callable[[Identity | None], None]


class SessionProvider(ABC):
    """
    Capability interface over gateway-held session state.

    Consumers only call `get_session()` and `on_session_change()`; where the
    session actually comes from (a bearer token, a finished sign-in flow,
    a test fixture) is up to the implementation.
    """

    def __init__(self) -> None:
        self._listeners: list[SessionListener] = []

    @abstractmethod
    def get_session(self) -> Identity | None:
        ...

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, identity: Identity | None) -> None:
        for listener in list(self._listeners):
            listener(identity)


class InMemorySessionProvider(SessionProvider):
    """Holds the identity established by a sign-in flow."""

    def __init__(self, identity: Identity | None = None) -> None:
        super().__init__()
        self._identity = identity

    def get_session(self) -> Identity | None:
        return self._identity

    def set_session(self, identity: Identity | None) -> None:
        changed = identity != self._identity
        self._identity = identity
        if changed:
            self._notify(identity)

    def clear(self) -> None:
        self.set_session(None)


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        ConfigurationError: if SUPABASE_JWT_SECRET is not set.
        AuthenticationRequired: if token is invalid/expired.
    """
    settings.require("SUPABASE_JWT_SECRET")
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise AuthenticationRequired("Invalid or expired token")


class BearerSessionProvider(SessionProvider):
    """Request-scoped provider backed by the Authorization header."""

    def __init__(self, token: str | None, settings: Settings) -> None:
        super().__init__()
        self._token = token
        self._settings = settings
        self._resolved = False
        self._identity: Identity | None = None

    def get_session(self) -> Identity | None:
        if not self._resolved:
            self._identity = self._decode()
            self._resolved = True
        return self._identity

    def _decode(self) -> Identity | None:
        if not self._token:
            return None  # guest

        payload = decode_access_token(self._token, self._settings)
        sub = payload.get("sub")
        if not sub:
            raise AuthenticationRequired("Token missing sub")

        # Supabase provides sub as a string; enforce UUID
        try:
            sub_uuid = uuid.UUID(sub)
        except ValueError:
            raise AuthenticationRequired("Invalid sub in token")

        return Identity(id=sub_uuid, email=payload.get("email"))


def _email_local_part(email: str | None) -> str | None:
    if not email:
        return None
    local = email.split("@", 1)[0].strip()
    return local or None


def resolve_session(
    identity: Identity | None,
    profile: UserProfile | None,
) -> SessionInfo:
    """
    Pure resolution of (identity, profile) into role and display name.

    An identity without a profile is still authenticated ("anonymous" tier):
    it can browse but is never an admin.
    """
    if identity is None:
        return SessionInfo(is_authenticated=False, is_admin=False, display_name="User")

    display_name = (
        (profile.full_name.strip() if profile and profile.full_name else None)
        or _email_local_part(identity.email)
        or "User"
    )
    return SessionInfo(
        is_authenticated=True,
        is_admin=profile is not None and profile.role == "admin",
        display_name=display_name,
        user_id=identity.id,
        email=identity.email,
    )
