# app/core/auth.py
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from app.core.config import Settings, get_settings
from app.core.errors import AuthenticationRequired, AuthorizationDenied
from app.core.session import BearerSessionProvider, SessionProvider, resolve_session
from app.database import get_session
from app.models.user import UserProfile
from app.repositories.user_repo import UserProfileRepository
from app.schemas.auth import Identity, SessionInfo

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)

profiles = UserProfileRepository()


class CurrentUser:
    """
    Everything known about the caller, resolved once per request.

    `profile` is None for identities without a user_profiles row.
    """

    def __init__(
        self,
        identity: Identity | None,
        profile: UserProfile | None,
    ):
        self.identity = identity
        self.profile = profile
        self.info: SessionInfo = resolve_session(identity, profile)

    @property
    def id(self):
        return self.identity.id if self.identity else None

    @property
    def is_admin(self) -> bool:
        return self.info.is_admin


def get_session_provider(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> SessionProvider:
    """Request-scoped session source; overridden in tests."""
    token = credentials.credentials if credentials else None
    return BearerSessionProvider(token, settings)


def get_identity(
    provider: SessionProvider = Depends(get_session_provider),
) -> Identity | None:
    return provider.get_session()


def get_current_user(
    identity: Identity | None = Depends(get_identity),
    session: Session = Depends(get_session),
) -> CurrentUser:
    """
    Resolve the caller's identity and profile.

    Flow:
      1. No identity => guest.
      2. Look up user_profiles by identity id.
      3. Missing profile => authenticated "anonymous" tier (never
         auto-provisioned here).
    """
    if identity is None:
        return CurrentUser(None, None)
    return CurrentUser(identity, profiles.get_by_id(session, identity.id))


def require_auth(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    Enforce authentication.

    Raises:
        AuthenticationRequired(401): if there is no identity.
    """
    if user.identity is None:
        raise AuthenticationRequired("Authentication required")
    return user


def require_admin(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
    """
    Enforce admin role.

    Route is accessible only if the caller's profile has role == "admin".

    Raises:
        AuthorizationDenied(403): if role is not admin.
    """
    if not user.is_admin:
        raise AuthorizationDenied("Only administrators can perform this action")
    return user
