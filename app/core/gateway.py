# app/core/gateway.py
"""
Credential gateway: the narrow slice of Supabase Auth this app relies on.

Services and the OTP controller depend on `CredentialGateway` only, so tests
can substitute an in-memory implementation. `SupabaseGateway` is the real
one; it turns every client exception into `GatewayError` carrying Supabase's
own message text (rate-limit detection reads that text).
"""
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

from app.core.errors import GatewayError
from app.core.supabase_client import (
    supabase_admin,
    supabase_auth_client,
    supabase_public,
)
from app.schemas.auth import GatewaySession, Identity

logger = logging.getLogger(__name__)

# Page size for admin user listing. GoTrue serves 50 per page when unset.
LIST_PAGE_SIZE = 100


class CredentialGateway(ABC):
    """Interface consumed by the OTP controller and the admin user manager."""

    @abstractmethod
    def send_code(self, email: str, allow_new_user: bool = False) -> None:
        ...

    @abstractmethod
    def verify_code(self, email: str, code: str) -> GatewaySession:
        ...

    @abstractmethod
    def create_identity(self, email: str, full_name: str | None = None) -> Identity:
        ...

    @abstractmethod
    def delete_identity(self, identity_id: uuid.UUID) -> None:
        ...

    @abstractmethod
    def list_identities(self) -> list[Identity]:
        ...

    def find_identity_by_email(self, email: str) -> Identity | None:
        wanted = email.strip().lower()
        for identity in self.list_identities():
            if (identity.email or "").lower() == wanted:
                return identity
        return None


def _message(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc) or type(exc).__name__


def _to_identity(user: Any) -> Identity:
    return Identity(id=uuid.UUID(str(user.id)), email=user.email)


class SupabaseGateway(CredentialGateway):
    def send_code(self, email: str, allow_new_user: bool = False) -> None:
        """
        Ask Supabase to email a one-time code.

        `should_create_user` stays False by default: codes are only issued
        for accounts that already exist.
        """
        client = supabase_public()
        try:
            client.auth.sign_in_with_otp(
                {
                    "email": email,
                    "options": {"should_create_user": allow_new_user},
                }
            )
        except Exception as e:
            logger.warning("send_code failed for %s: %s", email, _message(e))
            raise GatewayError(_message(e)) from e

    def verify_code(self, email: str, code: str) -> GatewaySession:
        client = supabase_auth_client()
        try:
            res = client.auth.verify_otp(
                {"email": email, "token": code, "type": "email"}
            )
        except Exception as e:
            logger.warning("verify_code failed for %s: %s", email, _message(e))
            raise GatewayError(_message(e)) from e

        if res.user is None or res.session is None:
            raise GatewayError("Verification did not return a session")

        return GatewaySession(
            access_token=res.session.access_token,
            refresh_token=res.session.refresh_token,
            expires_in=res.session.expires_in,
            identity=_to_identity(res.user),
        )

    def create_identity(self, email: str, full_name: str | None = None) -> Identity:
        client = supabase_admin()
        try:
            res = client.auth.admin.create_user(
                {
                    "email": email,
                    "email_confirm": True,
                    "user_metadata": {"full_name": full_name} if full_name else {},
                }
            )
        except Exception as e:
            raise GatewayError(f"Error creating user: {_message(e)}") from e

        if res.user is None:
            raise GatewayError("Failed to create user")
        return _to_identity(res.user)

    def delete_identity(self, identity_id: uuid.UUID) -> None:
        client = supabase_admin()
        try:
            client.auth.admin.delete_user(str(identity_id))
        except Exception as e:
            raise GatewayError(f"Error deleting user: {_message(e)}") from e

    def list_identities(self) -> list[Identity]:
        """Every identity, walking the admin listing page by page."""
        client = supabase_admin()
        identities: list[Identity] = []
        page = 1
        while True:
            try:
                users = client.auth.admin.list_users(page=page, per_page=LIST_PAGE_SIZE)
            except Exception as e:
                raise GatewayError(f"Error listing users: {_message(e)}") from e
            identities.extend(_to_identity(u) for u in users)
            if len(users) < LIST_PAGE_SIZE:
                return identities
            page += 1


def get_gateway() -> CredentialGateway:
    """FastAPI dependency; overridden in tests."""
    return SupabaseGateway()
