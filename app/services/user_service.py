# app/services/user_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import AuthorizationDenied, NotFoundError, UpstreamError
from app.core.gateway import CredentialGateway
from app.models.user import UserProfile
from app.repositories.user_repo import UserProfileRepository
from app.schemas.auth import Identity
from app.schemas.user import (
    FirstAdminCreate,
    SetupStatus,
    UserCreate,
    UserRoleUpdate,
    UserWithProfile,
)

logger = logging.getLogger(__name__)

FIRST_ADMIN_TAKEN = "Cannot create first admin: users already exist"


class UserService:
    """
    Business logic for application accounts.

    Responsibilities:
      - two-step account creation (gateway identity, then profile row) with
        a compensating identity delete when the second step fails
      - role changes and deletion
      - the one-time first-admin bootstrap

    Admin-only access is enforced at the router via require_admin.
    """

    def __init__(self, repo: UserProfileRepository):
        self.repo = repo

    # ----- Helpers -----

    def _obtain_identity(
        self,
        session: Session,
        gateway: CredentialGateway,
        email: str,
        full_name: str,
    ) -> tuple[Identity, bool]:
        """
        Return (identity, created).

        An identity left behind by an earlier half-finished create (no
        profile row) is adopted rather than duplicated.
        """
        existing = gateway.find_identity_by_email(email)
        if existing is not None:
            if self.repo.get_by_id(session, existing.id) is not None:
                raise AuthorizationDenied(f"A user with email {email} already exists")
            logger.info("Adopting orphaned identity %s for %s", existing.id, email)
            return existing, False
        return gateway.create_identity(email, full_name), True

    def _create_account(
        self,
        session: Session,
        gateway: CredentialGateway,
        email: str,
        full_name: str,
        role: str,
        only_if_empty: bool = False,
    ) -> UserWithProfile:
        identity, created = self._obtain_identity(session, gateway, email, full_name)
        profile = UserProfile(id=identity.id, full_name=full_name, role=role)

        try:
            if only_if_empty:
                profile = self.repo.create_if_empty(session, profile)
            else:
                profile = self.repo.create(session, profile)
        except SQLAlchemyError as e:
            session.rollback()
            if created:
                gateway.delete_identity(identity.id)
            logger.error("Profile insert failed for %s: %s", email, e)
            raise UpstreamError(f"Error creating user profile: {e}") from e

        if profile is None:
            if created:
                gateway.delete_identity(identity.id)
            raise AuthorizationDenied(FIRST_ADMIN_TAKEN)

        return UserWithProfile(
            id=profile.id,
            email=identity.email or email,
            full_name=profile.full_name,
            role=profile.role,
            created_at=profile.created_at,
        )

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        gateway: CredentialGateway,
        skip: int = 0,
        limit: int = 50,
    ) -> list[UserWithProfile]:
        """Profiles with their gateway email, newest first."""
        emails = {i.id: i.email for i in gateway.list_identities()}
        return [
            UserWithProfile(
                id=p.id,
                email=emails.get(p.id) or "",
                full_name=p.full_name,
                role=p.role,
                created_at=p.created_at,
            )
            for p in self.repo.list(session, skip=skip, limit=limit)
        ]

    def get_profile(self, session: Session, user_id: uuid.UUID) -> UserProfile:
        """
        Raises:
            NotFoundError(404): if no profile exists.
        """
        profile = self.repo.get_by_id(session, user_id)
        if not profile:
            raise NotFoundError("User not found")
        return profile

    def create_user(
        self,
        session: Session,
        gateway: CredentialGateway,
        payload: UserCreate,
    ) -> UserWithProfile:
        return self._create_account(
            session, gateway, payload.email, payload.full_name, payload.role
        )

    def update_role(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> UserProfile:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        profile = self.get_profile(session, user_id)
        profile.role = payload.role
        profile.updated_at = datetime.now(timezone.utc)
        return self.repo.update(session, profile)

    def delete_user(
        self,
        session: Session,
        gateway: CredentialGateway,
        user_id: uuid.UUID,
    ) -> None:
        """Delete the gateway identity and its profile row (admin only)."""
        gateway.delete_identity(user_id)
        profile = self.repo.get_by_id(session, user_id)
        if profile is not None:
            self.repo.delete(session, profile)

    # ----- Bootstrap -----

    def setup_status(self, session: Session) -> SetupStatus:
        count = self.repo.count(session)
        return SetupStatus(needs_first_admin=count == 0, profile_count=count)

    def create_first_admin(
        self,
        session: Session,
        gateway: CredentialGateway,
        payload: FirstAdminCreate,
    ) -> UserWithProfile:
        """
        Create the first admin without an admin session.

        Only allowed while user_profiles is empty. The count is checked up
        front and again in the insert transaction.
        """
        if self.repo.count(session) > 0:
            raise AuthorizationDenied(FIRST_ADMIN_TAKEN)
        return self._create_account(
            session, gateway, payload.email, payload.full_name, "admin", only_if_empty=True
        )
