# app/routers/users.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import CurrentUser, require_admin, require_auth, profiles
from app.core.gateway import CredentialGateway, get_gateway
from app.database import get_session
from app.schemas.user import (
    UserCreate,
    UserProfileRead,
    UserRoleUpdate,
    UserWithProfile,
)
from app.services.user_service import UserService

router = APIRouter(tags=["Users"])

service = UserService(profiles)


# -------- Self profile --------


@router.get("/users/me", response_model=UserProfileRead)
def read_me(
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """
    Return the caller's profile.

    Identities without a profile (anonymous tier) get 404.
    """
    return service.get_profile(session, current_user.id)


# -------- Admin endpoints --------


@router.get(
    "/admin/users",
    response_model=list[UserWithProfile],
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    gateway: CredentialGateway = Depends(get_gateway),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all users with their email (admin only).

    Pagination via skip/limit.
    """
    return service.list_users(session, gateway, skip, limit)


@router.post(
    "/admin/users",
    response_model=UserWithProfile,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_user(
    payload: UserCreate,
    session: Session = Depends(get_session),
    gateway: CredentialGateway = Depends(get_gateway),
):
    """
    Create an account (admin only).

    The Supabase identity is created with a confirmed email so the user
    can sign in with a code right away.
    """
    return service.create_user(session, gateway, payload)


@router.patch(
    "/admin/users/{user_id}/role",
    response_model=UserProfileRead,
    dependencies=[Depends(require_admin)],
)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a user's role (admin only).

    Allowed roles: user, admin.
    """
    return service.update_role(session, user_id, payload)


@router.delete(
    "/admin/users/{user_id}",
    dependencies=[Depends(require_admin)],
)
def delete_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    gateway: CredentialGateway = Depends(get_gateway),
) -> dict[str, bool]:
    """Delete a user's identity and profile (admin only)."""
    service.delete_user(session, gateway, user_id)
    return {"success": True}
