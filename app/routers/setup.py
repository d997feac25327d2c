# app/routers/setup.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.config import Settings, get_settings
from app.core.gateway import CredentialGateway, get_gateway
from app.database import get_session
from app.routers.users import service
from app.schemas.user import EnvStatus, FirstAdminCreate, SetupStatus, UserWithProfile

router = APIRouter(tags=["Setup"])


@router.get("/setup/status", response_model=SetupStatus)
def setup_status(session: Session = Depends(get_session)):
    """Whether the first-admin bootstrap is still open."""
    return service.setup_status(session)


@router.post(
    "/setup/first-admin",
    response_model=UserWithProfile,
    status_code=status.HTTP_201_CREATED,
)
def create_first_admin(
    payload: FirstAdminCreate,
    session: Session = Depends(get_session),
    gateway: CredentialGateway = Depends(get_gateway),
):
    """
    Create the first administrator.

    No session required, but only while no profile exists; afterwards
    this returns 403 "users already exist".
    """
    return service.create_first_admin(session, gateway, payload)


@router.get(
    "/debug/env",
    response_model=EnvStatus,
    dependencies=[Depends(require_admin)],
)
def env_status(settings: Settings = Depends(get_settings)):
    """Which required environment variables are missing (admin only)."""
    missing = settings.missing_required()
    return EnvStatus(valid=not missing, missing=missing)
