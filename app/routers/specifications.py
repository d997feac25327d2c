# app/routers/specifications.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import CurrentUser, require_auth
from app.database import get_session
from app.repositories.specification_repo import SpecificationRepository
from app.schemas.specification import (
    SpecificationCreate,
    SpecificationRead,
    SpecificationUpdate,
)
from app.services.specification_service import SpecificationService

router = APIRouter(prefix="/specifications", tags=["Specifications"])

repo = SpecificationRepository()
service = SpecificationService(repo)


@router.get("", response_model=list[SpecificationRead])
def list_specifications(
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """All specifications, newest first."""
    return service.list_specifications(session)


@router.get("/me", response_model=list[SpecificationRead])
def list_my_specifications(
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """Specifications written by the caller."""
    return service.get_user_specifications(session, current_user.id)


@router.get("/product/{product_id}", response_model=list[SpecificationRead])
def list_product_specifications(
    product_id: int,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """Specifications attached to one Shopify product."""
    return service.get_specifications_by_product(session, product_id)


@router.post(
    "",
    response_model=SpecificationRead,
    status_code=status.HTTP_201_CREATED,
)
def save_specification(
    payload: SpecificationCreate,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """
    Save a specification owned by the caller.

    The owner is taken from the token; the payload cannot set it.
    """
    return service.save_specification(session, current_user.id, payload)


@router.patch("/{spec_id}", response_model=SpecificationRead)
def update_specification(
    spec_id: uuid.UUID,
    payload: SpecificationUpdate,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
):
    """Update a specification (owner only)."""
    return service.update_specification(session, current_user.id, spec_id, payload)


@router.delete("/{spec_id}")
def delete_specification(
    spec_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: CurrentUser = Depends(require_auth),
) -> dict[str, bool]:
    """Delete a specification (owner only)."""
    service.delete_specification(session, current_user.id, spec_id)
    return {"success": True}
