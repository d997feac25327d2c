# app/services/specification_service.py
import uuid

from sqlmodel import Session

from app.core.errors import AuthorizationDenied, NotFoundError
from app.models.specification import SpecificationRecord
from app.repositories.specification_repo import SpecificationRepository
from app.schemas.specification import SpecificationCreate, SpecificationUpdate

NOT_OWNED = "Specification not found or you do not have permission to {action} it"


class SpecificationService:
    """
    Business logic for SpecificationRecord.

    Responsibilities:
      - stamp the owner from the authenticated identity (never the payload)
      - check ownership before update/delete, then mutate through the
        repository's owner-filtered statements
    """

    def __init__(self, repo: SpecificationRepository):
        self.repo = repo

    def save_specification(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: SpecificationCreate,
    ) -> SpecificationRecord:
        record = SpecificationRecord(
            product_id=payload.product_id,
            product_title=payload.product_title,
            ease_of_use=payload.ease_of_use,
            nicotine_content=payload.nicotine_content,
            user_id=user_id,
        )
        return self.repo.create(session, record)

    def _check_owner(
        self,
        session: Session,
        spec_id: uuid.UUID,
        user_id: uuid.UUID,
        action: str,
    ) -> None:
        record = self.repo.get_by_id(session, spec_id)
        if record is None:
            raise NotFoundError("Specification not found")
        if record.user_id != user_id:
            raise AuthorizationDenied(NOT_OWNED.format(action=action))

    def update_specification(
        self,
        session: Session,
        user_id: uuid.UUID,
        spec_id: uuid.UUID,
        payload: SpecificationUpdate,
    ) -> SpecificationRecord:
        """
        Partial update of an owned record.

        The repository repeats the owner check in SQL; zero rows there
        (e.g. the row changed hands or vanished meanwhile) is also a denial.
        """
        self._check_owner(session, spec_id, user_id, "update")

        values = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = self.repo.update_owned(session, spec_id, user_id, values)
        if updated is None:
            raise AuthorizationDenied(NOT_OWNED.format(action="update"))
        return updated

    def delete_specification(
        self,
        session: Session,
        user_id: uuid.UUID,
        spec_id: uuid.UUID,
    ) -> None:
        self._check_owner(session, spec_id, user_id, "delete")

        if self.repo.delete_owned(session, spec_id, user_id) == 0:
            raise AuthorizationDenied(NOT_OWNED.format(action="delete"))

    def list_specifications(self, session: Session) -> list[SpecificationRecord]:
        return self.repo.list_all(session)

    def get_specifications_by_product(
        self,
        session: Session,
        product_id: int,
    ) -> list[SpecificationRecord]:
        return self.repo.list_by_product(session, product_id)

    def get_user_specifications(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[SpecificationRecord]:
        return self.repo.list_by_user(session, user_id)
