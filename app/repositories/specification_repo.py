# app/repositories/specification_repo.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, update
from sqlmodel import Session, select

from app.models.specification import SpecificationRecord


class SpecificationRepository:
    """
    Data access layer for SpecificationRecord.

    - Pure DB operations (CRUD + queries).
    - Mutations take the acting user's id and filter on it in SQL, so a
      caller that skipped its own ownership check still cannot touch
      somebody else's row.
    """

    def get_by_id(
        self,
        session: Session,
        spec_id: uuid.UUID,
    ) -> SpecificationRecord | None:
        return session.get(SpecificationRecord, spec_id)

    def list_all(self, session: Session) -> list[SpecificationRecord]:
        stmt = select(SpecificationRecord).order_by(SpecificationRecord.created_at.desc())
        return list(session.exec(stmt).all())

    def list_by_product(
        self,
        session: Session,
        product_id: int,
    ) -> list[SpecificationRecord]:
        stmt = (
            select(SpecificationRecord)
            .where(SpecificationRecord.product_id == product_id)
            .order_by(SpecificationRecord.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def list_by_user(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[SpecificationRecord]:
        stmt = (
            select(SpecificationRecord)
            .where(SpecificationRecord.user_id == user_id)
            .order_by(SpecificationRecord.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def create(self, session: Session, record: SpecificationRecord) -> SpecificationRecord:
        session.add(record)
        session.commit()
        session.refresh(record)
        return record

    def update_owned(
        self,
        session: Session,
        spec_id: uuid.UUID,
        user_id: uuid.UUID,
        values: dict[str, Any],
    ) -> SpecificationRecord | None:
        """
        Apply `values` to the row matching both id and owner.

        Returns:
            The updated row, or None when zero rows matched.
        """
        stmt = (
            update(SpecificationRecord)
            .where(
                SpecificationRecord.id == spec_id,
                SpecificationRecord.user_id == user_id,
            )
            .values(**values, updated_at=datetime.now(timezone.utc))
        )
        result = session.execute(stmt)
        session.commit()

        if result.rowcount == 0:
            return None
        return session.get(SpecificationRecord, spec_id)

    def delete_owned(
        self,
        session: Session,
        spec_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> int:
        """Delete the row matching both id and owner. Returns rows affected."""
        stmt = delete(SpecificationRecord).where(
            SpecificationRecord.id == spec_id,
            SpecificationRecord.user_id == user_id,
        )
        result = session.execute(stmt)
        session.commit()
        return result.rowcount
