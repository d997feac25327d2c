# app/repositories/user_repo.py
import uuid

from sqlalchemy import func, text
from sqlmodel import Session, select

from app.models.user import UserProfile


class UserProfileRepository:
    """
    Data access layer for UserProfile.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Basic CRUD -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> UserProfile | None:
        """Return a profile by primary key, or None if not found."""
        return session.get(UserProfile, user_id)

    def list(self, session: Session, skip: int = 0, limit: int = 50) -> list[UserProfile]:
        """
        Paginated profile listing, newest first.

        Args:
            skip: offset rows (for paging)
            limit: max number of rows returned
        """
        stmt = (
            select(UserProfile)
            .order_by(UserProfile.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def count(self, session: Session) -> int:
        """Total number of profiles (used by the first-admin bootstrap)."""
        return session.exec(select(func.count()).select_from(UserProfile)).one()

    def create(self, session: Session, profile: UserProfile) -> UserProfile:
        """Insert a new profile and return the persisted row."""
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    def create_if_empty(self, session: Session, profile: UserProfile) -> UserProfile | None:
        """
        Insert `profile` only while the table is empty, re-checked in the
        same transaction. On Postgres the table is locked against concurrent
        inserts until the commit. Returns None when a row already exists.
        """
        if session.get_bind().dialect.name == "postgresql":
            session.execute(
                text(f"LOCK TABLE {UserProfile.__tablename__} IN SHARE ROW EXCLUSIVE MODE")
            )
        existing = session.exec(select(func.count()).select_from(UserProfile)).one()
        if existing > 0:
            session.rollback()
            return None
        return self.create(session, profile)

    def update(self, session: Session, profile: UserProfile) -> UserProfile:
        """Persist changes to an existing profile."""
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    def delete(self, session: Session, profile: UserProfile) -> None:
        """Delete a profile."""
        session.delete(profile)
        session.commit()
