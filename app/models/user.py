# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class UserProfile(SQLModel, table=True):
    """
    Application profile for a Supabase identity.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - "user" | "admin"
      - an authenticated identity with no row is the "anonymous" tier:
        it can browse but has no admin capability.

    Rows are created by an admin (or the first-admin bootstrap), never on
    sign-in. Email lives in auth.users and is not mirrored here.
    """

    __tablename__ = "user_profiles"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    full_name: str = Field(
        max_length=200,
        description="Display name",
    )

    # Application role (not Supabase RLS role)
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )
