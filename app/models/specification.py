# app/models/specification.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column
from sqlmodel import SQLModel, Field


class SpecificationRecord(SQLModel, table=True):
    """
    User-authored specification attached to a Shopify product.

    Ownership:
      - user_id is the Supabase identity that created the row.
      - only that identity may update or delete it; repositories put the
        user_id into the WHERE clause of every mutation.

    Allowed values for ease_of_use / nicotine_content are enforced by the
    request schemas (Literal).
    """

    __tablename__ = "snuff_specifications"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # Shopify product ids are 64-bit integers
    product_id: int = Field(
        sa_column=Column(BigInteger, nullable=False, index=True),
        description="Shopify product id",
    )

    product_title: str = Field(
        max_length=255,
        description="Product title at the time the record was written",
    )

    ease_of_use: str = Field(
        max_length=20,
        description="Beginner | Intermediate | Experienced",
    )

    nicotine_content: str = Field(
        max_length=20,
        description="None | Low | Medium | High",
    )

    user_id: uuid.UUID = Field(
        index=True,
        description="Owner, matches Supabase auth.users.id",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )
