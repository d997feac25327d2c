# app/schemas/specification.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

EaseOfUse = Literal["Beginner", "Intermediate", "Experienced"]
NicotineContent = Literal["None", "Low", "Medium", "High"]


class SpecificationCreate(SQLModel):
    """
    Payload for saving a specification.

    user_id and timestamps are never accepted from the client; the owner is
    always the authenticated caller.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: int = Field(gt=0)
    product_title: str = Field(max_length=255)
    ease_of_use: EaseOfUse
    nicotine_content: NicotineContent

    @field_validator("product_title")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("product_title cannot be empty")
        return v


class SpecificationUpdate(SQLModel):
    """
    Partial update payload.
    All fields are optional; product_id cannot be changed.
    """

    model_config = ConfigDict(extra="forbid")

    product_title: str | None = Field(default=None, max_length=255)
    ease_of_use: EaseOfUse | None = None
    nicotine_content: NicotineContent | None = None

    @field_validator("product_title")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("product_title cannot be empty")
        return v


class SpecificationRead(SQLModel):
    id: uuid.UUID
    product_id: int
    product_title: str
    ease_of_use: EaseOfUse
    nicotine_content: NicotineContent
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
