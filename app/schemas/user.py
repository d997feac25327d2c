# app/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. "anonymous" = identity without a profile, not stored.
Role = Literal["user", "admin"]


def _normalize_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("full_name cannot be empty")
    return v


class UserProfileRead(SQLModel):
    """Profile row as returned to clients."""

    id: uuid.UUID
    full_name: str
    role: Role
    created_at: datetime
    updated_at: datetime


class UserWithProfile(SQLModel):
    """Admin listing entry: gateway identity merged with its profile."""

    id: uuid.UUID
    email: str
    full_name: str
    role: Role
    created_at: datetime | None = None


class UserCreate(SQLModel):
    """
    Admin payload for creating an account.

    Validation rules:
      - email must be a valid EmailStr
      - full_name cannot be empty or whitespace
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    full_name: str = Field(max_length=200)
    role: Role = "user"

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _normalize_name(v)


class FirstAdminCreate(SQLModel):
    """Bootstrap payload; only accepted while no profile exists."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    full_name: str = Field(max_length=200)

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _normalize_name(v)


class UserRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role


class SetupStatus(SQLModel):
    needs_first_admin: bool
    profile_count: int


class EnvStatus(SQLModel):
    valid: bool
    missing: list[str]
