# app/schemas/auth.py
import uuid
from enum import Enum
from typing import Literal

from pydantic import ConfigDict, EmailStr
from sqlmodel import SQLModel, Field


class Identity(SQLModel):
    """
    Authenticated principal issued by Supabase Auth.

    `id` is auth.users.id (JWT "sub"); it is also the primary key of the
    matching user_profiles row, when one exists.
    """

    id: uuid.UUID
    email: str | None = None


class GatewaySession(SQLModel):
    """Tokens returned by Supabase after a code is verified."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    identity: Identity


class SessionInfo(SQLModel):
    """Resolved view of the current caller, handed to the rest of the app."""

    is_authenticated: bool
    is_admin: bool
    display_name: str
    user_id: uuid.UUID | None = None
    email: str | None = None


class OtpState(str, Enum):
    EMAIL_ENTRY = "email_entry"
    CODE_ENTRY = "code_entry"
    AUTHENTICATED = "authenticated"


class OtpResult(SQLModel):
    """
    Tagged result of every OTP controller operation.

    Gateway failures are reported here instead of being raised.
    """

    success: bool
    error: str | None = None
    is_rate_limit: bool = False
    wait_time_seconds: int | None = None
    state: OtpState = OtpState.EMAIL_ENTRY
    cooldown: int = 0
    cooldown_progress: float = 1.0
    email: str | None = None


class OtpVerifyResult(OtpResult):
    """Verification result; carries the gateway session on success."""

    session: GatewaySession | None = None
    user: SessionInfo | None = None


# ----- Request payloads -----


class OtpRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class OtpVerifyRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    # Format is checked by the controller so a bad code is reported
    # as a tagged result rather than a 422.
    code: str = Field(max_length=32)


RouteClass = Literal["public", "admin", "protected"]


class RouteAdmission(SQLModel):
    """Decision for a UI path, consumed by the hosting boundary layer."""

    path: str
    route_class: RouteClass | None
    action: Literal["allow", "redirect"]
    location: str | None = None
