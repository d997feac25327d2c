# app/routers/auth.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import CurrentUser, get_current_user, profiles
from app.core.config import get_settings
from app.core.gateway import CredentialGateway, get_gateway
from app.core.routes import admit
from app.core.session import resolve_session
from app.database import get_session
from app.schemas.auth import (
    OtpRequest,
    OtpResult,
    OtpVerifyRequest,
    OtpVerifyResult,
    RouteAdmission,
    SessionInfo,
)
from app.services.otp_service import OtpControllerRegistry

router = APIRouter(prefix="/auth", tags=["Auth"])

otp_registry = OtpControllerRegistry(window=get_settings().OTP_COOLDOWN_SECONDS)


# -------- One-time code sign-in --------
#
# Every endpoint answers 200 with a tagged OtpResult; gateway failures and
# rate limits are reported in the body (success=false), not as HTTP errors.


@router.post("/otp/request", response_model=OtpResult)
def request_code(
    payload: OtpRequest,
    gateway: CredentialGateway = Depends(get_gateway),
):
    """
    Email a 6-digit sign-in code.

    Codes are only issued to existing accounts. Starts a cooldown
    (60s by default) or, when rate limited, the wait time Supabase asks for.
    """
    return otp_registry.request_code(payload.email, gateway)


@router.post("/otp/resend", response_model=OtpResult)
def resend_code(
    payload: OtpRequest,
    gateway: CredentialGateway = Depends(get_gateway),
):
    """Send a new code to the same email. Rejected while cooling down."""
    return otp_registry.resend_code(payload.email, gateway)


@router.post("/otp/verify", response_model=OtpVerifyResult)
def verify_code(
    payload: OtpVerifyRequest,
    gateway: CredentialGateway = Depends(get_gateway),
    session: Session = Depends(get_session),
):
    """
    Exchange email + code for a Supabase session.

    On success the response carries the access/refresh tokens and the
    resolved role of the signed-in identity (no profile => not admin).
    """
    result = otp_registry.verify_code(payload.email, payload.code, gateway)
    if result.success and result.session is not None:
        identity = result.session.identity
        result.user = resolve_session(identity, profiles.get_by_id(session, identity.id))
    return result


@router.post("/otp/back", response_model=OtpResult)
def back_to_email(payload: OtpRequest):
    """Abandon the code-entry step. The issued code is not revoked."""
    return otp_registry.back(payload.email)


@router.get("/otp/status", response_model=OtpResult)
def otp_status(email: str = Query(..., min_length=3)):
    """Current step and remaining cooldown for an email."""
    return otp_registry.status(email)


# -------- Session --------


@router.get("/session", response_model=SessionInfo)
def read_session(user: CurrentUser = Depends(get_current_user)):
    """
    Resolved view of the caller.

    Guests get is_authenticated=false rather than a 401.
    """
    return user.info


@router.get("/admission", response_model=RouteAdmission)
def route_admission(
    path: str = Query(..., min_length=1),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Admission decision for a UI path (used by the frontend middleware).

    Protected paths without a session redirect to sign-in with the path
    preserved; admin paths for non-admins redirect to "/".
    """
    return admit(path, user.info)
