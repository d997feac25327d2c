# app/services/otp_service.py
"""
Passwordless sign-in: request a one-time code by email, then verify it.

OtpController is the per-attempt state machine:

    EMAIL_ENTRY --request_code ok--> CODE_ENTRY --verify_code ok--> AUTHENTICATED
         ^                               |
         +------------- back ------------+

A cooldown counter (seconds) runs across both entry states. It is set to the
fixed window after a code is sent, or to the gateway's wait time after a
rate-limit error, and only `tick()` lowers it.

OtpControllerRegistry keeps one controller per email for the HTTP layer and
drives every controller's `tick()` from a single monotonic clock.
"""
import logging
import re
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable

from app.core.errors import GatewayError
from app.core.gateway import CredentialGateway
from app.core.session import InMemorySessionProvider
from app.schemas.auth import (
    GatewaySession,
    Identity,
    OtpResult,
    OtpState,
    OtpVerifyResult,
)

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 60
DEFAULT_RATE_LIMIT_WAIT = 60
MAX_COOLDOWN_SECONDS = 3600
# Supabase email OTPs expire after an hour by default.
CHALLENGE_TTL_SECONDS = 3600

_RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "security purposes", "seconds")
_WAIT_TIME = re.compile(r"(\d+)\s+seconds")
_CODE = re.compile(r"^\d{6}$")


def detect_rate_limit(message: str) -> int | None:
    """
    Return the wait time in seconds if `message` reads as a rate-limit error.

    Supabase phrases these in several ways, e.g. "For security purposes, you
    can only request this after 42 seconds." or "Email rate limit exceeded".
    When no number is present the wait defaults to 60 seconds.
    """
    text = (message or "").lower()
    if not any(marker in text for marker in _RATE_LIMIT_MARKERS):
        return None
    match = _WAIT_TIME.search(text)
    return int(match.group(1)) if match else DEFAULT_RATE_LIMIT_WAIT


class OtpChallenge:
    """Transient record of an issued code. Never persisted."""

    def __init__(self, email: str, cooldown_seconds: int):
        self.email = email
        self.issued_at = datetime.now(timezone.utc)
        self.cooldown_seconds = cooldown_seconds


class OtpController:
    def __init__(
        self,
        gateway: CredentialGateway,
        window: int = DEFAULT_COOLDOWN_SECONDS,
        sessions: InMemorySessionProvider | None = None,
    ):
        self.gateway = gateway
        self.window = window
        self.sessions = sessions or InMemorySessionProvider()

        self.state = OtpState.EMAIL_ENTRY
        self.email: str | None = None
        self.challenge: OtpChallenge | None = None
        self.cooldown = 0
        self.submitting = False
        self.gateway_session: GatewaySession | None = None

        # Progress is measured against whatever value started the countdown.
        self._cooldown_window = window

    # ----- Cooldown -----

    def _set_cooldown(self, seconds: int) -> None:
        """Never shortens a running cooldown; clamped to [0, MAX_COOLDOWN_SECONDS]."""
        seconds = max(0, min(seconds, MAX_COOLDOWN_SECONDS))
        if seconds > self.cooldown:
            self.cooldown = seconds
            self._cooldown_window = seconds

    def tick(self, elapsed: int = 1) -> int:
        """Advance the cooldown by `elapsed` seconds. Returns what is left."""
        if elapsed > 0:
            self.cooldown = max(0, self.cooldown - elapsed)
        return self.cooldown

    @property
    def cooldown_progress(self) -> float:
        if self.cooldown <= 0 or self._cooldown_window <= 0:
            return 1.0
        return (self._cooldown_window - self.cooldown) / self._cooldown_window

    # ----- Results -----

    def _result(self, success: bool, error: str | None = None, **extra) -> OtpResult:
        return OtpResult(
            success=success,
            error=error,
            state=self.state,
            cooldown=self.cooldown,
            cooldown_progress=self.cooldown_progress,
            email=self.email,
            **extra,
        )

    def snapshot(self) -> OtpResult:
        return self._result(True)

    # ----- Transitions -----

    def request_code(self, email: str | None) -> OtpResult:
        email = (email or "").strip()
        if not email:
            return self._result(False, "Email is required")

        if self.cooldown > 0:
            return self._result(
                False,
                f"Please wait {self.cooldown} seconds before requesting another code",
            )

        if self.submitting:
            return self._result(False, "A request is already in progress")

        self.submitting = True
        try:
            self.gateway.send_code(email, allow_new_user=False)
        except GatewayError as e:
            return self._on_send_failure(email, e.message)
        finally:
            self.submitting = False

        self.email = email
        self.state = OtpState.CODE_ENTRY
        self._set_cooldown(self.window)
        self.challenge = OtpChallenge(email, self.cooldown)
        logger.info("Sign-in code sent to %s", email)
        return self._result(True)

    def _on_send_failure(self, email: str, message: str) -> OtpResult:
        wait = detect_rate_limit(message)
        if wait is None:
            return self._result(False, message or "Failed to send code")

        self._set_cooldown(wait)
        logger.info("Rate limited sending code to %s; waiting %s seconds", email, wait)
        return self._result(
            False,
            f"Email rate limit exceeded. Please wait {wait} seconds "
            "before requesting another code.",
            is_rate_limit=True,
            wait_time_seconds=wait,
        )

    def resend_code(self) -> OtpResult:
        if self.cooldown > 0:
            return self._result(
                False,
                f"You can request a new code in {self.cooldown} seconds",
            )
        return self.request_code(self.email)

    def verify_code(self, email: str | None, code: str | None) -> OtpVerifyResult:
        email = (email or self.email or "").strip()
        code = (code or "").strip()

        if not email or not code:
            return OtpVerifyResult(**self._fields(False, "Email and OTP code are required"))

        if not _CODE.match(code):
            return OtpVerifyResult(**self._fields(False, "The code must be exactly 6 digits"))

        if self.submitting:
            return OtpVerifyResult(**self._fields(False, "A request is already in progress"))

        self.submitting = True
        try:
            session = self.gateway.verify_code(email, code)
        except GatewayError as e:
            return OtpVerifyResult(**self._fields(False, e.message or "Verification failed"))
        finally:
            self.submitting = False

        self.state = OtpState.AUTHENTICATED
        self.email = email
        self.challenge = None
        self.cooldown = 0
        self.gateway_session = session
        self.sessions.set_session(session.identity)
        return OtpVerifyResult(**self._fields(True), session=session)

    def _fields(self, success: bool, error: str | None = None) -> dict:
        return self._result(success, error).model_dump()

    def back(self) -> OtpResult:
        """Drop the challenge and return to email entry. No server call."""
        self.challenge = None
        if self.state == OtpState.CODE_ENTRY:
            self.state = OtpState.EMAIL_ENTRY
        return self._result(True)

    @property
    def identity(self) -> Identity | None:
        return self.sessions.get_session()


class _Entry:
    """A registered controller with its own lock and clock bookkeeping."""

    __slots__ = ("controller", "lock", "last_tick", "last_used", "busy")

    def __init__(self, controller: OtpController, now: float):
        self.controller = controller
        self.lock = threading.Lock()
        self.last_tick = now
        self.last_used = now
        self.busy = 0


class OtpControllerRegistry:
    """
    In-process controllers keyed by lower-cased email.

    `clock` returns seconds; whole seconds elapsed since a controller was
    last advanced are fed to its tick(), so there is exactly one time source.
    The gateway is passed per call so each request uses its own client.

    The registry lock only covers lookup and housekeeping. Gateway calls run
    under the per-controller lock, so a slow send for one email does not
    block sign-in for another. A controller is dropped as soon as it holds
    nothing worth keeping: signed in, or back at email entry with no
    challenge and no cooldown. One that sits unused for `idle_ttl` seconds
    is dropped as well.
    """

    def __init__(
        self,
        window: int = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        idle_ttl: int = CHALLENGE_TTL_SECONDS,
    ):
        self.window = window
        self.clock = clock
        self.idle_ttl = idle_ttl
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    # ----- Housekeeping (registry lock held) -----

    @staticmethod
    def _advance(entry: _Entry, now: float) -> None:
        elapsed = int(now - entry.last_tick)
        if elapsed > 0:
            entry.controller.tick(elapsed)
            # keep the fractional remainder for the next access
            entry.last_tick += elapsed

    def _idle(self, entry: _Entry, now: float) -> bool:
        if entry.busy:
            return False
        controller = entry.controller
        if controller.state == OtpState.AUTHENTICATED:
            return True
        if controller.cooldown == 0 and controller.challenge is None:
            return True
        return now - entry.last_used >= self.idle_ttl

    def _sweep(self, now: float) -> None:
        for key, entry in list(self._entries.items()):
            if entry.busy:
                continue
            self._advance(entry, now)
            if self._idle(entry, now):
                del self._entries[key]

    def _evict(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def _create(self, key: str, email: str, gateway: CredentialGateway) -> OtpController:
        controller = OtpController(gateway, window=self.window)
        controller.email = email.strip()

        def on_change(identity: Identity | None) -> None:
            if identity is not None:
                logger.info("Signed in %s", identity.email)
                self._evict(key)

        controller.sessions.on_session_change(on_change)
        return controller

    # ----- Checkout -----

    def _acquire(self, email: str, gateway: CredentialGateway | None) -> tuple[str, _Entry | None]:
        key = self._key(email)
        with self._lock:
            now = self.clock()
            self._sweep(now)
            entry = self._entries.get(key)
            if entry is None:
                if gateway is None:
                    return key, None
                entry = _Entry(self._create(key, email, gateway), now)
                self._entries[key] = entry
            entry.busy += 1
            entry.last_used = now
            return key, entry

    def _release(self, key: str, entry: _Entry) -> None:
        with self._lock:
            entry.busy -= 1
            if self._entries.get(key) is entry and self._idle(entry, self.clock()):
                del self._entries[key]

    @contextmanager
    def _checkout(self, email: str, gateway: CredentialGateway | None = None):
        """
        Yield the controller for `email` with its lock held, or None when
        there is none and no gateway to create one with.
        """
        key, entry = self._acquire(email, gateway)
        if entry is None:
            yield None
            return
        try:
            with entry.lock:
                self._advance(entry, self.clock())
                if gateway is not None:
                    entry.controller.gateway = gateway
                yield entry.controller
        finally:
            self._release(key, entry)

    # ----- Operations -----

    def request_code(self, email: str, gateway: CredentialGateway) -> OtpResult:
        with self._checkout(email, gateway) as controller:
            return controller.request_code(email)

    def resend_code(self, email: str, gateway: CredentialGateway) -> OtpResult:
        with self._checkout(email, gateway) as controller:
            return controller.resend_code()

    def verify_code(self, email: str, code: str, gateway: CredentialGateway) -> OtpVerifyResult:
        with self._checkout(email, gateway) as controller:
            return controller.verify_code(email, code)

    def back(self, email: str) -> OtpResult:
        with self._checkout(email) as controller:
            if controller is None:
                return OtpResult(success=True, email=email)
            return controller.back()

    def status(self, email: str) -> OtpResult:
        with self._checkout(email) as controller:
            if controller is None:
                return OtpResult(success=True, email=email)
            return controller.snapshot()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
