# app/core/errors.py
"""
Error taxonomy for the application.

Services raise these; `register_exception_handlers` turns every one of them
into the normalized `{"success": false, "error": "..."}` response body, so
nothing leaks to the UI as an unhandled failure.
"""
import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class. `extra` is merged into the response body."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, **self.extra}


class ConfigurationError(AppError):
    """A required environment value is missing."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class AuthenticationRequired(AppError):
    """No identity on the request."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationDenied(AppError):
    """Identity present but lacks the role or ownership."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class RateLimited(AppError):
    """Gateway said too many requests. Carries the wait time in seconds."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, wait_time_seconds: int):
        super().__init__(message, is_rate_limit=True, wait_time_seconds=wait_time_seconds)
        self.wait_time_seconds = wait_time_seconds


class UpstreamError(AppError):
    """Commerce API or Gateway returned a non rate-limit failure."""

    status_code = status.HTTP_502_BAD_GATEWAY


class GatewayError(UpstreamError):
    """Raised by the Supabase wrapper; message is the gateway's own text."""


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())
