from __future__ import annotations
import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger("otp_gateway.errors")


class AuthError(Exception):
    """Base for every failure reported to the caller as ``{"error": message}``."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingField(AuthError):
    default_message = "Missing required field"


class Conflict(AuthError):
    default_message = "User already exists"


class NoChallenge(AuthError):
    default_message = "No OTP requested for this email"


class Expired(AuthError):
    default_message = "OTP expired"


class InvalidCode(AuthError):
    default_message = "Invalid OTP code"


class Unauthenticated(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Missing token"


class DeliveryFailed(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to send OTP"


class InternalError(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error"


async def auth_error_handler(_: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # keep the {"error": ...} shape instead of FastAPI's 422 {"detail": [...]}
    log.info("invalid request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse({"error": "Invalid request body"}, status_code=status.HTTP_400_BAD_REQUEST)
