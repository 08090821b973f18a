# core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException

from telemetry.logger import get_logger

logger = get_logger(__name__)

# -------------------------------------------------------------------
# Client-facing messages (single source for every error response)
# -------------------------------------------------------------------
ERRORS = {
    "EMAIL_ALREADY_REGISTERED": "Email already registered",
    "INVALID_EMAIL_OR_PASSWORD": "Invalid email or password",
    "REFRESH_TOKEN_REQUIRED": "refreshToken required in body",
    "INVALID_OR_EXPIRED_REFRESH_TOKEN": "Invalid or expired refresh token",
    "INVALID_TOKEN": "Invalid token",
    "TOKEN_EXPIRED": "Token expired",
    "MISSING_AUTHORIZATION": "Missing Authorization header",
    "JWT_NOT_CONFIGURED": "JWT not configured",
    "USER_NOT_FOUND": "User not found",
    "PASSWORD_TOO_SHORT": "Password must be at least 8 characters",
    "INVALID_TTL_FORMAT": "Invalid JWT TTL format",
    # Internal (logged, never exposed with detail)
    "INTERNAL": "Internal server error",
    "INSERT_FAILED": "Insert failed",
}


class AppError(Exception):
    """HTTP-aware domain error. Services raise it; the handler below serialises it."""

    status_code = 500
    default_message = ERRORS["INTERNAL"]

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.code = code
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.code:
            body["code"] = self.code
        return body


class EmailAlreadyRegistered(AppError):
    status_code = 409
    default_message = ERRORS["EMAIL_ALREADY_REGISTERED"]


class InvalidCredentials(AppError):
    status_code = 401
    default_message = ERRORS["INVALID_EMAIL_OR_PASSWORD"]


class InvalidOrExpiredRefreshToken(AppError):
    status_code = 401
    default_message = ERRORS["INVALID_OR_EXPIRED_REFRESH_TOKEN"]


class InvalidToken(AppError):
    status_code = 401
    default_message = ERRORS["INVALID_TOKEN"]


class UserNotFound(AppError):
    status_code = 404
    default_message = ERRORS["USER_NOT_FOUND"]


class ServiceNotConfigured(AppError):
    status_code = 500
    default_message = ERRORS["JWT_NOT_CONFIGURED"]


class InsertFailed(AppError):
    status_code = 500
    default_message = ERRORS["INSERT_FAILED"]


class InvalidTtlFormat(AppError):
    status_code = 500
    default_message = ERRORS["INVALID_TTL_FORMAT"]


class PasswordTooShort(AppError):
    status_code = 400
    default_message = ERRORS["PASSWORD_TOO_SHORT"]


def is_unique_violation(exc: Optional[BaseException]) -> bool:
    """True for a unique-constraint failure from Postgres (23505) or SQLite."""
    if exc is None:
        return False
    orig = exc.orig if isinstance(exc, IntegrityError) else exc
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    if getattr(orig, "code", None) == "23505":
        return True
    return isinstance(exc, IntegrityError) and "UNIQUE constraint failed" in str(orig)


# -------------------------------------------------------------------
# FastAPI boundary
# -------------------------------------------------------------------
async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
    else:
        message = "Bad request"
    return JSONResponse({"error": message}, status_code=400)


async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if 400 <= exc.status_code < 500:
        return JSONResponse(
            {"error": str(exc.detail)},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )
    logger.error("%s %s failed with HTTP %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse({"error": ERRORS["INTERNAL"]}, status_code=exc.status_code)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": ERRORS["INTERNAL"]}, status_code=500)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(HTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
