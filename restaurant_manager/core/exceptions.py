"""
Domain errors and global exception handlers — prevents stack-trace leakage to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class AppError(Exception):
    """Base error with a client-safe message and an HTTP status."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        self.message = message or self.message
        self.field = field
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    message = "Invalid request"


class InvalidCredentialsError(AppError):
    # Same body for unknown email and wrong password.
    status_code = 401
    code = "invalid_credentials"
    message = "Invalid credentials"


class NotAuthenticatedError(AppError):
    status_code = 401
    code = "not_authenticated"
    message = "Not authenticated"


class SessionExpiredError(AppError):
    status_code = 401
    code = "session_expired"
    message = "Session expired, please log in again"


class SessionRevokedError(AppError):
    status_code = 401
    code = "session_revoked"
    message = "Session has been revoked, please log in again"


class AccountDisabledError(AppError):
    status_code = 403
    code = "account_disabled"
    message = "User account is inactive"


class DuplicateUserError(AppError):
    status_code = 409
    code = "duplicate_user"
    message = "User already exists"


class RateLimitExceededError(AppError):
    status_code = 429
    code = "rate_limited"
    message = "Too many attempts, please try again later"

    def __init__(self, retry_after: int | None = None) -> None:
        super().__init__()
        self.retry_after = retry_after

    @property
    def headers(self) -> dict[str, str] | None:
        if self.retry_after is None:
            return None
        return {"Retry-After": str(self.retry_after)}


# ── Handlers ────────────────────────────────────────────────────────
def _error_body(message: str, code: str, field: str | None = None) -> dict:
    body: dict = {"detail": message, "code": code, "success": False}
    if field is not None:
        body["field"] = field
    return body


def _describe_validation_error(error: dict) -> tuple[str, str | None]:
    """Turn the first pydantic error into a readable message and field name."""
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = loc[-1] if loc else None
    kind = error.get("type", "")

    if kind == "json_invalid":
        return "Malformed JSON body", None
    if kind == "missing":
        return f"{field or 'Request body'} is required", field
    if kind.endswith("_type"):
        return f"{field or 'Request body'} has an invalid type", field

    msg = str(error.get("msg", "Invalid value"))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return msg, field


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Application error on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code, exc.field),
        headers=exc.headers,
    )


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message, field = _describe_validation_error(errors[0]) if errors else ("Invalid request", None)
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return JSONResponse(
        status_code=400,
        content=_error_body(message, ValidationError.code, field),
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
