"""Application error taxonomy and the FastAPI handlers that render it.

Every error the service layer raises on purpose is an AppError subclass
carrying an HTTP status and a machine-readable code. Handlers turn them
into a stable JSON envelope: {"detail": <message>, "code": <code>}.

Anything that is not an AppError (storage failures, bugs) is rendered as
a generic 500 — the original message is logged, never sent to the client.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()

# Authentication reason codes
NO_TOKEN = "NO_TOKEN"
INVALID_TOKEN = "INVALID_TOKEN"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"


class AppError(Exception):
    """Base class for errors that map to a specific HTTP response."""

    status_code = 500
    code = "INTERNAL"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.headers = headers or {}


class InvalidInputError(AppError):
    status_code = 400
    code = "VALIDATION"


class ConflictError(AppError):
    """Duplicate resource (e.g. email already registered)."""

    status_code = 400
    code = "CONFLICT"


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    code = INVALID_TOKEN

    def __init__(self, message: str, code: Optional[str] = None, headers=None):
        headers = {"WWW-Authenticate": "Bearer", **(headers or {})}
        super().__init__(message, code=code, headers=headers)


class AuthorizationError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=exc.headers,
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body/query validation failures are client errors (400, not 422)."""
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "code": "VALIDATION", "errors": errors},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request.unhandled_error",
        path=request.url.path,
        method=request.method,
        error=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "INTERNAL"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
