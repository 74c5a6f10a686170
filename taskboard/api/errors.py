import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("taskboard.errors")


class AppError(Exception):
    """Base for failures converted into a JSON error response."""

    kind = "InternalError"
    status_code = 500
    default_message = "Internal server error. Please try again later."
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class InputValidationError(AppError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Invalid input"

    @classmethod
    def from_errors(cls, errors) -> "InputValidationError":
        """Build from pydantic-style error dicts, keeping every error in reported order."""
        details = validation_details(errors)
        message = "; ".join(
            f"{d['field']}: {d['message']}" if d["field"] else d["message"] for d in details
        )
        return cls(message or None, details=details)


class DuplicateEmailError(AppError):
    kind = "DuplicateEmail"
    status_code = 400
    default_message = "Email is already registered"


class InvalidCredentialsError(AppError):
    # Shared by "no such email" and "wrong password"
    kind = "InvalidCredentials"
    status_code = 401
    default_message = "Invalid email or password"


class UnauthenticatedError(AppError):
    kind = "Unauthenticated"
    status_code = 401
    default_message = "Authorization denied. Token not provided or invalid format."
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(AppError):
    kind = "Forbidden"
    status_code = 403
    default_message = "Invalid token. Access denied."


class NotFoundOrForbiddenError(AppError):
    # Absent and not-owned look the same to the caller
    kind = "NotFoundOrForbidden"
    status_code = 404
    default_message = "Task not found or you are not authorized to access it."


class ProviderNotEnabledError(AppError):
    kind = "NotFound"
    status_code = 404
    default_message = "Sign-in provider is not enabled."


class InternalError(AppError):
    pass


def _error_body(request: Request, kind: str, message: str, status_code: int, details=None) -> dict:
    body: dict[str, Any] = {
        "error": kind,
        "message": message,
        "status": status_code,
        "path": request.url.path,
    }
    if details is not None:
        body["details"] = details
    return body


def validation_details(errors) -> list[dict[str, str]]:
    """Flatten pydantic errors into {field, message} pairs, in reported order."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": ".".join(loc), "message": message})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Attach consistent JSON error handlers: {error, message, status, path[, details]}."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.kind, exc.message, exc.status_code, exc.details),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                request,
                "HTTPError",
                exc.detail if isinstance(exc.detail, str) else "HTTP error",
                exc.status_code,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        err = InputValidationError.from_errors(exc.errors())
        return await app_error_handler(request, err)

    @app.exception_handler(SQLAlchemyError)
    async def store_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("store failure path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, InternalError.kind, InternalError.default_message, 500),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, InternalError.kind, InternalError.default_message, 500),
        )
