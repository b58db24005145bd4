"""Error taxonomy and the JSON error envelope shared by every route."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)

DB_CONNECTION_MESSAGE = "Database connection error. Please try again later."


class APIError(RuntimeError):
    """Base error for request handling; carries the HTTP status to surface."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(APIError):
    """Raised when a request or record fails field-level validation."""

    status_code = 400


class Unauthorized(APIError):
    """Raised when credentials are invalid, expired or belong to no active user."""

    status_code = 401


class NoToken(Unauthorized):
    """Raised when a protected route is called without a bearer token."""

    def __init__(self, message: str = "No token provided"):
        super().__init__(message)


class Forbidden(APIError):
    """Raised when the caller does not own the addressed record."""

    status_code = 403


class NotFound(APIError):
    status_code = 404


class Conflict(APIError):
    """Raised when a unique field is already taken."""

    status_code = 400


class ServerError(APIError):
    status_code = 500


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _describe_validation(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        msg = err.get("msg", "Invalid value")
        messages.append(f"{field}: {msg}" if field else msg)
    return ", ".join(messages) or "Invalid request"


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.message, exc.status_code)


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    response = error_response(detail, exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(_describe_validation(exc), 400)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if "connection" in str(exc).lower():
        return error_response(DB_CONNECTION_MESSAGE, 500)
    return error_response("Server Error", 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
