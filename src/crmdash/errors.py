"""Error taxonomy and the HTTP error mapping.

Inside the auth core, expected failures (bad password, expired token, foreign
tenant) are returned as values. The classes here are raised only at the HTTP
boundary, where each one maps to a status code and an ``{"error": ...}`` body.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


class InvalidInput(ValueError):
    """Raised by the credential hasher for null or empty passwords."""


class DuplicateRecord(Exception):
    """Raised by repositories when a write violates a unique constraint."""


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


class InvalidCredentials(ApiError):
    status_code = 401
    default_message = "Invalid email or password"


class InvalidToken(ApiError):
    status_code = 401
    default_message = "Invalid token"


class Forbidden(ApiError):
    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(ApiError):
    status_code = 400
    default_message = "Invalid request"


class DeleteBlocked(ApiError):
    """Tenant-scoped delete refused because dependent rows still exist."""

    status_code = 400


class UnsupportedMediaType(ApiError):
    status_code = 415
    default_message = "Unsupported content type"


class InternalError(ApiError):
    status_code = 500


def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationFailed.default_message
    err = errors[0]
    field = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
    message = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("api_error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": _first_error_message(exc)})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


async def _duplicate_record_handler(request: Request, exc: DuplicateRecord) -> JSONResponse:
    logger.info("duplicate_record", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content={"error": str(exc) or "Record already exists"})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"error": InternalError.default_message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(DuplicateRecord, _duplicate_record_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
