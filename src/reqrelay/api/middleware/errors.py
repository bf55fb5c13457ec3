"""Error handling for consistent JSON envelope responses.

Every response from the request API uses the same envelope:

    {"success": bool, "message": str, "data": object | null}

Domain errors raised by the store and the publisher are mapped to HTTP
status codes here:

- ConflictError -> 409
- NotFoundError -> 404
- RequestValidationError (and FastAPI body validation) -> 400
- DependencyUnavailableError (database or broker down) -> 503
- anything unexpected -> 500 (logged with traceback)
"""

import logging
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError as FastAPIValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from reqrelay.api.middleware.request_id import get_request_id
from reqrelay.api.schemas.requests import Envelope
from reqrelay.core.errors import (
    ConflictError,
    DependencyUnavailableError,
    NotFoundError,
    ReqRelayError,
    RequestValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[ReqRelayError], int] = {
    ConflictError: 409,
    NotFoundError: 404,
    RequestValidationError: 400,
    DependencyUnavailableError: 503,
}


class APIError(Exception):
    """HTTP-level error carrying an explicit status and optional envelope data."""

    def __init__(self, message: str, status_code: int = 400, data: Any = None) -> None:
        self.message = message
        self.status_code = status_code
        self.data = data
        super().__init__(message)


class AuthenticationError(APIError):
    """Missing or wrong API key (401)."""

    def __init__(self, message: str = "Missing or invalid API key") -> None:
        super().__init__(message, status_code=401)


def build_envelope_response(
    status_code: int,
    message: str,
    data: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build an envelope response; success is derived from the status code."""
    envelope = Envelope(success=status_code < 400, message=message, data=data)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(), headers=headers)


def status_for_error(exc: ReqRelayError) -> int:
    """HTTP status for a domain error, walking the class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


async def _handle_api_error(_request: Request, exc: APIError) -> JSONResponse:
    return build_envelope_response(exc.status_code, exc.message, exc.data)


async def _handle_domain_error(_request: Request, exc: ReqRelayError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    return build_envelope_response(status_code, exc.message)


async def _handle_validation_error(_request: Request, exc: FastAPIValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(x) for x in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return build_envelope_response(400, "Request validation failed", {"errors": errors})


async def _handle_http_exception(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return build_envelope_response(
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install envelope-producing handlers for known exception types."""
    app.add_exception_handler(APIError, _handle_api_error)
    app.add_exception_handler(ReqRelayError, _handle_domain_error)
    app.add_exception_handler(FastAPIValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catches anything the exception handlers did not and returns a 500 envelope."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.exception(
                "Unexpected error processing request: %s %s (request_id=%s)",
                request.method,
                request.url.path,
                get_request_id(),
            )
            return build_envelope_response(500, "An internal error occurred")
