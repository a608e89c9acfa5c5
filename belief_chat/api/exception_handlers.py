"""
Global exception handlers for FastAPI.

Every error response body is {"error": "<message>"}.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import structlog

from belief_chat.core.exceptions import (
    ConfigurationError,
    ConversationTerminatedError,
    NotFoundError,
    PersistenceError,
    StudyServiceError,
    ValidationError,
)

log = structlog.get_logger(__name__)


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    """Human-readable, field-level summary of a request validation failure."""
    parts = []
    for error in exc.errors():
        location = [str(p) for p in error.get("loc", ()) if p != "body"]
        field = ".".join(location) or "body"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


def setup_exception_handlers(app: FastAPI):
    """Register custom exception handlers with the FastAPI application.

    Sets up handlers for all StudyServiceError subclasses with appropriate
    HTTP status codes, request validation, HTTP exceptions raised by routes,
    and generic exceptions.
    """

    @app.exception_handler(StudyServiceError)
    async def study_service_error_handler(
        request: Request,
        exc: StudyServiceError,
    ) -> JSONResponse:
        """Map application errors to status codes.

        Validation, not-found and conflict errors are expected outcomes and
        are logged at info; storage failures are logged at error.
        """
        log_ctx = log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )

        if isinstance(exc, ValidationError):
            return _error(status.HTTP_400_BAD_REQUEST, exc.message)
        if isinstance(exc, NotFoundError):
            log_ctx.info("request_not_found", message=exc.message)
            return _error(status.HTTP_404_NOT_FOUND, exc.message)
        if isinstance(exc, ConversationTerminatedError):
            log_ctx.info("request_conflict", message=exc.message)
            return _error(status.HTTP_409_CONFLICT, exc.message)
        if isinstance(exc, ConfigurationError):
            log_ctx.error("configuration_error", message=exc.message)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration error")
        if isinstance(exc, PersistenceError):
            log_ctx.error("persistence_error", message=exc.message)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save data")

        log_ctx.error("request_error", message=exc.message)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Malformed request bodies are 400s, like service-level validation."""
        return _error(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle all unhandled exceptions with HTTP 500 status.

        Logs the error with full context and returns an opaque message.
        """
        log_ctx = log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )

        log_ctx.error(
            "unhandled_exception",
            message=str(exc),
            exc_info=exc,
        )

        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")
