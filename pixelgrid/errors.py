"""
Error kinds and FastAPI exception handlers.

Every error raised by the service derives from PixelGridError and carries a
machine-readable code plus the HTTP status it maps to at the request
boundary. Server-side failures (5xx) are logged in full but reported to the
caller with a generic message only.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ErrorDetail(BaseModel):
    """Error information returned to the caller."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: ErrorDetail


class PixelGridError(Exception):
    """Base class for domain errors."""

    code = "PIXELGRID_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidLength(PixelGridError):
    """A pixel buffer or grid has the wrong size."""

    code = "INVALID_LENGTH"
    status_code = 400


class InvalidArgument(PixelGridError):
    """Bad generator length or channel value out of range."""

    code = "INVALID_ARGUMENT"
    status_code = 400


class ValidationFailed(PixelGridError):
    """Malformed client payload."""

    code = "VALIDATION_FAILED"
    status_code = 400


class NotFound(PixelGridError):
    code = "NOT_FOUND"
    status_code = 404


class UnexpectedContentType(PixelGridError):
    """The server answered a frame read with something other than raw bytes."""

    code = "UNEXPECTED_CONTENT_TYPE"
    status_code = 502


class PersistenceFailure(PixelGridError):
    code = "PERSISTENCE_FAILURE"
    status_code = 503


class CacheInconsistency(PixelGridError):
    """Metadata references frames the cache or store cannot provide."""

    code = "CACHE_INCONSISTENCY"
    status_code = 500


def error_response(exc: PixelGridError) -> JSONResponse:
    """Build the JSON error body for a domain error."""
    if exc.status_code >= 500:
        detail = ErrorDetail(code=exc.code, message="Internal Server Error")
    else:
        detail = ErrorDetail(code=exc.code, message=exc.message, details=exc.details)

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=detail).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register domain and catch-all exception handlers with the app."""

    @app.exception_handler(PixelGridError)
    async def pixelgrid_error_handler(request: Request, exc: PixelGridError):
        if exc.status_code >= 500:
            logger.error(
                f"{exc.code} on {request.method} {request.url.path}: {exc.message} "
                f"{exc.details}"
            )
        else:
            logger.warning(
                f"{exc.code} on {request.method} {request.url.path}: {exc.message}"
            )
        return error_response(exc)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=ErrorDetail(code="INTERNAL_ERROR", message="Internal Server Error")
            ).model_dump(),
        )
