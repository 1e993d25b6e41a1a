"""
Error responses for the HTTP layer.

Every failure goes back to the client as {"error": ..., "details": ...}.
The error string is generic and safe to show; details carry the
underlying diagnostic and are only included outside production.
The full error is always logged server-side.
"""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config.settings import Settings
from ..core.gallery.errors import GalleryError, NotFound, StorageUnavailable, ValidationError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error body."""
    error: str = Field(description="Generic, user-facing error message")
    details: Optional[str] = Field(None, description="Diagnostic detail (non-production only)")


STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    StorageUnavailable: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: GalleryError) -> int:
    """HTTP status for a gallery error kind."""
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(
    status_code: int,
    error: str,
    settings: Settings,
    details: Optional[str] = None,
) -> JSONResponse:
    """Build an error JSON response, dropping details in production."""
    body = ErrorResponse(
        error=error,
        details=details if settings.expose_error_details else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
    )


def gallery_error_response(exc: GalleryError, settings: Settings, error: Optional[str] = None) -> JSONResponse:
    """
    Error response for a GalleryError.

    Validation errors keep their own message since it tells the user what
    to fix; other kinds use the caller's generic message when given.
    """
    if isinstance(exc, ValidationError) or error is None:
        error = exc.message
    details = exc.details or (exc.message if error != exc.message else None)
    return error_response(status_for(exc), error, settings, details=details)


async def gallery_error_handler(request: Request, exc: GalleryError) -> JSONResponse:
    """Fallback for gallery errors a route did not handle itself."""
    logger.error(
        "Unhandled gallery error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": exc.message,
            "details": exc.details,
        },
    )
    return gallery_error_response(exc, request.app.state.settings)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all exception handler.

    Prevents stack traces from leaking to clients. The full error is
    logged server-side; the client gets a generic message.
    """
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        },
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        request.app.state.settings,
        details=str(exc),
    )
