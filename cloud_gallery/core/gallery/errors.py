"""
Error taxonomy for gallery operations.

Every failure the gateway can report maps onto one of these kinds.
The HTTP layer decides status codes; this module only says what went wrong.
"""

from typing import Optional


class GalleryError(Exception):
    """Base exception for all gallery errors."""

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(GalleryError):
    """
    Raised when a request is malformed in a way the user can fix.

    Missing upload file, wrong MIME type, or an oversized body.
    """
    pass


class StorageUnavailable(GalleryError):
    """
    Raised when the object store cannot serve a request.

    Covers transport errors, storage errors, timeouts and listings that
    exceed their page budget. Listings are all-or-nothing: this is raised
    instead of returning a partially aggregated page.
    """
    pass


class NotFound(GalleryError):
    """Raised when a key does not exist in the bucket."""
    pass
