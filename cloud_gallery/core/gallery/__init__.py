"""
Image gallery logic.

Contains the gallery service, domain models, key naming, listing
aggregation and upload tasks.
"""

from .errors import GalleryError, NotFound, StorageUnavailable, ValidationError
from .keys import DEFAULT_PREFIX, generate_key, public_url
from .listing import ListingAggregator, paginate
from .models import (
    ListingEntry,
    ListingPage,
    ObjectMetadata,
    Page,
    StoredObject,
    UploadResult,
)
from .service import GalleryService, ObjectStore

__all__ = [
    "DEFAULT_PREFIX",
    "GalleryError",
    "GalleryService",
    "ListingAggregator",
    "ListingEntry",
    "ListingPage",
    "NotFound",
    "ObjectMetadata",
    "ObjectStore",
    "Page",
    "StorageUnavailable",
    "StoredObject",
    "UploadResult",
    "ValidationError",
    "generate_key",
    "paginate",
    "public_url",
]
