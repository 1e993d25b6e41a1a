"""
Gallery use cases: upload, list, delete and metadata lookup.

The service is what the HTTP endpoints talk to. It knows the gallery's
rules (what counts as an acceptable upload, how keys are named, how
listings are ordered) but not how the bucket is reached. Storage sits
behind the ObjectStore protocol, so tests can hand in an in-memory store.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from .errors import ValidationError
from .keys import DEFAULT_PREFIX, file_name_from_key, generate_key, normalize_prefix, public_url
from .listing import (
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT_SECONDS,
    ListingAggregator,
)
from .models import ListingPage, ObjectMetadata, Page, UploadResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# (bytes_sent, total_bytes)
ProgressCallback = Callable[[int, int], None]


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectStore(Protocol):
    """
    Interface for the bucket the gallery lives in.

    Implementations translate their own failures into StorageUnavailable
    and missing keys into NotFound. The service never sees transport
    exceptions directly.
    """

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str],
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Store data under key.

        If the calling task is cancelled, nothing may remain under key.
        """
        ...

    async def list_page(
        self,
        prefix: str,
        cursor: Optional[str] = None,
    ) -> ListingPage:
        """Return one raw listing page."""
        ...

    async def head_object(self, key: str) -> ObjectMetadata:
        """Return metadata for key, raising NotFound if it is absent."""
        ...

    async def delete_object(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""
        ...


# ---------------------------------------------------------------------------
# Gallery Service
# ---------------------------------------------------------------------------

class GalleryService:
    """
    Orchestrates gallery operations against one bucket.

    Stateless beyond its dependencies: the store is a shared capability
    and every call computes its result fresh.
    """

    def __init__(
        self,
        store: ObjectStore,
        bucket: str,
        region: str,
        prefix: str = DEFAULT_PREFIX,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        listing_max_pages: int = DEFAULT_MAX_PAGES,
        listing_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._bucket = bucket
        self._region = region
        self._prefix = normalize_prefix(prefix)
        self._max_upload_bytes = max_upload_bytes
        self._default_page_size = default_page_size
        self._aggregator = ListingAggregator(
            source=store,
            url_builder=self.url_for,
            max_pages=listing_max_pages,
            timeout_seconds=listing_timeout_seconds,
        )

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def max_upload_mb(self) -> int:
        return self._max_upload_bytes // (1024 * 1024)

    def url_for(self, key: str) -> str:
        """Public URL for a key in this service's bucket."""
        return public_url(self._bucket, self._region, key)

    async def upload_image(
        self,
        data: Optional[bytes],
        original_name: Optional[str],
        content_type: Optional[str],
        progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """
        Validate and store one image under a freshly generated key.

        The original name and upload time travel as object metadata so the
        metadata endpoint can return them later.
        """
        self.validate_upload(data, content_type)

        key = generate_key(original_name or "", self._prefix)
        metadata = {
            "originalName": original_name or "",
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }

        await self._store.put_object(
            key=key,
            data=data,
            content_type=content_type,
            metadata=metadata,
            progress=progress,
        )

        logger.info(
            "Uploaded image",
            extra={
                "key": key,
                "original_name": original_name,
                "content_type": content_type,
                "size_bytes": len(data),
            },
        )

        return UploadResult(
            key=key,
            url=self.url_for(key),
            file_name=file_name_from_key(key),
        )

    def validate_upload(self, data: Optional[bytes], content_type: Optional[str]) -> None:
        """Raise ValidationError if an upload must be rejected."""
        if not data:
            raise ValidationError("No file provided")

        if not content_type or not content_type.startswith("image/"):
            raise ValidationError(
                "Only image files are allowed",
                details=f"Unsupported content type: {content_type or 'unknown'}",
            )

        if len(data) > self._max_upload_bytes:
            raise ValidationError(
                f"File too large. Max size is {self.max_upload_mb}MB.",
                details=f"Received {len(data)} bytes",
            )

    async def list_images(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        prefix: Optional[str] = None,
    ) -> Page:
        """List one page of images, newest first."""
        return await self._aggregator.list_page(
            prefix=prefix or self._prefix,
            page=page,
            page_size=page_size if page_size is not None else self._default_page_size,
        )

    async def delete_image(self, key: str) -> None:
        """Delete an image. Deleting a missing key succeeds."""
        await self._store.delete_object(key)
        logger.info("Deleted image", extra={"key": key})

    async def get_metadata(self, key: str) -> ObjectMetadata:
        """Return stored metadata for a key, or raise NotFound."""
        return await self._store.head_object(key)

