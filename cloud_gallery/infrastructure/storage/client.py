"""
Object storage client for gallery images.

Supports AWS S3 and S3-compatible stores (MinIO, R2) through boto3, with
a mock mode for local development.

boto3 is synchronous, so every call runs in a worker thread via
asyncio.to_thread. That keeps the event loop free while the store is
working and lets request timeouts fire even if the store stalls.

Mock mode keeps objects in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import io
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ...core.gallery.errors import GalleryError, NotFound, StorageUnavailable
from ...core.gallery.models import ListingEntry, ListingPage, ObjectMetadata
from ...core.gallery.service import ObjectStore, ProgressCallback

logger = logging.getLogger(__name__)

# Error codes S3 uses for a missing key (head_object reports a bare 404).
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class TransferAborted(Exception):
    """Raised inside a transfer callback to stop a cancelled upload."""


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    endpoint_url is only needed for non-AWS stores; leave it unset for S3.
    """
    bucket_name: str
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    max_attempts: int = 3
    list_page_size: int = 1000

    def __post_init__(self) -> None:
        if not self.bucket_name:
            raise ValueError("bucket_name is required")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        if not 1 <= self.list_page_size <= 1000:
            raise ValueError("list_page_size must be between 1 and 1000")


class S3StorageClient(ObjectStore):
    """
    AWS S3 object storage client.

    Retries are left to botocore's retry config; this class performs a
    single logical call per method and translates failures into
    StorageUnavailable or NotFound.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize the S3 client with boto3.

        boto3 is imported here (not at module level) so mock mode works
        without it installed.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            )

        self._config = config

        boto_config = Config(
            signature_version="s3v4",
            retries={"max_attempts": config.max_attempts, "mode": "standard"},
        )

        self._s3_client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
                "endpoint": config.endpoint_url or "aws",
            }
        )

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str],
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Upload an object with boto3's managed transfer.

        The transfer callback reports byte increments (possibly from
        several threads for multipart uploads); they are summed here and
        forwarded as (bytes_sent, total_bytes).

        Cancelling the calling task stops the transfer at its next chunk and
        deletes the key, so a cancelled upload never leaves an object behind.
        """
        total = len(data)
        sent = 0
        lock = threading.Lock()
        aborted = threading.Event()

        def on_chunk(bytes_amount: int) -> None:
            nonlocal sent
            # raising from the callback makes s3transfer abandon the transfer
            if aborted.is_set():
                raise TransferAborted(key)
            with lock:
                sent += bytes_amount
                current = sent
            if progress is not None:
                progress(current, total)

        def upload() -> None:
            self._s3_client.upload_fileobj(
                io.BytesIO(data),
                self._config.bucket_name,
                key,
                ExtraArgs={
                    "ContentType": content_type,
                    "Metadata": metadata,
                },
                Callback=on_chunk,
            )

        transfer = asyncio.ensure_future(asyncio.to_thread(upload))
        try:
            await asyncio.shield(transfer)
        except asyncio.CancelledError:
            aborted.set()
            await self._discard_cancelled_upload(key, transfer)
            raise
        except Exception as e:
            raise self._translate_error("upload", key, e)

        logger.debug(
            "Stored object",
            extra={"key": key, "size_bytes": total, "content_type": content_type},
        )

    async def list_page(
        self,
        prefix: str,
        cursor: Optional[str] = None,
    ) -> ListingPage:
        """Fetch one list_objects_v2 page."""
        params = {
            "Bucket": self._config.bucket_name,
            "Prefix": prefix,
            "MaxKeys": self._config.list_page_size,
        }
        if cursor:
            params["ContinuationToken"] = cursor

        try:
            response = await asyncio.to_thread(self._s3_client.list_objects_v2, **params)
        except Exception as e:
            raise self._translate_error("list", prefix, e)

        entries = [
            ListingEntry(
                key=obj["Key"],
                size=obj.get("Size", 0),
                last_modified=obj["LastModified"],
            )
            for obj in response.get("Contents", [])
        ]

        next_cursor = None
        if response.get("IsTruncated"):
            next_cursor = response.get("NextContinuationToken")

        return ListingPage(entries=entries, next_cursor=next_cursor)

    async def head_object(self, key: str) -> ObjectMetadata:
        """Fetch size, timestamp, content type and user metadata."""
        try:
            response = await asyncio.to_thread(
                self._s3_client.head_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            raise self._translate_error("head", key, e)

        return ObjectMetadata(
            key=key,
            size=response.get("ContentLength", 0),
            last_modified=response["LastModified"],
            content_type=response.get("ContentType"),
            metadata=dict(response.get("Metadata", {})),
        )

    async def delete_object(self, key: str) -> None:
        """
        Delete an object.

        S3 already answers 204 for absent keys; some S3-compatible stores
        report NoSuchKey instead, which is treated as success as well.
        """
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
        except Exception as e:
            error = self._translate_error("delete", key, e)
            if isinstance(error, NotFound):
                logger.debug("Delete of absent key", extra={"key": key})
                return
            raise error

    async def _discard_cancelled_upload(self, key: str, transfer: asyncio.Future) -> None:
        """
        Wait for an abandoned transfer to stop, then remove what it wrote.

        The worker thread cannot be interrupted. If the last chunk was
        already sent when the upload was cancelled, the object exists and
        has to be deleted so it never shows up in a listing.
        """
        try:
            await transfer
        except TransferAborted:
            logger.info("Aborted upload in progress", extra={"key": key})
        except Exception as e:
            logger.warning(
                "Cancelled upload ended with an error",
                extra={"key": key, "error": str(e)},
            )

        try:
            await self.delete_object(key)
        except StorageUnavailable:
            logger.error("Could not remove cancelled upload", extra={"key": key})

    def _translate_error(self, operation: str, target: str, error: Exception) -> GalleryError:
        """Map a boto3/botocore exception onto the gallery error taxonomy."""
        from botocore.exceptions import ClientError

        if isinstance(error, ClientError):
            code = str(error.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                return NotFound(f"Object not found: {target}", details=str(error))

        logger.error(
            "Storage operation failed",
            extra={
                "operation": operation,
                "target": target,
                "bucket": self._config.bucket_name,
                "error": str(error),
            }
        )
        return StorageUnavailable(f"Storage {operation} failed", details=str(error))


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _MockObject:
    data: bytes
    content_type: str
    last_modified: datetime
    metadata: dict[str, str] = field(default_factory=dict)


class MockStorageClient(ObjectStore):
    """
    In-memory storage for local development and tests.

    Listing mimics S3: keys come back in lexicographic order, page_size at
    a time, with the last returned key as the continuation cursor. User
    metadata keys are lowercased the way S3 returns them.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self, page_size: int = 1000) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._objects: dict[str, _MockObject] = {}
        self._lock = threading.Lock()
        self._page_size = page_size
        self.list_calls = 0
        logger.info("Initialized mock storage client (in-memory)")

    def add_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "image/png",
        last_modified: Optional[datetime] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        """Seed an object directly, optionally with a fixed timestamp."""
        with self._lock:
            self._objects[key] = _MockObject(
                data=data,
                content_type=content_type,
                last_modified=last_modified or datetime.now(timezone.utc),
                metadata={k.lower(): v for k, v in (metadata or {}).items()},
            )

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str],
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Store object in memory."""
        self.add_object(key, data, content_type=content_type, metadata=metadata)
        if progress is not None:
            progress(len(data), len(data))

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)},
        )

    async def list_page(
        self,
        prefix: str,
        cursor: Optional[str] = None,
    ) -> ListingPage:
        """Return one page of keys after cursor."""
        with self._lock:
            self.list_calls += 1
            keys = sorted(
                key for key in self._objects
                if key.startswith(prefix) and (cursor is None or key > cursor)
            )
            window = keys[:self._page_size]
            entries = [
                ListingEntry(
                    key=key,
                    size=len(self._objects[key].data),
                    last_modified=self._objects[key].last_modified,
                )
                for key in window
            ]

        next_cursor = window[-1] if len(keys) > len(window) else None
        return ListingPage(entries=entries, next_cursor=next_cursor)

    async def head_object(self, key: str) -> ObjectMetadata:
        """Return metadata for an in-memory object."""
        with self._lock:
            obj = self._objects.get(key)
            if obj is None:
                raise NotFound(f"Object not found: {key}")
            return ObjectMetadata(
                key=key,
                size=len(obj.data),
                last_modified=obj.last_modified,
                content_type=obj.content_type,
                metadata=dict(obj.metadata),
            )

    async def delete_object(self, key: str) -> None:
        """Delete object from memory; absent keys are ignored."""
        with self._lock:
            self._objects.pop(key, None)

        logger.debug("Deleted object from mock storage", extra={"key": key})


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStore:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory mock client

    Returns:
        ObjectStore implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
