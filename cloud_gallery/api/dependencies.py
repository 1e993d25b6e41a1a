"""
FastAPI dependency injection.

Dependencies provide settings, the storage client and the gallery service
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- The storage client is one shared, stateless capability created at
  startup and handed to every request, never read from a module global
- Tests can pass a fake store to create_app or override any dependency

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from ..config.settings import Settings
from ..core.gallery.service import GalleryService, ObjectStore
from ..infrastructure.storage.client import StorageConfig, create_storage_client

logger = logging.getLogger(__name__)


def build_storage_client(settings: Settings) -> ObjectStore:
    """
    Create the storage client described by settings.

    Returns the in-memory mock in mock mode, otherwise an S3 client.
    """
    if settings.storage_mock_mode:
        logger.info("Using mock storage client")
        return create_storage_client(mock_mode=True)

    config = StorageConfig(
        bucket_name=settings.aws_s3_bucket_name,
        region=settings.aws_region,
        access_key_id=settings.aws_access_key_id or None,
        secret_access_key=settings.aws_secret_access_key or None,
        endpoint_url=settings.s3_endpoint_url,
        max_attempts=settings.storage_max_attempts,
    )
    return create_storage_client(config=config)


def ensure_storage_client(app: FastAPI) -> ObjectStore:
    """Return the app's shared storage client, creating it on first use."""
    client = getattr(app.state, "storage_client", None)
    if client is None:
        client = build_storage_client(app.state.settings)
        app.state.storage_client = client
    return client


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_storage_client(request: Request) -> ObjectStore:
    """Shared storage client for this application."""
    return ensure_storage_client(request.app)


def get_gallery_service(
    settings: Annotated[Settings, Depends(get_app_settings)],
    storage: Annotated[ObjectStore, Depends(get_storage_client)],
) -> GalleryService:
    """
    Provide a GalleryService bound to the shared storage client.

    The service is stateless, so a new instance per request costs nothing
    and keeps no data between requests.
    """
    return GalleryService(
        store=storage,
        bucket=settings.aws_s3_bucket_name,
        region=settings.aws_region,
        prefix=settings.image_prefix,
        max_upload_bytes=settings.max_upload_bytes,
        default_page_size=settings.default_page_size,
        listing_max_pages=settings.listing_max_pages,
        listing_timeout_seconds=settings.listing_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StorageClientDep = Annotated[ObjectStore, Depends(get_storage_client)]
GalleryServiceDep = Annotated[GalleryService, Depends(get_gallery_service)]
