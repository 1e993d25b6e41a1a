"""
Shared fixtures for gallery unit tests.

Everything here runs against in-memory stores; no test touches a real
bucket or the network.
"""

import pytest

from cloud_gallery.config.settings import Settings
from cloud_gallery.core.gallery.service import GalleryService
from cloud_gallery.infrastructure.storage.client import MockStorageClient

from .factories import BUCKET, REGION


@pytest.fixture
def store() -> MockStorageClient:
    """Mock store that pages every 5 keys, so listings span several pages."""
    return MockStorageClient(page_size=5)


@pytest.fixture
def gallery(store: MockStorageClient) -> GalleryService:
    return GalleryService(store=store, bucket=BUCKET, region=REGION)


@pytest.fixture
def settings() -> Settings:
    """Development settings against the mock store."""
    return Settings(
        storage_mock_mode=True,
        aws_s3_bucket_name=BUCKET,
        aws_region=REGION,
        environment="development",
    )
