"""
Unit tests for the storage clients.

The S3 client gets a MagicMock in place of its boto3 client, so no request
ever leaves the process.
"""

import asyncio
import threading
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from cloud_gallery.core.gallery.errors import NotFound, StorageUnavailable
from cloud_gallery.infrastructure.storage.client import (
    MockStorageClient,
    S3StorageClient,
    StorageConfig,
    create_storage_client,
)

MODIFIED = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def s3_client() -> S3StorageClient:
    client = S3StorageClient(StorageConfig(
        bucket_name="test-gallery",
        region="us-east-1",
        access_key_id="testing",
        secret_access_key="testing",
        list_page_size=2,
    ))
    client._s3_client = MagicMock()
    return client


# =============================================================================
# Configuration and factory
# =============================================================================

class TestStorageConfig:
    """Tests for configuration validation."""

    def test_requires_bucket(self):
        with pytest.raises(ValueError, match="bucket_name"):
            StorageConfig(bucket_name="")

    def test_list_page_size_bounds(self):
        with pytest.raises(ValueError, match="list_page_size"):
            StorageConfig(bucket_name="b", list_page_size=1001)

    def test_factory_mock_mode(self):
        assert isinstance(create_storage_client(mock_mode=True), MockStorageClient)

    def test_factory_requires_config(self):
        with pytest.raises(ValueError, match="config is required"):
            create_storage_client()


# =============================================================================
# Mock client
# =============================================================================

class TestMockStorageClient:
    """Tests for the in-memory store's S3-like listing."""

    def test_pages_follow_cursor(self):
        store = MockStorageClient(page_size=2)
        for key in ["images/c.png", "images/a.png", "images/b.png"]:
            store.add_object(key, b"data")

        first = asyncio.run(store.list_page("images/"))
        second = asyncio.run(store.list_page("images/", first.next_cursor))

        assert [e.key for e in first.entries] == ["images/a.png", "images/b.png"]
        assert first.next_cursor == "images/b.png"
        assert [e.key for e in second.entries] == ["images/c.png"]
        assert second.next_cursor is None

    def test_metadata_keys_are_lowercased(self):
        store = MockStorageClient()
        store.add_object("images/a.png", b"data", metadata={"originalName": "a.png"})

        metadata = asyncio.run(store.head_object("images/a.png"))

        assert metadata.metadata == {"originalname": "a.png"}

    def test_head_missing_raises(self):
        with pytest.raises(NotFound):
            asyncio.run(MockStorageClient().head_object("images/nope.png"))


# =============================================================================
# S3 client
# =============================================================================

def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


class TestS3StorageClient:
    """Tests for request shape and error translation against a mocked boto3 client."""

    def test_list_page_returns_cursor_when_truncated(self, s3_client):
        s3_client._s3_client.list_objects_v2.return_value = {
            "Contents": [
                {"Key": "images/a.png", "Size": 10, "LastModified": MODIFIED},
                {"Key": "images/b.png", "Size": 20, "LastModified": MODIFIED},
            ],
            "IsTruncated": True,
            "NextContinuationToken": "token-2",
        }

        page = asyncio.run(s3_client.list_page("images/"))

        assert [e.key for e in page.entries] == ["images/a.png", "images/b.png"]
        assert page.next_cursor == "token-2"
        s3_client._s3_client.list_objects_v2.assert_called_once_with(
            Bucket="test-gallery", Prefix="images/", MaxKeys=2,
        )

    def test_list_page_forwards_cursor(self, s3_client):
        s3_client._s3_client.list_objects_v2.return_value = {"IsTruncated": False}

        page = asyncio.run(s3_client.list_page("images/", "token-2"))

        assert page.entries == []
        assert page.next_cursor is None
        s3_client._s3_client.list_objects_v2.assert_called_once_with(
            Bucket="test-gallery", Prefix="images/", MaxKeys=2, ContinuationToken="token-2",
        )

    def test_list_failure_is_storage_unavailable(self, s3_client):
        s3_client._s3_client.list_objects_v2.side_effect = client_error("AccessDenied", "ListObjectsV2")

        with pytest.raises(StorageUnavailable, match="Storage list failed"):
            asyncio.run(s3_client.list_page("images/"))

    def test_head_object_maps_fields(self, s3_client):
        s3_client._s3_client.head_object.return_value = {
            "ContentLength": 42,
            "LastModified": MODIFIED,
            "ContentType": "image/png",
            "Metadata": {"originalname": "cat.png"},
        }

        metadata = asyncio.run(s3_client.head_object("images/a.png"))

        assert metadata.size == 42
        assert metadata.content_type == "image/png"
        assert metadata.metadata == {"originalname": "cat.png"}

    def test_head_missing_key_is_not_found(self, s3_client):
        s3_client._s3_client.head_object.side_effect = client_error("404", "HeadObject")

        with pytest.raises(NotFound):
            asyncio.run(s3_client.head_object("images/missing.png"))

    def test_delete_treats_no_such_key_as_success(self, s3_client):
        s3_client._s3_client.delete_object.side_effect = client_error("NoSuchKey", "DeleteObject")

        asyncio.run(s3_client.delete_object("images/missing.png"))

        s3_client._s3_client.delete_object.assert_called_once_with(
            Bucket="test-gallery", Key="images/missing.png",
        )

    def test_delete_failure_is_storage_unavailable(self, s3_client):
        s3_client._s3_client.delete_object.side_effect = client_error("InternalError", "DeleteObject")

        with pytest.raises(StorageUnavailable, match="Storage delete failed"):
            asyncio.run(s3_client.delete_object("images/a.png"))

    def test_upload_sends_content_type_and_metadata(self, s3_client):
        progress = []

        def fake_upload(fileobj, bucket, key, ExtraArgs, Callback):
            body = fileobj.read()
            Callback(len(body))

        s3_client._s3_client.upload_fileobj.side_effect = fake_upload

        asyncio.run(s3_client.put_object(
            "images/a.png", b"12345", "image/png", {"originalName": "a.png"},
            progress=lambda sent, total: progress.append((sent, total)),
        ))

        args, kwargs = s3_client._s3_client.upload_fileobj.call_args
        assert args[1:] == ("test-gallery", "images/a.png")
        assert kwargs["ExtraArgs"] == {"ContentType": "image/png", "Metadata": {"originalName": "a.png"}}
        assert progress == [(5, 5)]

    def test_upload_failure_is_storage_unavailable(self, s3_client):
        s3_client._s3_client.upload_fileobj.side_effect = RuntimeError("socket closed")

        with pytest.raises(StorageUnavailable, match="Storage upload failed"):
            asyncio.run(s3_client.put_object("images/a.png", b"1", "image/png", {}))


class TestS3UploadCancellation:
    """Tests for cancelling put_object while the transfer thread is running."""

    def attach_bucket(self, s3_client, upload_fileobj):
        """Back the mocked boto3 client with a dict of stored keys."""
        bucket = {}

        def delete_object(Bucket, Key):
            bucket.pop(Key, None)

        s3_client._s3_client.upload_fileobj.side_effect = upload_fileobj
        s3_client._s3_client.delete_object.side_effect = delete_object
        return bucket

    def cancel_mid_transfer(self, s3_client, started: threading.Event):
        async def scenario():
            transfer = asyncio.create_task(
                s3_client.put_object("images/a.png", b"x" * 100, "image/png", {})
            )
            await asyncio.to_thread(started.wait, 2)
            transfer.cancel()
            with pytest.raises(asyncio.CancelledError):
                await transfer

        asyncio.run(scenario())

    def test_cancel_stops_transfer_at_next_chunk(self, s3_client):
        """The transfer callback refuses further chunks once cancelled."""
        started = threading.Event()
        chunks = []

        def upload_fileobj(fileobj, bucket_name, key, ExtraArgs, Callback):
            for _ in range(50):
                started.set()
                time.sleep(0.01)
                Callback(2)
                chunks.append(2)
            bucket[key] = fileobj.read()

        bucket = self.attach_bucket(s3_client, upload_fileobj)

        self.cancel_mid_transfer(s3_client, started)

        assert bucket == {}
        assert len(chunks) < 50

    def test_cancel_removes_object_written_anyway(self, s3_client):
        """A transfer that finishes regardless of the abort is deleted afterwards."""
        started = threading.Event()

        def upload_fileobj(fileobj, bucket_name, key, ExtraArgs, Callback):
            started.set()
            time.sleep(0.3)
            bucket[key] = fileobj.read()

        bucket = self.attach_bucket(s3_client, upload_fileobj)

        self.cancel_mid_transfer(s3_client, started)

        assert bucket == {}
        s3_client._s3_client.delete_object.assert_called_once_with(
            Bucket="test-gallery", Key="images/a.png",
        )
