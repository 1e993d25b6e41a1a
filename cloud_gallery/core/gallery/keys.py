"""
Storage key naming.

Every upload gets a fresh random key under the managed prefix:

    images/3f2b9c1e8d7a4b6f9e0d1c2b3a4f5e6d.png

A version-4 UUID makes collisions negligible, so uploads never overwrite
each other and no coordination between concurrent uploads is needed.
The original extension is kept so content type inference on the public
URL keeps working.
"""

import os
from uuid import uuid4

DEFAULT_PREFIX = "images/"


def normalize_prefix(prefix: str) -> str:
    """Ensure a non-empty prefix ends with a single '/'."""
    if not prefix:
        return ""
    return prefix.rstrip("/") + "/"


def generate_key(original_name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """
    Build a unique storage key for an uploaded file.

    Only the extension of original_name is used; the rest of the name
    never reaches the key (it is kept in object metadata instead).
    """
    _, extension = os.path.splitext(original_name or "")
    return f"{normalize_prefix(prefix)}{uuid4().hex}{extension}"


def file_name_from_key(key: str) -> str:
    """Return the last path segment of a key."""
    return key.rsplit("/", 1)[-1]


def public_url(bucket: str, region: str, key: str) -> str:
    """
    Derive the public retrieval URL for a key.

    URLs are never stored; they are rebuilt from (bucket, region, key)
    whenever an object is returned to a client.
    """
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"
