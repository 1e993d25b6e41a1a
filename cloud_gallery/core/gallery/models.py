"""
Domain models for the image gallery.

These models describe what the gallery stores and shows. They have no
dependencies on FastAPI or boto3; the storage layer translates its own
response formats into these types.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ListingEntry:
    """
    One raw entry from an object store listing page.

    Frozen because entries are snapshots of what the store reported.
    Directory markers show up here too; the aggregator filters them out.
    """
    key: str
    size: int
    last_modified: datetime

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("Listing entry key cannot be empty")
        if self.size < 0:
            raise ValueError("Listing entry size cannot be negative")


@dataclass(frozen=True)
class ListingPage:
    """
    One bounded page of a cursor-paginated listing.

    next_cursor is None when the store has nothing more to return.
    """
    entries: list[ListingEntry] = field(default_factory=list)
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class StoredObject:
    """A persisted image as shown in the gallery."""
    key: str
    url: str
    size: int
    last_modified: datetime


@dataclass(frozen=True)
class ObjectMetadata:
    """
    Metadata for a single object, exactly as the store holds it.

    `metadata` is the custom user metadata written at upload time
    (original file name and upload timestamp).
    """
    key: str
    size: int
    last_modified: datetime
    content_type: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload."""
    key: str
    url: str
    file_name: str


@dataclass(frozen=True)
class Page:
    """
    A fixed-size, recency-ordered slice of the gallery.

    Derived per request and never persisted.
    """
    items: list[StoredObject]
    total_count: int
    current_page: int
    page_size: int

    def __post_init__(self) -> None:
        if self.current_page < 1:
            raise ValueError("current_page must be at least 1")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        if len(self.items) > self.page_size:
            raise ValueError("Page holds more items than page_size")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages
