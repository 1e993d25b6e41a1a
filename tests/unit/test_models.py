"""
Unit tests for the gallery domain models.

These tests verify validation and derived values without touching
any store.
"""

from datetime import datetime, timezone

import pytest

from cloud_gallery.core.gallery.models import ListingEntry, Page, StoredObject


def make_item(key: str) -> StoredObject:
    return StoredObject(
        key=key,
        url=f"https://bucket.s3.us-east-1.amazonaws.com/{key}",
        size=10,
        last_modified=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestListingEntry:
    """Tests for raw listing entries."""

    def test_rejects_empty_key(self):
        """Every entry the store reports has a key."""
        with pytest.raises(ValueError, match="cannot be empty"):
            ListingEntry(key="", size=1, last_modified=datetime.now(timezone.utc))

    def test_rejects_negative_size(self):
        """Sizes are byte counts."""
        with pytest.raises(ValueError, match="cannot be negative"):
            ListingEntry(key="images/a.png", size=-1, last_modified=datetime.now(timezone.utc))

    def test_zero_size_is_valid(self):
        """Directory markers are real entries; filtering happens later."""
        entry = ListingEntry(key="images/", size=0, last_modified=datetime.now(timezone.utc))
        assert entry.size == 0


class TestPage:
    """Tests for derived page values."""

    def test_total_pages_rounds_up(self):
        """25 items at 12 per page need 3 pages."""
        page = Page(items=[], total_count=25, current_page=1, page_size=12)
        assert page.total_pages == 3

    def test_has_more_until_last_page(self):
        """has_more is true before the last page and false on it."""
        first = Page(items=[make_item("images/a.png")], total_count=25, current_page=1, page_size=12)
        last = Page(items=[make_item("images/a.png")], total_count=25, current_page=3, page_size=12)

        assert first.has_more
        assert not last.has_more

    def test_empty_page_has_zero_pages(self):
        """An empty gallery has no pages and nothing more to load."""
        page = Page(items=[], total_count=0, current_page=1, page_size=12)

        assert page.total_pages == 0
        assert not page.has_more

    def test_rejects_more_items_than_page_size(self):
        """A page never holds more than page_size items."""
        with pytest.raises(ValueError, match="more items"):
            Page(
                items=[make_item("images/a.png"), make_item("images/b.png")],
                total_count=2,
                current_page=1,
                page_size=1,
            )

    def test_rejects_page_below_one(self):
        """Pages are 1-based."""
        with pytest.raises(ValueError, match="current_page"):
            Page(items=[], total_count=0, current_page=0, page_size=12)
