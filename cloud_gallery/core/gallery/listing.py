"""
Listing aggregation: from cursor-paginated store pages to gallery pages.

Object stores list keys in bounded pages addressed by opaque continuation
cursors, in no guaranteed order and with no server-side sort by time.
The gallery needs the opposite: a stable, most-recent-first view sliced
into fixed-size pages.

So every listing request enumerates the whole prefix, filters out
directory markers, sorts in memory and then slices:

    store pages ──► collect ──► filter ──► order ──► paginate ──► Page

Sorting a single raw page would be wrong as soon as the prefix holds more
than one page of objects, so the enumeration is always complete. Listing
is read-only and off the upload path, which makes the O(N) cost acceptable.
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

from .errors import StorageUnavailable
from .keys import DEFAULT_PREFIX
from .models import ListingEntry, ListingPage, Page, StoredObject

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
DEFAULT_MAX_PAGES = 1000
DEFAULT_TIMEOUT_SECONDS = 30.0


class ListingSource(Protocol):
    """Anything that can return one raw listing page for a prefix."""

    async def list_page(
        self,
        prefix: str,
        cursor: Optional[str] = None,
    ) -> ListingPage:
        """Fetch the page that starts at cursor (None for the first page)."""
        ...


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def filter_entries(entries: list[ListingEntry], prefix: str) -> list[ListingEntry]:
    """Drop the bare-prefix pseudo-directory and zero-byte markers."""
    return [
        entry for entry in entries
        if entry.key != prefix and entry.size > 0
    ]


def order_entries(entries: list[ListingEntry]) -> list[ListingEntry]:
    """
    Sort newest first, breaking timestamp ties by key ascending.

    The tie-break makes the order total, so slices stay stable even when
    the store clock is coarse enough to give several objects the same
    last_modified.
    """
    by_key = sorted(entries, key=lambda entry: entry.key)
    return sorted(by_key, key=lambda entry: entry.last_modified, reverse=True)


def paginate(
    ordered: list[ListingEntry],
    page: int,
    page_size: int,
    url_builder: Callable[[str], str],
) -> Page:
    """
    Slice an ordered sequence into one Page.

    A page past the end is not an error; it just has no items.
    """
    start = (page - 1) * page_size
    window = ordered[start:start + page_size]

    items = [
        StoredObject(
            key=entry.key,
            url=url_builder(entry.key),
            size=entry.size,
            last_modified=entry.last_modified,
        )
        for entry in window
    ]

    return Page(
        items=items,
        total_count=len(ordered),
        current_page=page,
        page_size=page_size,
    )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------

class ListingAggregator:
    """
    Serves gallery pages from a cursor-paginated object listing.

    Holds no state between calls beyond its dependencies, so one instance
    can be shared across concurrent requests. Two concurrent listings may
    still see different snapshots if uploads land mid-enumeration.

    The continuation loop is bounded twice: by max_pages (a misbehaving
    store that hands out cursors forever) and by timeout_seconds for the
    whole enumeration. Either bound surfaces as StorageUnavailable.
    """

    def __init__(
        self,
        source: ListingSource,
        url_builder: Callable[[str], str],
        max_pages: int = DEFAULT_MAX_PAGES,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be positive")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._source = source
        self._url_builder = url_builder
        self._max_pages = max_pages
        self._timeout_seconds = timeout_seconds

    async def list_page(
        self,
        prefix: str = DEFAULT_PREFIX,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        """
        Return one recency-ordered page of objects under prefix.

        page and page_size below 1 are clamped to 1.
        """
        page = max(page, 1)
        page_size = max(page_size, 1)

        try:
            entries = await asyncio.wait_for(
                self.collect(prefix),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Listing timed out",
                extra={"prefix": prefix, "timeout_seconds": self._timeout_seconds},
            )
            raise StorageUnavailable(
                "Listing timed out",
                details=f"Enumeration of '{prefix}' exceeded {self._timeout_seconds}s",
            )

        visible = filter_entries(entries, prefix)
        result = paginate(
            order_entries(visible),
            page=page,
            page_size=page_size,
            url_builder=self._url_builder,
        )

        logger.info(
            "Listed images",
            extra={
                "prefix": prefix,
                "raw_count": len(entries),
                "total_count": result.total_count,
                "page": page,
                "page_size": page_size,
            },
        )

        return result

    async def collect(self, prefix: str) -> list[ListingEntry]:
        """
        Drain every listing page for prefix, in order.

        Each call carries forward the exact cursor returned by the previous
        one, so pages are fetched strictly sequentially.
        """
        entries: list[ListingEntry] = []
        cursor: Optional[str] = None

        for page_number in range(1, self._max_pages + 1):
            raw_page = await self._source.list_page(prefix, cursor)
            entries.extend(raw_page.entries)

            logger.debug(
                "Fetched listing page",
                extra={
                    "prefix": prefix,
                    "page_number": page_number,
                    "entries": len(raw_page.entries),
                    "has_next": raw_page.next_cursor is not None,
                },
            )

            if raw_page.next_cursor is None:
                return entries
            cursor = raw_page.next_cursor

        logger.error(
            "Listing exceeded page budget",
            extra={"prefix": prefix, "max_pages": self._max_pages},
        )
        raise StorageUnavailable(
            "Listing exceeded page budget",
            details=f"Store returned more than {self._max_pages} pages for '{prefix}'",
        )
