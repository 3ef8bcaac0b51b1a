"""Time-boxed cache around a full crawl, serving paginated slices of the aggregate."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, List, Optional, Sequence

from .models import CacheEntry, GalleryItem, PageRequest, PageResult

logger = logging.getLogger("wpgallery")

DEFAULT_TTL = 300.0
DEFAULT_PAGE_SIZE = 9


def paginate(aggregate: Sequence[GalleryItem], request: PageRequest) -> PageResult:
    """Slice ``aggregate`` for ``request``; pages past the end come back empty."""
    total_items = len(aggregate)
    total_pages = math.ceil(total_items / request.page_size)
    start = min((request.page_number - 1) * request.page_size, total_items)
    end = min(start + request.page_size, total_items)
    return PageResult(
        items=list(aggregate[start:end]),
        total_items=total_items,
        total_pages=total_pages,
        current_page=request.page_number,
        has_next=request.page_number < total_pages,
        has_prev=request.page_number > 1,
    )


def empty_page(request: PageRequest) -> PageResult:
    return PageResult(items=[], current_page=request.page_number)


class ResultCache:
    """Serve pages from the last crawl, refreshing it once it is older than ``ttl``.

    With no entry yet a failed crawl yields an empty page. Once an entry
    exists, a failed refresh keeps serving the expired entry. ``fetch_page``
    never raises.
    """

    def __init__(
        self,
        crawl: Callable[[], List[GalleryItem]],
        ttl: float = DEFAULT_TTL,
        page_size: int = DEFAULT_PAGE_SIZE,
        clock: Callable[[], float] = time.monotonic,
        single_flight: bool = False,
    ) -> None:
        self._crawl = crawl
        self.ttl = ttl
        self.page_size = page_size
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._refresh_lock = threading.Lock() if single_flight else None

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def is_fresh(self) -> bool:
        entry = self._entry
        return entry is not None and self._clock() - entry.produced_at < self.ttl

    def prime(self, aggregate: List[GalleryItem], produced_at: Optional[float] = None) -> None:
        """Install ``aggregate`` as the current entry, e.g. from a snapshot."""
        self._entry = CacheEntry(
            aggregate=list(aggregate),
            produced_at=self._clock() if produced_at is None else produced_at,
        )

    def get_page(self, page_number: int = 1, page_size: Optional[int] = None) -> PageResult:
        return self.fetch_page(PageRequest(page_number, page_size or self.page_size))

    def fetch_page(self, request: PageRequest) -> PageResult:
        request = PageRequest(max(1, request.page_number), max(1, request.page_size))
        entry = self._current_entry()
        if entry is None:
            return empty_page(request)
        return paginate(entry.aggregate, request)

    def _current_entry(self) -> Optional[CacheEntry]:
        if self.is_fresh():
            return self._entry
        if self._refresh_lock is None:
            return self._refresh()
        with self._refresh_lock:
            # Another caller may have refreshed while this one waited.
            if self.is_fresh():
                return self._entry
            return self._refresh()

    def _refresh(self) -> Optional[CacheEntry]:
        stale = self._entry
        try:
            aggregate = self._crawl()
        except Exception:  # pylint: disable=broad-except
            if stale is None:
                logger.exception("Crawl failed and no cached data is available")
            else:
                logger.exception(
                    "Refresh failed; serving %d cached item(s) from the expired entry",
                    len(stale.aggregate),
                )
            return stale
        entry = CacheEntry(aggregate=list(aggregate), produced_at=self._clock())
        self._entry = entry
        logger.info("Cached %d item(s)", len(entry.aggregate))
        return entry
