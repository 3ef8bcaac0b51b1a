"""High-level orchestration: walk the listing, normalize items, build the aggregate."""

from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from .config import GalleryConfig
from .content import build_variants, strip_to_plain_text
from .fetch import TransientError, TransientFetchClient
from .images import ImageResolver, is_media_entity
from .models import GalleryItem

logger = logging.getLogger("wpgallery")

TOTAL_PAGES_HEADER = "X-WP-TotalPages"
UNTITLED = "Untitled"


class CrawlError(RuntimeError):
    """The first listing page could not be fetched, so there is nothing to return."""


def parse_timestamp(value: str) -> dt.datetime:
    """Parse a WordPress or ACF timestamp; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        # ACF date pickers store dates as Ymd.
        parsed = dt.datetime.strptime(text, "%Y%m%d")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _rendered(item: Mapping[str, Any], key: str) -> str:
    value = item.get(key)
    if isinstance(value, dict):
        value = value.get("rendered")
    return value if isinstance(value, str) else ""


def _total_pages(headers: Mapping[str, str]) -> Optional[int]:
    raw = headers.get(TOTAL_PAGES_HEADER)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s header: %r", TOTAL_PAGES_HEADER, raw)
        return None


class CrawlCoordinator:
    """Fetch every listing page in order and turn the items into gallery records.

    Pages are requested one at a time until the upstream reports the end of
    the range or the page count advertised by the first page is exhausted.
    Failing to fetch page 1 raises :class:`CrawlError`; failing on a later
    page stops the crawl and keeps what was collected so far. A bad item is
    logged and dropped without affecting the rest.
    """

    def __init__(
        self,
        config: GalleryConfig,
        client: Optional[TransientFetchClient] = None,
        resolver: Optional[ImageResolver] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.client = client or TransientFetchClient(
            timeout=config.timeout,
            policy=config.retry_policy(),
            user_agent=config.user_agent,
        )
        self.resolver = resolver or ImageResolver(self.client, config.media_url)
        self._sleep = sleep

    def listing_params(self, page: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "page": page,
            "per_page": self.config.per_page,
            "orderby": "date",
            "order": "desc",
        }
        if self.config.collection == "posts":
            params["_embed"] = "wp:featuredmedia"
        return params

    def crawl_all(self) -> List[GalleryItem]:
        start = time.perf_counter()
        collected: List[GalleryItem] = []
        seen: Set[Any] = set()
        total_pages: Optional[int] = None
        page = 1

        while total_pages is None or page <= total_pages:
            try:
                resp = self.client.fetch(self.config.listing_url, params=self.listing_params(page))
                if resp is None:
                    logger.info("Reached end of %s at page %d", self.config.collection, page)
                    break
                raw_items = resp.json()
                if not isinstance(raw_items, list):
                    raise ValueError(f"expected a JSON array, got {type(raw_items).__name__}")
            except (TransientError, ValueError) as exc:
                if page == 1:
                    raise CrawlError(
                        f"Could not fetch the first page of {self.config.listing_url}: {exc}"
                    ) from exc
                logger.error("Stopping crawl at page %d: %s", page, exc)
                break

            if page == 1:
                total_pages = _total_pages(resp.headers)
                if total_pages is not None:
                    logger.info("Total pages to process: %d", total_pages)
            if not raw_items:
                logger.info("Page %d is empty; stopping", page)
                break

            logger.info("Processing page %d (%d items)", page, len(raw_items))
            for raw in raw_items:
                item_id = raw.get("id") if isinstance(raw, dict) else None
                if not isinstance(item_id, (int, str)):
                    logger.warning("Skipping item without a usable id on page %d: %r", page, item_id)
                    continue
                if item_id in seen:
                    logger.info("Skipping duplicate item %s", item_id)
                    continue
                seen.add(item_id)
                gallery_item = self._process_item(raw)
                if gallery_item is not None:
                    collected.append(gallery_item)

            page += 1
            if total_pages is None or page <= total_pages:
                self._sleep(self.config.page_delay)

        collected.sort(key=lambda item: item.effective_date, reverse=True)
        logger.info(
            "Crawl finished in %.2fs (%d items with images from %d page(s))",
            time.perf_counter() - start,
            len(collected),
            page - 1,
        )
        return collected

    def _process_item(self, raw: Mapping[str, Any]) -> Optional[GalleryItem]:
        item_id = raw["id"]
        try:
            return self.build_item(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Dropping item %s: %s", item_id, exc)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error processing item %s", item_id)
        return None

    def build_item(self, raw: Mapping[str, Any]) -> Optional[GalleryItem]:
        """Normalize one upstream item, or return ``None`` when it has no image."""
        if is_media_entity(raw) and raw.get("media_type", "image") != "image":
            logger.debug("Skipping non-image media %s", raw["id"])
            return None

        image = self.resolver.resolve(raw)
        if image is None:
            return None

        raw_date = raw["date"]
        posted_at = parse_timestamp(raw_date)
        acf = raw.get("acf")
        taken_at = acf.get("taken_at") if isinstance(acf, dict) else None
        # ACF can hand back non-string values; only a string is a timestamp.
        if isinstance(taken_at, str) and taken_at:
            effective_date = parse_timestamp(taken_at)
        else:
            effective_date = posted_at

        if is_media_entity(raw):
            body = _rendered(raw, "description") or _rendered(raw, "caption")
        else:
            body = _rendered(raw, "content")
        variants = build_variants(body)

        return GalleryItem(
            id=raw["id"],
            title=strip_to_plain_text(_rendered(raw, "title")) or UNTITLED,
            raw_date=raw_date,
            effective_date=effective_date,
            year=effective_date.year,
            source_url=raw.get("link") or "",
            image=image,
            content_html=variants.html,
            content_html_no_image=variants.html_no_image,
            content_text=variants.text,
        )
