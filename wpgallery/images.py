"""Representative-image resolution for upstream posts and media entities."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional

from .fetch import TransientFetchClient
from .models import ImageRef, ImageTier

logger = logging.getLogger("wpgallery")

SIZE_PREFERENCE = ("large", "medium_large")

_INLINE_IMG_PATTERN = re.compile(r"<img[^>]+src=[\"']([^\"']+)[\"'][^>]*>", re.IGNORECASE)
_ALT_PATTERN = re.compile(r"\balt=[\"']([^\"']*)[\"']", re.IGNORECASE)


def is_media_entity(item: Mapping[str, Any]) -> bool:
    return item.get("type") == "attachment" or "media_type" in item


def pick_sized_url(media: Mapping[str, Any]) -> Optional[str]:
    """Prefer the ``large`` rendition, then ``medium_large``, then the original."""
    details = media.get("media_details")
    sizes = (details.get("sizes") if isinstance(details, dict) else None) or {}
    for name in SIZE_PREFERENCE:
        url = (sizes.get(name) or {}).get("source_url")
        if url:
            return url
    return media.get("source_url") or None


def _media_ref(media: Mapping[str, Any], tier: ImageTier) -> Optional[ImageRef]:
    url = pick_sized_url(media)
    if not url:
        return None
    return ImageRef(url=url, tier=tier, alt_text=(media.get("alt_text") or "").strip())


class ImageResolver:
    """Find one image for an item, trying each tier in priority order.

    1. the featured media embedded in the listing response,
    2. the first ``<img>`` in the rendered body,
    3. the first image attached to the item, fetched from the media endpoint.

    A tier that raises is treated as a miss and the next tier is tried.
    """

    def __init__(self, client: TransientFetchClient, media_url: str) -> None:
        self.client = client
        self.media_url = media_url
        self._tiers: Dict[ImageTier, Callable[[Mapping[str, Any]], Optional[ImageRef]]] = {
            ImageTier.FEATURED: self._featured,
            ImageTier.INLINE: self._inline,
            ImageTier.ATTACHMENT: self._attachment,
        }

    def resolve(self, item: Mapping[str, Any]) -> Optional[ImageRef]:
        item_id = item.get("id")
        for tier, step in self._tiers.items():
            try:
                ref = step(item)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Image tier %s failed for item %s: %s", tier.value, item_id, exc)
                continue
            if ref:
                logger.debug("Resolved %s image for item %s: %s", tier.value, item_id, ref.url)
                return ref
        logger.warning("No image found for item %s", item_id)
        return None

    def _featured(self, item: Mapping[str, Any]) -> Optional[ImageRef]:
        if is_media_entity(item):
            return _media_ref(item, ImageTier.FEATURED)
        embedded = (item.get("_embedded") or {}).get("wp:featuredmedia") or []
        if not embedded:
            return None
        return _media_ref(embedded[0], ImageTier.FEATURED)

    def _inline(self, item: Mapping[str, Any]) -> Optional[ImageRef]:
        body = (item.get("content") or {}).get("rendered") or ""
        match = _INLINE_IMG_PATTERN.search(body)
        if not match:
            return None
        alt = _ALT_PATTERN.search(match.group(0))
        return ImageRef(
            url=match.group(1),
            tier=ImageTier.INLINE,
            alt_text=alt.group(1).strip() if alt else "",
        )

    def _attachment(self, item: Mapping[str, Any]) -> Optional[ImageRef]:
        if is_media_entity(item):
            return None
        resp = self.client.fetch(
            self.media_url,
            params={
                "parent": item["id"],
                "media_type": "image",
                "per_page": 1,
                "orderby": "menu_order",
                "order": "asc",
            },
        )
        if resp is None:
            return None
        attachments = resp.json()
        if not attachments:
            return None
        return _media_ref(attachments[0], ImageTier.ATTACHMENT)
