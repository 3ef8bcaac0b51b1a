"""Data models used throughout the gallery pipeline."""

from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List


class ImageTier(str, enum.Enum):
    """Which step of the resolution chain produced an image."""

    FEATURED = "featured"
    INLINE = "inline"
    ATTACHMENT = "attachment"


@dataclass(frozen=True)
class ImageRef:
    """Representative image for one upstream item."""

    url: str
    tier: ImageTier
    alt_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "tier": self.tier.value, "alt_text": self.alt_text}


@dataclass(frozen=True)
class GalleryItem:
    """Normalized, gallery-ready record built from one upstream item."""

    id: int
    title: str
    raw_date: str
    effective_date: dt.datetime
    year: int
    source_url: str
    image: ImageRef
    content_html: str
    content_html_no_image: str
    content_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "raw_date": self.raw_date,
            "effective_date": self.effective_date.isoformat(),
            "year": self.year,
            "source_url": self.source_url,
            "image": self.image.to_dict(),
            "content_html": self.content_html,
            "content_html_no_image": self.content_html_no_image,
            "content_text": self.content_text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GalleryItem":
        image = data["image"]
        return cls(
            id=data["id"],
            title=data["title"],
            raw_date=data["raw_date"],
            effective_date=dt.datetime.fromisoformat(data["effective_date"]),
            year=int(data["year"]),
            source_url=data.get("source_url", ""),
            image=ImageRef(
                url=image["url"],
                tier=ImageTier(image["tier"]),
                alt_text=image.get("alt_text", ""),
            ),
            content_html=data.get("content_html", ""),
            content_html_no_image=data.get("content_html_no_image", ""),
            content_text=data.get("content_text", ""),
        )


@dataclass
class CacheEntry:
    """The aggregate of one successful crawl and when it was produced."""

    aggregate: List[GalleryItem]
    produced_at: float


@dataclass(frozen=True)
class PageRequest:
    page_number: int = 1
    page_size: int = 9


@dataclass
class PageResult:
    """One slice of an aggregate plus the pagination flags a view needs."""

    items: List[GalleryItem] = field(default_factory=list)
    total_items: int = 0
    total_pages: int = 0
    current_page: int = 1
    has_next: bool = False
    has_prev: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "current_page": self.current_page,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }

