"""Configuration objects and constants for the gallery crawler."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

from . import __version__
from .retry import RetryPolicy

logger = logging.getLogger("wpgallery")

DEFAULT_USER_AGENT = f"wpgallery/{__version__}"
ENV_PREFIX = "WPGALLERY_"
COLLECTIONS = ("posts", "media")


@dataclass
class GalleryConfig:
    """Top-level settings that control crawling and caching behaviour."""

    base_url: str = ""
    collection: str = "posts"
    per_page: int = 100
    timeout: float = 10.0
    max_retries: int = 3
    base_delay: float = 1.0
    page_delay: float = 0.5
    cache_ttl: float = 300.0
    page_size: int = 9
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        if self.collection not in COLLECTIONS:
            raise ValueError(
                f"collection must be one of {COLLECTIONS}, got {self.collection!r}"
            )

    @property
    def listing_url(self) -> str:
        return f"{self.base_url}/{self.collection}"

    @property
    def media_url(self) -> str:
        return f"{self.base_url}/media"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.max_retries, base_delay=self.base_delay)

    @classmethod
    def from_env(cls, **overrides) -> "GalleryConfig":
        """Build a config from ``WPGALLERY_*`` variables, then apply overrides."""
        values = {}
        for field in fields(cls):
            raw = os.getenv(ENV_PREFIX + field.name.upper())
            if raw is None or raw == "":
                continue
            parsed = _coerce(field.name, raw, field.default)
            if parsed is not None:
                values[field.name] = parsed
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _coerce(name: str, raw: str, default) -> Optional[object]:
    if isinstance(default, str):
        return raw
    try:
        return type(default)(raw)
    except ValueError:
        logger.warning(
            "%s%s is set to %r which is not a valid %s; keeping %r",
            ENV_PREFIX,
            name.upper(),
            raw,
            type(default).__name__,
            default,
        )
        return None
