from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import requests

from wpgallery.config import GalleryConfig
from wpgallery.fetch import TransientFetchClient
from wpgallery.retry import RetryPolicy

BASE_URL = "https://photos.example.com/wp-json/wp/v2"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session; ``handler`` maps (url, params) to a response or exception."""

    def __init__(self, handler: Callable[[str, Dict[str, Any]], Any]):
        self.handler = handler
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        params = dict(params or {})
        self.calls.append((url, params))
        result = self.handler(url, params)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        self.closed = True


def make_client(handler, max_attempts: int = 3, sleeps: Optional[list] = None) -> TransientFetchClient:
    sleep_log = sleeps if sleeps is not None else []
    return TransientFetchClient(
        timeout=1.0,
        policy=RetryPolicy(max_attempts=max_attempts, base_delay=1.0),
        session=FakeSession(handler),
        sleep=sleep_log.append,
    )


def post(
    post_id: int,
    date: str = "2024-01-01T10:00:00",
    featured: Optional[str] = None,
    content: str = "",
    title: str = "",
    acf: Any = None,
) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "id": post_id,
        "date": date,
        "link": f"https://photos.example.com/?p={post_id}",
        "title": {"rendered": title or f"Post {post_id}"},
        "content": {"rendered": content},
    }
    if featured:
        item["_embedded"] = {
            "wp:featuredmedia": [
                {
                    "id": post_id * 100,
                    "source_url": featured,
                    "alt_text": f"alt {post_id}",
                    "media_details": {"sizes": {}},
                }
            ]
        }
    if acf is not None:
        item["acf"] = acf
    return item


@pytest.fixture
def config() -> GalleryConfig:
    return GalleryConfig(base_url=BASE_URL, per_page=2, page_delay=0.5)
