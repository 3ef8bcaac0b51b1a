"""Single-request HTTP client with a timeout and exponential-backoff retries."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .config import DEFAULT_USER_AGENT
from .retry import RetryPolicy

logger = logging.getLogger("wpgallery")

# WordPress answers a page past the last one with 400 rest_post_invalid_page_number.
END_OF_RANGE_STATUS = 400


class TransientError(RuntimeError):
    """A request kept failing until the retry budget ran out."""

    def __init__(self, url: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{url} failed after {attempts} attempt(s): {last_error}")
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class TransientFetchClient:
    """Issue GET requests, retrying failures according to a :class:`RetryPolicy`.

    ``fetch`` returns the response on a 2xx status, ``None`` when the upstream
    signals the end of a paginated resource, and raises :class:`TransientError`
    once every attempt has failed. Timeouts count as ordinary failed attempts.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.timeout = timeout
        self.policy = policy or RetryPolicy()
        self.session = session or requests.Session()
        self.headers: Dict[str, str] = {"User-Agent": user_agent}
        self._sleep = sleep

    def fetch(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Optional[requests.Response]:
        max_attempts = self.policy.max_attempts
        last_error: Optional[requests.RequestException] = None
        attempt = 0
        for attempt in range(1, max_attempts + 1):
            logger.debug("Fetching %s %s (attempt %d/%d)", url, params or "", attempt, max_attempts)
            try:
                resp = self.session.get(
                    url,
                    params=params,
                    headers=self.headers,
                    timeout=self.timeout,
                )
                if resp.status_code == END_OF_RANGE_STATUS:
                    logger.debug("End of range reported for %s %s", url, params or "")
                    return None
                resp.raise_for_status()
                return resp
            except requests.RequestException as exc:
                last_error = exc
                logger.warning(
                    "Attempt %d/%d for %s failed: %s", attempt, max_attempts, url, exc
                )
                if not self.policy.should_retry(exc, attempt):
                    break
                delay = self.policy.delay_for(attempt)
                logger.info("Retrying %s in %.1fs", url, delay)
                self._sleep(delay)

        assert last_error is not None
        raise TransientError(url, attempt, last_error) from last_error

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "TransientFetchClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
