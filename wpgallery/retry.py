"""Exponential-backoff retry policy used by the fetch client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import requests


def _is_request_error(exc: BaseException) -> bool:
    return isinstance(exc, requests.RequestException)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a request and how long to wait in between.

    Attempts are numbered from 1. After failed attempt ``n`` (when another
    attempt remains) the client waits ``2 ** n * base_delay`` seconds, so the
    wait before attempt ``k`` is ``2 ** (k - 1) * base_delay``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    is_retryable: Callable[[BaseException], bool] = field(default=_is_request_error)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt ``attempt``."""
        return (2 ** attempt) * self.base_delay

    def should_retry(self, exc: BaseException, attempt: int) -> bool:
        return attempt < self.max_attempts and self.is_retryable(exc)
