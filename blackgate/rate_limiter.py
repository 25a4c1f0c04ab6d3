"""Sliding-window rate limiting with per-minute and per-hour limits."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT_PER_MINUTE = 0
DEFAULT_RATE_LIMIT_PER_HOUR = 0

_MINUTE = 60.0
_HOUR = 3600.0


class RequestMetricsLike(Protocol):
    """What the rate check needs from a request's metrics record."""

    id: object

    def set_error(self, message: str) -> None: ...


class RateLimitExceeded(Exception):
    """Raised when a request is over its limit; carries the HTTP 429 reply."""

    status_code = 429

    def __init__(self, path: str) -> None:
        super().__init__(f"Rate limit exceeded for {path}")
        self.path = path
        self.headers = {"Retry-After": "60"}
        self.body = "Too Many Requests"


class RateLimiter:
    """Tracks request timestamps per key and enforces sliding-window limits."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def is_allowed(self, key: str, requests_per_minute: int, requests_per_hour: int) -> bool:
        """Record and allow the request if both limits hold; otherwise return False."""
        with self._lock:
            now = self._clock()
            recent = [t for t in self._requests.get(key, []) if now - t < _HOUR]
            self._requests[key] = recent

            if len(recent) >= requests_per_hour:
                logger.debug(
                    "Rate limit exceeded for key: %s (hourly limit: %s)", key, requests_per_hour
                )
                return False

            in_last_minute = sum(1 for t in recent if now - t < _MINUTE)
            if in_last_minute >= requests_per_minute:
                logger.debug(
                    "Rate limit exceeded for key: %s (minute limit: %s)",
                    key,
                    requests_per_minute,
                )
                return False

            recent.append(now)
            return True


def _as_u32(value: int) -> int:
    return value & 0xFFFFFFFF


def check_rate_limit(
    path: str,
    rate_limit_per_minute: int,
    rate_limit_per_hour: int,
    rate_limiter: RateLimiter,
    metrics: RequestMetricsLike,
) -> None:
    """Check the limits for ``path``; raise RateLimitExceeded when they are exceeded."""
    key = f"path:{path}"
    allowed = rate_limiter.is_allowed(
        key, _as_u32(rate_limit_per_minute), _as_u32(rate_limit_per_hour)
    )
    if not allowed:
        logger.warning(
            "Rate limit exceeded (request_id=%s path=%s per_minute=%s per_hour=%s)",
            metrics.id,
            path,
            rate_limit_per_minute,
            rate_limit_per_hour,
        )
        metrics.set_error("Rate limit exceeded")
        raise RateLimitExceeded(path)

    logger.debug(
        "Rate limit check passed (request_id=%s path=%s per_minute=%s per_hour=%s)",
        metrics.id,
        path,
        rate_limit_per_minute,
        rate_limit_per_hour,
    )