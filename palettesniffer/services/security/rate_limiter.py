"""
Per-domain rate limiting for webpage analysis.
"""

import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from loguru import logger


@dataclass
class RateLimit:
    """Rate limit configuration."""
    requests: int = 10          # Number of requests allowed
    window_seconds: float = 60  # Trailing window in seconds


@dataclass
class RateLimitStatus:
    """Outcome of a rate limit check for one domain."""
    allowed: bool
    requests_remaining: int
    retry_after: Optional[float] = None


class RateLimiter:
    """In-memory rate limiter with a sliding window per domain."""

    def __init__(self, limit: Optional[RateLimit] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._limit = limit or RateLimit()
        self._clock = clock
        self._windows: Dict[str, List[float]] = defaultdict(list)  # domain -> [timestamp]
        self._lock = threading.RLock()

    @property
    def limit(self) -> RateLimit:
        return self._limit

    def check(self, domain: str) -> RateLimitStatus:
        """Check the domain window and record the request when allowed."""
        now = self._clock()

        with self._lock:
            requests = self._windows[domain]
            requests[:] = [t for t in requests if now - t < self._limit.window_seconds]

            if len(requests) >= self._limit.requests:
                retry_after = max(0.0, requests[0] + self._limit.window_seconds - now)
                logger.warning(f"Rate limit exceeded for {domain}: "
                               f"{len(requests)} requests in {self._limit.window_seconds}s")
                return RateLimitStatus(allowed=False, requests_remaining=0, retry_after=retry_after)

            requests.append(now)
            return RateLimitStatus(
                allowed=True,
                requests_remaining=self._limit.requests - len(requests),
            )

    def allow(self, domain: str) -> bool:
        return self.check(domain).allowed

    def get_stats(self) -> Dict[str, Any]:
        """Get rate limiter statistics."""
        with self._lock:
            return {
                'total_domains': len(self._windows),
                'active_windows': sum(1 for requests in self._windows.values() if requests),
                'limit': {'requests': self._limit.requests,
                          'window_seconds': self._limit.window_seconds},
            }

    def cleanup_expired(self) -> int:
        """Drop timestamps outside the window and forget empty domains."""
        now = self._clock()

        with self._lock:
            expired_keys = []
            for domain, requests in self._windows.items():
                requests[:] = [t for t in requests if now - t < self._limit.window_seconds]
                if not requests:
                    expired_keys.append(domain)

            for key in expired_keys:
                del self._windows[key]

        logger.debug(f"Cleaned up {len(expired_keys)} expired rate limit windows")
        return len(expired_keys)
