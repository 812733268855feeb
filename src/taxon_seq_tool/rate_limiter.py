"""Client-side pacing of E-utilities requests (token bucket)."""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

EUTILS_API = 'eutils'

# Published NCBI limits, requests per second
EUTILS_RATE_DEFAULT = 3.0
EUTILS_RATE_WITH_KEY = 10.0


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""
    requests_per_second: float
    burst_size: Optional[int] = None

    def __post_init__(self):
        if self.requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if self.burst_size is None:
            self.burst_size = max(1, int(self.requests_per_second))


class TokenBucket:
    """Token bucket shared by all threads talking to one API.

    Blocking callers reserve tokens under the lock, so the balance can go
    negative, and sleep off the debt outside it.
    """

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self.tokens = float(config.burst_size)
        self.updated = time.monotonic()
        self.lock = Lock()

        self.total_requests = 0
        self.total_wait_time = 0.0
        self.blocked_count = 0

    def _refill(self, now: float):
        earned = (now - self.updated) * self.config.requests_per_second
        self.tokens = min(float(self.config.burst_size), self.tokens + earned)
        self.updated = now

    def acquire(self, tokens: int = 1, blocking: bool = True) -> bool:
        """
        Take tokens from the bucket.

        Args:
            tokens: Number of tokens to take
            blocking: Wait until the tokens are earned

        Returns:
            True if tokens were taken, False if non-blocking and none available
        """
        with self.lock:
            self._refill(time.monotonic())

            if self.tokens < tokens and not blocking:
                self.blocked_count += 1
                return False

            self.tokens -= tokens
            self.total_requests += 1
            wait = max(0.0, -self.tokens / self.config.requests_per_second)
            self.total_wait_time += wait

        if wait > 0:
            logger.debug(f"Rate limit: waiting {wait:.2f}s")
            time.sleep(wait)

        return True

    def get_stats(self) -> Dict[str, float]:
        """Get bucket statistics."""
        with self.lock:
            return {
                'total_requests': self.total_requests,
                'total_wait_time': self.total_wait_time,
                'blocked_count': self.blocked_count,
                'average_wait_time': self.total_wait_time / self.total_requests if self.total_requests else 0,
                'current_tokens': self.tokens,
                'max_tokens': self.config.burst_size
            }


class RateLimiter:
    """Keeps one token bucket per API name."""

    def __init__(self):
        self.buckets: Dict[str, TokenBucket] = {}
        self.lock = Lock()

    def configure(self, api_name: str, config: RateLimitConfig) -> None:
        """Install a fresh bucket for an API."""
        with self.lock:
            self.buckets[api_name] = TokenBucket(config)
        logger.debug(f"Configured rate limit for {api_name}: {config.requests_per_second} req/s")

    def acquire(self, api_name: str, tokens: int = 1, blocking: bool = True) -> bool:
        """Acquire permission to make an API call; unknown APIs are not paced."""
        with self.lock:
            bucket = self.buckets.get(api_name)

        return bucket.acquire(tokens, blocking) if bucket else True

    def get_stats(self, api_name: Optional[str] = None) -> Dict[str, Any]:
        """Get statistics for one API or all of them."""
        with self.lock:
            buckets = dict(self.buckets)

        if api_name is not None:
            buckets = {api_name: buckets[api_name]} if api_name in buckets else {}

        return {name: bucket.get_stats() for name, bucket in buckets.items()}


_rate_limiter = RateLimiter()


def configure_rate_limit(api_name: str, requests_per_second: float, burst_size: Optional[int] = None) -> None:
    """Configure rate limit for an API."""
    _rate_limiter.configure(api_name, RateLimitConfig(requests_per_second, burst_size))


def configure_eutils_rate_limit(api_key: Optional[str] = None,
                                requests_per_second: Optional[float] = None) -> float:
    """Configure E-utilities pacing; returns the rate in effect."""
    if requests_per_second is None:
        requests_per_second = EUTILS_RATE_WITH_KEY if api_key else EUTILS_RATE_DEFAULT
    configure_rate_limit(EUTILS_API, requests_per_second)
    return requests_per_second


def rate_limit(api_name: str, tokens: int = 1, blocking: bool = True) -> bool:
    """Acquire rate limit tokens for an API call."""
    return _rate_limiter.acquire(api_name, tokens, blocking)


def get_rate_limit_stats(api_name: Optional[str] = None) -> Dict[str, Any]:
    """Get rate limiter statistics."""
    return _rate_limiter.get_stats(api_name)
