"""Tests for rate limiter."""

import time
from threading import Thread

import pytest

from taxon_seq_tool.rate_limiter import (
    EUTILS_API, RateLimitConfig, RateLimiter, TokenBucket,
    configure_eutils_rate_limit, configure_rate_limit, get_rate_limit_stats, rate_limit
)


class TestTokenBucket:
    """Test cases for token bucket."""

    def test_basic_acquire(self):
        """Burst is available at once, then requests are paced."""
        bucket = TokenBucket(RateLimitConfig(requests_per_second=2, burst_size=2))

        assert bucket.acquire(1)
        assert bucket.acquire(1)

        start = time.monotonic()
        assert bucket.acquire(1)
        elapsed = time.monotonic() - start

        # One token at 2/s
        assert 0.4 < elapsed < 0.7

    def test_non_blocking_acquire(self):
        """Test non-blocking acquisition."""
        bucket = TokenBucket(RateLimitConfig(requests_per_second=1, burst_size=1))

        assert bucket.acquire(1, blocking=False)
        assert not bucket.acquire(1, blocking=False)
        assert bucket.get_stats()['blocked_count'] == 1

    def test_default_burst_follows_rate(self):
        assert RateLimitConfig(requests_per_second=3).burst_size == 3
        assert RateLimitConfig(requests_per_second=0.5).burst_size == 1

    def test_rate_must_be_positive(self):
        with pytest.raises(ValueError):
            RateLimitConfig(requests_per_second=0)

    def test_thread_safety(self):
        """Concurrent callers never exceed the configured rate."""
        bucket = TokenBucket(RateLimitConfig(requests_per_second=10, burst_size=2))

        def worker():
            for _ in range(3):
                bucket.acquire(1)

        start = time.monotonic()
        threads = [Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        elapsed = time.monotonic() - start

        # 12 requests, 2 from the burst, 10 paced at 10/s
        assert elapsed >= 0.9
        assert bucket.get_stats()['total_requests'] == 12


class TestRateLimiter:
    """Test cases for the per-API limiter."""

    def test_unconfigured_api_not_limited(self):
        assert RateLimiter().acquire('unknown', blocking=False)

    def test_stats_per_api(self):
        limiter = RateLimiter()
        limiter.configure('a', RateLimitConfig(requests_per_second=5))
        limiter.acquire('a')

        stats = limiter.get_stats('a')

        assert stats['a']['total_requests'] == 1
        assert limiter.get_stats('missing') == {}


class TestEutilsPacing:
    """Test cases for E-utilities rate selection."""

    def test_default_rate(self):
        assert configure_eutils_rate_limit() == 3.0
        assert get_rate_limit_stats(EUTILS_API)[EUTILS_API]['max_tokens'] == 3

    def test_rate_with_api_key(self):
        assert configure_eutils_rate_limit(api_key="abc123") == 10.0

    def test_explicit_rate_wins(self):
        assert configure_eutils_rate_limit(api_key="abc123", requests_per_second=5.0) == 5.0

    def test_global_rate_limit(self):
        configure_rate_limit('test_global', 100)

        assert rate_limit('test_global')
        assert get_rate_limit_stats('test_global')['test_global']['total_requests'] == 1
