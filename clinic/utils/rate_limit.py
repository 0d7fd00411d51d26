"""
Fixed-window request rate limiting.

Counters live in process memory behind a lock; when ``REDIS_URL`` is set a
shared Redis counter (``INCR`` + ``EXPIRE``) is used so that several workers
enforce one budget.
"""
import logging
import os
import time
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Optional, Tuple

import redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after_seconds: int


class MemoryRateLimiter:
    def __init__(self):
        # key -> (count, window_reset_epoch)
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = Lock()

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        now = time.time()
        with self._lock:
            count, reset_at = self._counters.get(key, (0, now + window_seconds))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._counters[key] = (count, reset_at)
            if len(self._counters) > 10000:
                self._purge(now)
        retry_after = max(0, int(reset_at - now))
        return RateLimitResult(allowed=count <= limit, remaining=max(0, limit - count), retry_after_seconds=retry_after)

    def _purge(self, now: float) -> None:
        expired = [key for key, (_count, reset_at) in self._counters.items() if reset_at <= now]
        for key in expired:
            del self._counters[key]

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


class RedisRateLimiter:
    def __init__(self, client: redis.Redis):
        self._client = client

    def hit(self, key: str, *, limit: int, window_seconds: int) -> RateLimitResult:
        redis_key = f"ratelimit:{key}"
        pipe = self._client.pipeline()
        pipe.incr(redis_key)
        pipe.ttl(redis_key)
        count, ttl = pipe.execute()
        if ttl is None or ttl < 0:
            self._client.expire(redis_key, window_seconds)
            ttl = window_seconds
        return RateLimitResult(allowed=count <= limit, remaining=max(0, limit - count), retry_after_seconds=int(ttl))

    def reset(self) -> None:
        for key in self._client.scan_iter("ratelimit:*"):
            self._client.delete(key)


_limiter = None
_limiter_lock = Lock()


def get_rate_limiter():
    """Return the process-wide limiter, creating it on first use."""
    global _limiter
    with _limiter_lock:
        if _limiter is None:
            redis_url: Optional[str] = os.getenv("REDIS_URL")
            if redis_url:
                logger.info("rate_limiter: using redis backend")
                _limiter = RedisRateLimiter(redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=5))
            else:
                _limiter = MemoryRateLimiter()
        return _limiter
