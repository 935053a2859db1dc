"""Token bucket rate limiting for the public identity endpoints.

Each caller (client address) owns a bucket of ``burst`` tokens that refills
at ``per_second`` tokens per second. A request spends one token; an empty
bucket means 429.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from fastapi import Request

from keyward.config import RateLimitConfig
from keyward.errors import RateLimitedError

logger = structlog.get_logger()

# Full buckets are dropped once this many callers are tracked
_PRUNE_THRESHOLD = 10_000


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


class TokenBucketLimiter:
    """In-process per-key token buckets.

    ``acquire`` never awaits, so it is atomic with respect to other
    coroutines on the same event loop.
    """

    def __init__(
        self,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._burst = float(config.burst)
        self._rate = config.per_second
        self._enabled = config.enabled
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}

    def _refill(self, bucket: _Bucket, now: float) -> None:
        elapsed = max(0.0, now - bucket.updated_at)
        bucket.tokens = min(self._burst, bucket.tokens + elapsed * self._rate)
        bucket.updated_at = now

    def acquire(self, key: str) -> float:
        """Spend one token for ``key``.

        Returns:
            0.0 if admitted, otherwise seconds until a token is available
        """
        if not self._enabled:
            return 0.0

        now = self._clock()
        bucket = self._buckets.get(key)
        if bucket is None:
            if len(self._buckets) >= _PRUNE_THRESHOLD:
                self._prune(now)
            bucket = _Bucket(tokens=self._burst, updated_at=now)
            self._buckets[key] = bucket
        else:
            self._refill(bucket, now)

        if bucket.tokens >= 1.0:
            bucket.tokens -= 1.0
            return 0.0
        return (1.0 - bucket.tokens) / self._rate

    def _prune(self, now: float) -> None:
        for key, bucket in list(self._buckets.items()):
            self._refill(bucket, now)
            if bucket.tokens >= self._burst:
                del self._buckets[key]


def client_key(request: Request) -> str:
    """Identify the caller by its remote address."""
    if request.client is not None:
        return request.client.host
    return "unknown"


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency: reject the request when the caller's bucket is empty.

    Raises:
        RateLimitedError: With ``retry_after`` seconds in details
    """
    limiter: TokenBucketLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return

    key = client_key(request)
    wait = limiter.acquire(key)
    if wait > 0:
        retry_after = max(1, math.ceil(wait))
        logger.warning("rate_limit.rejected", client=key, path=request.url.path)
        raise RateLimitedError(details={"retry_after": retry_after})
