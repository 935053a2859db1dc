"""Request admission control."""

from keyward.middleware.rate_limit import TokenBucketLimiter, enforce_rate_limit

__all__ = ["TokenBucketLimiter", "enforce_rate_limit"]
