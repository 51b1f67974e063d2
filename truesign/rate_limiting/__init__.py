"""
Sliding-window rate limiting for outbound submissions.
"""

from .limiter import RateLimiter, monotonic_millis
from .models import RateLimitConfig, TimeWindow

__all__ = [
    "RateLimitConfig",
    "RateLimiter",
    "TimeWindow",
    "monotonic_millis",
]
