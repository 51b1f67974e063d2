"""
Sliding-window rate limiter shared by all callers of a submission client.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import deque
from collections.abc import Callable

from ..exceptions import ConfigurationError, ThrottleWaitInterrupted
from ..logging_utils import get_logger
from .models import DEFAULT_POLL_CAP_MS, RateLimitConfig

logger = get_logger(__name__)

Clock = Callable[[], int]


def monotonic_millis() -> int:
    """Milliseconds from the monotonic clock."""
    return time.monotonic_ns() // 1_000_000


class RateLimiter:
    """
    Grants at most ``request_limit`` calls within any trailing window.

    Unlike a fixed bucket, the window slides with "now", so a burst that
    straddles a bucket boundary can never reach twice the limit.

    Features:
    - Lazy eviction of expired timestamps before every read or write
    - Blocking (threads) and awaitable (asyncio) admission loops
    - Cancellation surfaces as ThrottleWaitInterrupted
    - Usage statistics
    """

    def __init__(
        self,
        request_limit: int,
        window_ms: int,
        clock: Clock | None = None,
    ):
        if request_limit < 1:
            raise ConfigurationError(
                f"request_limit must be positive, got {request_limit}"
            )
        if window_ms < 1:
            raise ConfigurationError(f"window_ms must be positive, got {window_ms}")

        self.request_limit = request_limit
        self.window_ms = window_ms
        self._clock = clock or monotonic_millis
        self._lock = threading.Lock()

        # Granted call timestamps, oldest first
        self._timestamps: deque[int] = deque()

        self._total_granted = 0
        self._total_rejected = 0

    @classmethod
    def from_config(cls, config: RateLimitConfig, clock: Clock | None = None) -> RateLimiter:
        return cls(config.request_limit, config.window_ms, clock=clock)

    def try_acquire(self) -> bool:
        """Record a call and return True if a slot is free right now."""
        with self._lock:
            now = self._clock()
            self._evict_expired(now)

            if len(self._timestamps) < self.request_limit:
                self._timestamps.append(now)
                self._total_granted += 1
                return True

            self._total_rejected += 1
            return False

    def delay_until_next_slot(self) -> int:
        """
        Milliseconds until a slot frees up, 0 if one is free now.

        The result lands one tick past the oldest entry's expiry so a retry
        at exactly that moment does not find the window still full.
        """
        with self._lock:
            now = self._clock()
            self._evict_expired(now)

            if len(self._timestamps) < self.request_limit:
                return 0

            delay = self.window_ms - (now - self._timestamps[0]) + 1
            # Clock moved backward: keep the delay positive and bounded
            return min(max(delay, 1), self.window_ms + 1)

    def _evict_expired(self, now: int) -> None:
        """Drop timestamps older than the window. Caller holds the lock."""
        # Entries with a negative apparent age stay until the clock catches up
        while self._timestamps and now - self._timestamps[0] >= self.window_ms:
            self._timestamps.popleft()

    def wait_for_slot(
        self,
        poll_cap_ms: int = DEFAULT_POLL_CAP_MS,
        cancel_event: threading.Event | None = None,
    ) -> int:
        """
        Block the calling thread until a slot is granted.

        Args:
            poll_cap_ms: Longest single sleep between attempts
            cancel_event: Setting this event aborts the wait

        Returns:
            Milliseconds spent waiting

        Raises:
            ThrottleWaitInterrupted: If cancel_event was set while waiting
        """
        cancel_event = cancel_event or threading.Event()
        started = monotonic_millis()

        while True:
            if cancel_event.is_set():
                raise ThrottleWaitInterrupted(
                    "Cancelled while waiting for a rate limit slot",
                    waited_ms=monotonic_millis() - started,
                )
            if self.try_acquire():
                return monotonic_millis() - started

            sleep_ms = min(self.delay_until_next_slot(), poll_cap_ms)
            logger.debug("Rate limit reached, waiting", sleep_ms=sleep_ms)
            cancel_event.wait(sleep_ms / 1000)

    async def wait_for_slot_async(self, poll_cap_ms: int = DEFAULT_POLL_CAP_MS) -> int:
        """
        Await a slot; cancelling the task raises ThrottleWaitInterrupted.

        Returns:
            Milliseconds spent waiting
        """
        started = monotonic_millis()

        try:
            while not self.try_acquire():
                sleep_ms = min(self.delay_until_next_slot(), poll_cap_ms)
                logger.debug("Rate limit reached, waiting", sleep_ms=sleep_ms)
                await asyncio.sleep(sleep_ms / 1000)
        except asyncio.CancelledError as e:
            raise ThrottleWaitInterrupted(
                "Cancelled while waiting for a rate limit slot",
                waited_ms=monotonic_millis() - started,
            ) from e

        return monotonic_millis() - started

    def get_statistics(self) -> dict[str, int | float]:
        """Get current rate limiting statistics."""
        with self._lock:
            self._evict_expired(self._clock())
            in_window = len(self._timestamps)

        return {
            "requests_in_window": in_window,
            "request_limit": self.request_limit,
            "window_ms": self.window_ms,
            "utilization": in_window / self.request_limit,
            "total_granted": self._total_granted,
            "total_rejected": self._total_rejected,
        }
