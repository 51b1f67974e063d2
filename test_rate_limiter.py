#!/usr/bin/env python3
"""
Tests for the sliding-window rate limiter.
"""

import asyncio
import random
import threading
import time

import pytest

from truesign.exceptions import ConfigurationError, ThrottleWaitInterrupted
from truesign.rate_limiting import RateLimitConfig, RateLimiter, TimeWindow


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now


class TestConstruction:
    """Configuration is rejected up front, not at call time."""

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, limit):
        with pytest.raises(ConfigurationError, match="request_limit"):
            RateLimiter(limit, 1000)

    @pytest.mark.parametrize("window", [0, -5])
    def test_non_positive_window_rejected(self, window):
        with pytest.raises(ConfigurationError, match="window_ms"):
            RateLimiter(1, window)

    def test_from_config_uses_window_unit(self):
        config = RateLimitConfig(request_limit=5, time_window=TimeWindow.MINUTES)
        limiter = RateLimiter.from_config(config)
        assert limiter.request_limit == 5
        assert limiter.window_ms == 60_000

    def test_config_rejects_bad_limit(self):
        with pytest.raises(ConfigurationError):
            RateLimitConfig(request_limit=0)

    def test_time_window_parse(self):
        assert TimeWindow.parse("Seconds") is TimeWindow.SECONDS
        assert TimeWindow.parse("MINUTES") is TimeWindow.MINUTES
        with pytest.raises(ConfigurationError, match="Unknown time window"):
            TimeWindow.parse("fortnights")


class TestSlidingWindow:
    """Acquire and delay semantics with a controlled clock."""

    def test_documented_scenario(self):
        """limit=2, window=1000ms: third call at t=200 waits until t=1001."""
        clock = FakeClock()
        limiter = RateLimiter(2, 1000, clock=clock)

        assert limiter.try_acquire()
        clock.now = 100
        assert limiter.try_acquire()
        clock.now = 200
        assert not limiter.try_acquire()

        delay = limiter.delay_until_next_slot()
        assert delay == 801

        clock.now += delay
        assert clock.now == 1001
        assert limiter.try_acquire()

    def test_failed_acquire_does_not_record(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 1000, clock=clock)
        assert limiter.try_acquire()
        clock.now = 10
        assert not limiter.try_acquire()
        assert not limiter.try_acquire()

        # Only the first grant occupies the window
        clock.now = 1000
        assert limiter.try_acquire()

    def test_entry_expires_exactly_at_window(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 1000, clock=clock)
        assert limiter.try_acquire()
        clock.now = 999
        assert not limiter.try_acquire()
        clock.now = 1000
        assert limiter.try_acquire()

    def test_sliding_not_fixed_bucket(self):
        """A burst straddling a bucket boundary stays within the limit."""
        clock = FakeClock()
        limiter = RateLimiter(3, 1000, clock=clock)

        clock.now = 900
        assert all(limiter.try_acquire() for _ in range(3))
        clock.now = 1100
        assert not limiter.try_acquire()
        clock.now = 1900
        assert limiter.try_acquire()

    def test_delay_zero_iff_acquire_succeeds(self):
        clock = FakeClock()
        limiter = RateLimiter(3, 500, clock=clock)
        rng = random.Random(42)

        for _ in range(500):
            clock.now += rng.randint(0, 120)
            delay = limiter.delay_until_next_slot()
            granted = limiter.try_acquire()
            assert (delay == 0) == granted
            if not granted:
                assert 0 < delay <= limiter.window_ms + 1

    def test_granted_count_never_exceeds_limit(self):
        clock = FakeClock()
        limit, window = 4, 1000
        limiter = RateLimiter(limit, window, clock=clock)
        rng = random.Random(7)
        granted = []

        for _ in range(2000):
            clock.now += rng.randint(0, 60)
            if limiter.try_acquire():
                granted.append(clock.now)
            in_window = [t for t in granted if clock.now - t < window]
            assert len(in_window) <= limit

    def test_waiting_the_delay_always_admits(self):
        clock = FakeClock()
        limiter = RateLimiter(2, 1000, clock=clock)
        for step in (0, 300, 650):
            clock.now = step
            limiter.try_acquire()

        for _ in range(10):
            delay = limiter.delay_until_next_slot()
            clock.now += delay
            assert limiter.try_acquire()

    def test_clock_moving_backward(self):
        clock = FakeClock(5000)
        limiter = RateLimiter(1, 1000, clock=clock)
        assert limiter.try_acquire()

        clock.now = 4000
        assert not limiter.try_acquire()
        delay = limiter.delay_until_next_slot()
        assert 1 <= delay <= 1001

        # Window self-corrects once the clock passes the entry again
        clock.now = 6000
        assert limiter.try_acquire()

    def test_statistics(self):
        clock = FakeClock()
        limiter = RateLimiter(2, 1000, clock=clock)
        limiter.try_acquire()
        limiter.try_acquire()
        limiter.try_acquire()

        stats = limiter.get_statistics()
        assert stats["requests_in_window"] == 2
        assert stats["utilization"] == 1.0
        assert stats["total_granted"] == 2
        assert stats["total_rejected"] == 1

        clock.now = 1000
        assert limiter.get_statistics()["requests_in_window"] == 0


class TestAdmissionWait:
    """Blocking and awaitable admission loops on the real clock."""

    def test_wait_for_slot_blocks_until_window_slides(self):
        limiter = RateLimiter(1, 150)
        limiter.wait_for_slot(poll_cap_ms=20)

        started = time.monotonic()
        limiter.wait_for_slot(poll_cap_ms=20)
        elapsed_ms = (time.monotonic() - started) * 1000
        assert elapsed_ms >= 100

    def test_cancel_event_interrupts_wait(self):
        limiter = RateLimiter(1, 60_000)
        assert limiter.try_acquire()

        cancel = threading.Event()
        threading.Timer(0.1, cancel.set).start()

        with pytest.raises(ThrottleWaitInterrupted) as exc_info:
            limiter.wait_for_slot(poll_cap_ms=50, cancel_event=cancel)
        assert exc_info.value.waited_ms >= 0

    def test_already_cancelled_never_acquires(self):
        limiter = RateLimiter(1, 1000)
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(ThrottleWaitInterrupted):
            limiter.wait_for_slot(cancel_event=cancel)
        assert limiter.get_statistics()["total_granted"] == 0

    def test_threads_never_exceed_limit(self):
        limit, window = 3, 200
        limiter = RateLimiter(limit, window)
        grants: list[int] = []
        grants_lock = threading.Lock()

        def worker():
            limiter.wait_for_slot(poll_cap_ms=10)
            with grants_lock:
                grants.append(time.monotonic_ns() // 1_000_000)

        threads = [threading.Thread(target=worker) for _ in range(9)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(grants) == 9
        assert limiter.get_statistics()["total_granted"] == 9

        # Any limit+1 consecutive grants span at least one window
        grants.sort()
        tolerance_ms = 25
        for first, later in zip(grants, grants[limit:]):
            assert later - first >= window - tolerance_ms

    @pytest.mark.asyncio
    async def test_async_wait_for_slot(self):
        limiter = RateLimiter(2, 100)
        for _ in range(3):
            await limiter.wait_for_slot_async(poll_cap_ms=10)
        assert limiter.get_statistics()["total_granted"] == 3

    @pytest.mark.asyncio
    async def test_async_cancellation_raises_interrupted(self):
        limiter = RateLimiter(1, 60_000)
        assert limiter.try_acquire()

        task = asyncio.create_task(limiter.wait_for_slot_async(poll_cap_ms=20))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(ThrottleWaitInterrupted):
            await task
