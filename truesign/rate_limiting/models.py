"""
Rate limiting configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..exceptions import ConfigurationError

DEFAULT_POLL_CAP_MS = 100


class TimeWindow(Enum):
    """Length of the sliding window, one unit of the given size."""
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def millis(self) -> int:
        return _WINDOW_MILLIS[self]

    @classmethod
    def parse(cls, value: str | TimeWindow) -> TimeWindow:
        """Accept an enum member or its (case-insensitive) name/value."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        raise ConfigurationError(
            f"Unknown time window '{value}', expected one of "
            f"{', '.join(m.value for m in cls)}"
        )


_WINDOW_MILLIS = {
    TimeWindow.MILLISECONDS: 1,
    TimeWindow.SECONDS: 1_000,
    TimeWindow.MINUTES: 60_000,
    TimeWindow.HOURS: 3_600_000,
    TimeWindow.DAYS: 86_400_000,
}


def _is_int(value: object) -> bool:
    # bool is an int subclass; YAML "true" must not pass as a count
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class RateLimitConfig:
    """Configuration for the sliding-window rate limiter."""
    request_limit: int
    time_window: TimeWindow = TimeWindow.SECONDS

    # Upper bound for a single sleep in the admission loop
    poll_cap_ms: int = DEFAULT_POLL_CAP_MS

    def __post_init__(self) -> None:
        if not _is_int(self.request_limit) or self.request_limit < 1:
            raise ConfigurationError(
                f"request_limit must be a positive integer, got {self.request_limit!r}"
            )
        if not isinstance(self.time_window, TimeWindow):
            object.__setattr__(self, "time_window", TimeWindow.parse(self.time_window))
        if not _is_int(self.poll_cap_ms) or self.poll_cap_ms < 1:
            raise ConfigurationError(
                f"poll_cap_ms must be a positive integer, got {self.poll_cap_ms!r}"
            )

    @property
    def window_ms(self) -> int:
        return self.time_window.millis
