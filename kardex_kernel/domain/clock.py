"""
Injectable clock.

The only use of "now" in the Kardex is the default upper bound of a report
period; services receive a Clock so that this bound is reproducible in
tests.  Engines never read the wall clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    @abstractmethod
    def now_utc(self) -> datetime:
        """Timezone-aware current time in UTC."""
        ...


class SystemClock(Clock):
    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Always returns the instant it was built with (normalized to UTC)."""

    def __init__(self, fixed_time: datetime):
        if fixed_time.tzinfo is None:
            fixed_time = fixed_time.replace(tzinfo=timezone.utc)
        self._fixed_time = fixed_time.astimezone(timezone.utc)

    def now_utc(self) -> datetime:
        return self._fixed_time
