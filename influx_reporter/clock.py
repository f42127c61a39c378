"""
Clocks used to timestamp collected metrics.
"""
from abc import ABC, abstractmethod
from datetime import datetime

import pytz

_EPOCH = datetime(1970, 1, 1, tzinfo=pytz.UTC)


class Clock(ABC):
    """Source of the default timestamp for a reporting cycle."""

    @abstractmethod
    def now_in_nanos(self) -> int:
        """Return the current time as nanoseconds since the epoch."""
        pass


class UtcClock(Clock):
    """Wall clock in UTC."""

    def now_in_nanos(self) -> int:
        delta = datetime.now(pytz.UTC) - _EPOCH
        return (delta.days * 86400 + delta.seconds) * 10**9 + delta.microseconds * 1000


class FixedClock(Clock):
    """Clock that always returns the same instant. Useful in tests and replays."""

    def __init__(self, nanos: int):
        self.nanos = nanos

    def now_in_nanos(self) -> int:
        return self.nanos
