"""
Clock abstraction for Work Order Tracker

Services take a clock instead of calling ``datetime.now`` so that timer
behaviour can be replayed deterministically in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware UTC time."""


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` keeps returning the same instant until ``advance()`` or
    ``set_time()`` is called.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set_time(self, value: datetime):
        self._now = value

    def advance(self, seconds: float = 0, milliseconds: float = 0) -> datetime:
        """Move forward and return the new time."""
        self._now += timedelta(seconds=seconds, milliseconds=milliseconds)
        return self._now
