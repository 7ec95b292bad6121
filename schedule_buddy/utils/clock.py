"""Wall-clock sources for Schedule Buddy.

Schedules are expressed in local, naive date/time values, so every clock
here returns naive local ``datetime`` objects.
"""

import threading
from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current wall-clock time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the operating system's local time."""

    def now(self) -> datetime:
        return datetime.now()

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock:
    """Clock whose time only moves when told to.

    Used together with ``ManualTimerBackend`` to run reminder scenarios
    in virtual time.
    """

    def __init__(self, start: datetime):
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, value: datetime) -> None:
        """Jump to ``value``. Moving backwards is allowed (clock adjustments)."""
        with self._lock:
            self._now = value

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward by ``delta`` and return the new time."""
        if delta < timedelta(0):
            raise ValueError("ManualClock.advance() needs a non-negative delta")
        with self._lock:
            self._now = self._now + delta
            return self._now

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now.isoformat()})"
