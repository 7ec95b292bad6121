"""Timer backends for the reminder engine.

A backend runs callbacks at wall-clock instants on a single cooperative
timeline. ``ManualTimerBackend`` implements that timeline in virtual time
so reminder behaviour can be exercised without waiting; the Qt backend
lives in ``qt_timer_backend`` to keep this module free of GUI imports.
"""

import itertools
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from .clock import ManualClock

TimerCallback = Callable[[], None]


class TimerHandle(Protocol):
    """A scheduled timer that can be cancelled."""

    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class TimerBackend(Protocol):
    """Scheduler capable of one-shot and recurring callbacks."""

    def call_at(self, fire_at: datetime, callback: TimerCallback) -> TimerHandle: ...

    def call_every(self, interval: timedelta, callback: TimerCallback) -> TimerHandle: ...


class ManualTimer:
    """Timer owned by a ``ManualTimerBackend``."""

    def __init__(
        self,
        backend: "ManualTimerBackend",
        sequence: int,
        fire_at: datetime,
        callback: TimerCallback,
        interval: Optional[timedelta] = None,
    ):
        self._backend = backend
        self.sequence = sequence
        self.fire_at = fire_at
        self.callback = callback
        self.interval = interval
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def recurring(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._backend._discard(self)

    def __repr__(self) -> str:
        kind = f"every {self.interval}" if self.recurring else "once"
        return f"ManualTimer(fire_at={self.fire_at.isoformat()}, {kind}, active={self._active})"


class ManualTimerBackend:
    """Virtual-time timer backend driven by a ``ManualClock``.

    Nothing fires until ``advance`` or ``fire_due`` is called. Timers then
    fire in (fire time, creation order) order, and the clock is moved to
    each timer's fire instant before its callback runs, so callbacks that
    read the clock see the time they were scheduled for.
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self._timers: list[ManualTimer] = []
        self._sequence = itertools.count()

    def call_at(self, fire_at: datetime, callback: TimerCallback) -> ManualTimer:
        timer = ManualTimer(self, next(self._sequence), fire_at, callback)
        self._timers.append(timer)
        return timer

    def call_every(self, interval: timedelta, callback: TimerCallback) -> ManualTimer:
        if interval <= timedelta(0):
            raise ValueError("Recurring timers need a positive interval")
        timer = ManualTimer(self, next(self._sequence), self.clock.now() + interval, callback, interval)
        self._timers.append(timer)
        return timer

    def _discard(self, timer: ManualTimer) -> None:
        try:
            self._timers.remove(timer)
        except ValueError:
            pass

    @property
    def pending(self) -> list[ManualTimer]:
        """Active timers ordered by next fire time."""
        return sorted(self._timers, key=lambda t: (t.fire_at, t.sequence))

    def _pop_due(self, deadline: datetime) -> Optional[ManualTimer]:
        timers = self.pending
        if not timers or timers[0].fire_at > deadline:
            return None
        return timers[0]

    def _fire(self, timer: ManualTimer) -> None:
        if timer.fire_at > self.clock.now():
            self.clock.set(timer.fire_at)
        if timer.recurring:
            timer.fire_at = timer.fire_at + timer.interval
        else:
            timer._active = False
            self._discard(timer)
        timer.callback()

    def advance(self, delta: timedelta) -> int:
        """Move virtual time forward, firing every timer that comes due.

        Returns:
            Number of timer callbacks that ran
        """
        target = self.clock.now() + delta
        fired = self.run_until(target)
        self.clock.set(target)
        return fired

    def run_until(self, deadline: datetime) -> int:
        fired = 0
        while True:
            timer = self._pop_due(deadline)
            if timer is None:
                return fired
            self._fire(timer)
            fired += 1

    def fire_due(self) -> int:
        """Fire timers already due at the clock's current time."""
        return self.run_until(self.clock.now())
