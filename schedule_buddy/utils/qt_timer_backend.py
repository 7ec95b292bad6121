"""Qt timer backend for the reminder engine.

All timers are ``QTimer`` objects owned by the backend, so every reminder
callback runs on the Qt event loop of the thread that created the backend.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from PyQt6.QtCore import QObject, Qt, QTimer

from .clock import Clock, SystemClock
from .timer_backend import TimerCallback

# QTimer takes a signed 32-bit millisecond interval (about 24.8 days)
MAX_QTIMER_INTERVAL_MS = 2**31 - 1


class QtOneShotTimer(QObject):
    """One-shot timer for an absolute wall-clock instant.

    Instants further away than a single ``QTimer`` can wait are reached in
    several hops. Every hop re-reads the clock and the callback only runs
    once ``now >= fire_at``, so early wakeups and clock adjustments never
    cause an early fire.
    """

    def __init__(self, clock: Clock, fire_at: datetime, callback: TimerCallback, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.logger = logging.getLogger(__name__)
        self._clock = clock
        self.fire_at = fire_at
        self._callback = callback
        self._active = True
        self.hops = 0

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._start_next_hop()

    @property
    def active(self) -> bool:
        return self._active

    def _remaining_ms(self) -> int:
        remaining = (self.fire_at - self._clock.now()).total_seconds() * 1000
        return max(0, min(math.ceil(remaining), MAX_QTIMER_INTERVAL_MS))

    def _start_next_hop(self) -> None:
        self.hops += 1
        self._timer.start(self._remaining_ms())

    def _on_timeout(self) -> None:
        if not self._active:
            return
        if self._clock.now() < self.fire_at:
            self.logger.debug(f"Timer woke before {self.fire_at.isoformat()}, waiting again")
            self._start_next_hop()
            return
        self._active = False
        self._callback()
        self.deleteLater()

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._timer.stop()
            self.deleteLater()


class QtRecurringTimer(QObject):
    """Recurring timer firing every ``interval``."""

    def __init__(self, interval: timedelta, callback: TimerCallback, parent: Optional[QObject] = None):
        super().__init__(parent)
        interval_ms = math.ceil(interval.total_seconds() * 1000)
        if interval_ms <= 0 or interval_ms > MAX_QTIMER_INTERVAL_MS:
            raise ValueError(f"Unsupported recurring interval: {interval}")
        self.interval = interval
        self._callback = callback
        self._active = True

        self._timer = QTimer(self)
        # Ticks must never arrive early
        self._timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._timer.timeout.connect(self._on_timeout)
        self._timer.start(interval_ms)

    @property
    def active(self) -> bool:
        return self._active

    def _on_timeout(self) -> None:
        if self._active:
            self._callback()

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._timer.stop()
            self.deleteLater()


class QtTimerBackend(QObject):
    """``TimerBackend`` implementation built on ``QTimer``."""

    def __init__(self, clock: Optional[Clock] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.clock = clock or SystemClock()

    def call_at(self, fire_at: datetime, callback: TimerCallback) -> QtOneShotTimer:
        return QtOneShotTimer(self.clock, fire_at, callback, parent=self)

    def call_every(self, interval: timedelta, callback: TimerCallback) -> QtRecurringTimer:
        return QtRecurringTimer(interval, callback, parent=self)
