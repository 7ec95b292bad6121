"""Utils package for Schedule Buddy application.

This package contains clocks, timer backends, sound playback and logging
helpers shared across the application.
"""

from .clock import Clock, ManualClock, SystemClock
from .timer_backend import ManualTimerBackend, TimerBackend, TimerHandle

__all__ = [
    "Clock",
    "ManualClock",
    "ManualTimerBackend",
    "SystemClock",
    "TimerBackend",
    "TimerHandle",
]
