"""Timer Registry for Schedule Buddy application.

Maps a schedule id to the timers currently scheduled for it. The registry
knows nothing about schedules or reminders; it only guarantees that an id
never holds more than one chain of timers.
"""

import functools
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..utils.timer_backend import TimerBackend, TimerHandle
from .errors import TimerRegistryError

# Timer callbacks receive only (schedule_id, generation); anything else
# must be looked up when the timer fires.
RegistryCallback = Callable[[str, int], None]


@dataclass
class TimerBundle:
    """Live timers for one schedule id."""

    generation: int
    arm: Optional[TimerHandle] = None
    repeat: Optional[TimerHandle] = None
    fire_at: Optional[datetime] = None
    interval: Optional[timedelta] = None

    @property
    def live_count(self) -> int:
        return sum(1 for handle in (self.arm, self.repeat) if handle is not None and handle.active)

    def cancel(self) -> None:
        for handle in (self.arm, self.repeat):
            if handle is not None:
                handle.cancel()
        self.arm = None
        self.repeat = None


class TimerRegistry:
    """Handle-lifecycle map from schedule id to its timers.

    Every install starts a new generation. The generation is bound into the
    timer callback together with the schedule id, and ``generation(id)``
    tells the callback whether it still belongs to the current chain or to
    one that was cancelled or replaced after it had already been queued.
    """

    def __init__(self, backend: TimerBackend):
        self.logger = logging.getLogger(__name__)
        self._backend = backend
        self._bundles: dict[str, TimerBundle] = {}
        self._generation = 0

    def _new_bundle(self, schedule_id: str) -> TimerBundle:
        if schedule_id in self._bundles:
            raise TimerRegistryError(f"Schedule {schedule_id} already has live timers; cancel them first")
        self._generation += 1
        bundle = TimerBundle(generation=self._generation)
        self._bundles[schedule_id] = bundle
        return bundle

    def arm(self, schedule_id: str, fire_at: datetime, callback: RegistryCallback) -> int:
        """Schedule a one-shot callback at ``fire_at``.

        Returns:
            Generation number of the new timer chain

        Raises:
            TimerRegistryError: If ``schedule_id`` already has timers
        """
        bundle = self._new_bundle(schedule_id)
        try:
            bundle.arm = self._backend.call_at(fire_at, functools.partial(callback, schedule_id, bundle.generation))
        except Exception:
            del self._bundles[schedule_id]
            raise
        bundle.fire_at = fire_at
        self.logger.debug(f"Armed {schedule_id} for {fire_at.isoformat()} (generation {bundle.generation})")
        return bundle.generation

    def repeat(self, schedule_id: str, interval: timedelta, callback: RegistryCallback) -> int:
        """Schedule a recurring callback every ``interval``.

        Returns:
            Generation number of the new timer chain

        Raises:
            TimerRegistryError: If ``schedule_id`` already has timers
        """
        bundle = self._new_bundle(schedule_id)
        try:
            bundle.repeat = self._backend.call_every(
                interval, functools.partial(callback, schedule_id, bundle.generation)
            )
        except Exception:
            del self._bundles[schedule_id]
            raise
        bundle.interval = interval
        self.logger.debug(f"Repeating {schedule_id} every {interval} (generation {bundle.generation})")
        return bundle.generation

    def cancel(self, schedule_id: str) -> bool:
        """Cancel and forget every timer for ``schedule_id``.

        Returns:
            True if timers were cancelled, False if there were none
        """
        bundle = self._bundles.pop(schedule_id, None)
        if bundle is None:
            return False
        bundle.cancel()
        self.logger.debug(f"Cancelled timers for {schedule_id} (generation {bundle.generation})")
        return True

    def cancel_all(self) -> int:
        cancelled = 0
        for schedule_id in list(self._bundles):
            if self.cancel(schedule_id):
                cancelled += 1
        return cancelled

    def bundle(self, schedule_id: str) -> Optional[TimerBundle]:
        return self._bundles.get(schedule_id)

    def has_timers(self, schedule_id: str) -> bool:
        return schedule_id in self._bundles

    def generation(self, schedule_id: str) -> Optional[int]:
        bundle = self._bundles.get(schedule_id)
        return None if bundle is None else bundle.generation

    def live_timer_count(self, schedule_id: str) -> int:
        bundle = self._bundles.get(schedule_id)
        return 0 if bundle is None else bundle.live_count

    def ids(self) -> list[str]:
        return list(self._bundles)

    def __len__(self) -> int:
        return len(self._bundles)
