"""Reminder Engine for Schedule Buddy application.

This module contains the ReminderEngine class that keeps exactly one timer
chain per pending schedule and turns timer fires into notifications.

Each schedule is in one of three reminder states:

* ``IDLE``: no timers.
* ``ARMED_PRE_EVENT``: a one-shot timer fires ``pre_event_lead`` before the
  schedule starts. On fire a normal notification is shown and the schedule
  moves to ``REPEATING``.
* ``REPEATING``: a recurring timer fires every ``repeat_interval``. Each
  tick shows a repeat notification until the schedule has started, at
  which point the timers are cancelled and the schedule goes back to
  ``IDLE``.

The state decision (``plan_reminder``, ``repeat_tick_action``) is pure;
the engine applies it to the timer registry and hands notifications to a
``ReminderNotifier`` afterwards.
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from ..utils.clock import Clock, SystemClock
from ..utils.structured_logging import EnhancedLoggerMixin
from ..utils.timer_backend import TimerBackend
from .errors import StorageError
from .notification import ReminderNotification, ReminderNotifier
from .schedule import Schedule
from .schedule_store import ScheduleStore
from .timer_registry import TimerRegistry

PRE_EVENT_LEAD = timedelta(minutes=15)
REPEAT_INTERVAL = timedelta(minutes=5)


class ReminderState(Enum):
    IDLE = "idle"
    ARMED_PRE_EVENT = "armed_pre_event"
    REPEATING = "repeating"

    def __str__(self) -> str:
        return self.value


class RepeatAction(Enum):
    NOTIFY = "notify"
    STOP = "stop"


@dataclass(frozen=True)
class ReminderPlan:
    """Reminder state a schedule should be in, and when its timer fires."""

    state: ReminderState
    fire_at: Optional[datetime] = None


def plan_reminder(
    schedule: Schedule,
    now: datetime,
    lead: timedelta = PRE_EVENT_LEAD,
    catch_up: bool = False,
) -> ReminderPlan:
    """Decide the reminder state for ``schedule`` at ``now``.

    A schedule is armed only while its pre-event instant is still ahead.
    Once that instant has passed nothing is scheduled, unless ``catch_up``
    is set and the schedule has not started yet, in which case it goes
    straight to the repeat phase.
    """
    if schedule.completed:
        return ReminderPlan(ReminderState.IDLE)

    event_start = schedule.event_start
    pre_fire_at = event_start - lead
    if pre_fire_at > now:
        return ReminderPlan(ReminderState.ARMED_PRE_EVENT, fire_at=pre_fire_at)
    if catch_up and now < event_start:
        return ReminderPlan(ReminderState.REPEATING)
    return ReminderPlan(ReminderState.IDLE)


def repeat_tick_action(schedule: Optional[Schedule], now: datetime) -> RepeatAction:
    """Decide what a repeat tick does for the schedule as it is now."""
    if schedule is None or schedule.completed or now >= schedule.event_start:
        return RepeatAction.STOP
    return RepeatAction.NOTIFY


class ReminderEngine(EnhancedLoggerMixin):
    """Owns the schedule store and the timer registry and keeps them in step.

    Every public operation and every timer callback runs under one
    re-entrant lock, so cancelling a schedule's timers and installing new
    ones is atomic with respect to a timer that is firing. Timer callbacks
    only carry the schedule id and chain generation; the schedule itself is
    looked up when the timer fires, so edits made in between are honoured.
    """

    def __init__(
        self,
        store: ScheduleStore,
        backend: TimerBackend,
        notifier: ReminderNotifier,
        clock: Optional[Clock] = None,
        pre_event_lead: timedelta = PRE_EVENT_LEAD,
        repeat_interval: timedelta = REPEAT_INTERVAL,
        catch_up_on_startup: bool = True,
    ):
        """Initialize the ReminderEngine.

        Args:
            store: Schedule store holding the authoritative schedule list
            backend: Timer backend the reminder timers run on
            notifier: Delivers notifications and plays the alert sound
            clock: Wall-clock source; defaults to the backend's clock
            pre_event_lead: How long before the start the first reminder fires
            repeat_interval: Cadence of repeat reminders until the start
            catch_up_on_startup: Whether ``start_all_reminders`` resumes the
                repeat phase for schedules whose first reminder was missed
        """
        if repeat_interval <= timedelta(0):
            raise ValueError("repeat_interval must be positive")
        if pre_event_lead < timedelta(0):
            raise ValueError("pre_event_lead cannot be negative")

        self.store = store
        self.notifier = notifier
        self.clock = clock or getattr(backend, "clock", None) or SystemClock()
        self.pre_event_lead = pre_event_lead
        self.repeat_interval = repeat_interval
        self.catch_up_on_startup = catch_up_on_startup

        self._registry = TimerRegistry(backend)
        self._lock = threading.RLock()

    @property
    def registry(self) -> TimerRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> int:
        """Load persisted schedules and derive their timers from the clock.

        An unreadable schedules file is logged and the engine starts with no
        schedules.

        Returns:
            Number of schedules left with live timers
        """
        with self._lock:
            try:
                self.store.load()
            except StorageError as e:
                self.log_error_with_context(e, "load_schedules", data_file=str(self.store.data_file))
            return self.start_all_reminders()

    def start_all_reminders(self) -> int:
        """Derive the reminder state of every open schedule from the clock.

        Returns:
            Number of schedules left with live timers
        """
        with self._lock:
            active = 0
            for schedule in self.store.list():
                if schedule.completed:
                    continue
                state = self.start_reminder(schedule, catch_up=self.catch_up_on_startup)
                if state is not ReminderState.IDLE:
                    active += 1
            self.structured_logger.info(
                "Reminders started", schedules=len(self.store), active=active, catch_up=self.catch_up_on_startup
            )
            return active

    def shutdown(self) -> None:
        """Cancel every timer."""
        with self._lock:
            cancelled = self._registry.cancel_all()
        self.structured_logger.info("Reminder engine stopped", cancelled=cancelled)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def state_of(self, schedule_id: str) -> ReminderState:
        with self._lock:
            bundle = self._registry.bundle(schedule_id)
            if bundle is None:
                return ReminderState.IDLE
            if bundle.arm is not None and bundle.arm.active:
                return ReminderState.ARMED_PRE_EVENT
            if bundle.repeat is not None and bundle.repeat.active:
                return ReminderState.REPEATING
            return ReminderState.IDLE

    def start_reminder(self, schedule: Schedule, catch_up: bool = False) -> ReminderState:
        """Cancel the schedule's timers and install the ones it needs now.

        Never shows a notification synchronously.

        Returns:
            The reminder state the schedule ended up in
        """
        with self._lock:
            old_state = self.state_of(schedule.id)
            self._registry.cancel(schedule.id)

            plan = plan_reminder(schedule, self.clock.now(), self.pre_event_lead, catch_up)
            if plan.state is ReminderState.ARMED_PRE_EVENT:
                self._registry.arm(schedule.id, plan.fire_at, self._on_pre_event_fired)
            elif plan.state is ReminderState.REPEATING:
                self._registry.repeat(schedule.id, self.repeat_interval, self._on_repeat_tick)

            self._log_transition(schedule.id, old_state, plan.state, fire_at=plan.fire_at)
            return plan.state

    def stop_reminder(self, schedule_id: str) -> None:
        """Cancel the schedule's timers. Safe to call any number of times."""
        with self._lock:
            old_state = self.state_of(schedule_id)
            self._registry.cancel(schedule_id)
            self._log_transition(schedule_id, old_state, ReminderState.IDLE)

    def _log_transition(self, schedule_id: str, old_state: ReminderState, new_state: ReminderState, **kwargs):
        if old_state is new_state and new_state is ReminderState.IDLE:
            return
        context = {key: value for key, value in kwargs.items() if value is not None}
        self.log_state_change(old_state, new_state, schedule_id=schedule_id, **context)

    def _is_current(self, schedule_id: str, generation: int) -> bool:
        if self._registry.generation(schedule_id) == generation:
            return True
        self.structured_logger.debug("Ignoring stale timer", schedule_id=schedule_id, generation=generation)
        return False

    def _on_pre_event_fired(self, schedule_id: str, generation: int) -> None:
        notification = None
        with self._lock:
            if not self._is_current(schedule_id, generation):
                return
            now = self.clock.now()
            schedule = self.store.get(schedule_id)
            if repeat_tick_action(schedule, now) is RepeatAction.STOP:
                # Woke up after the schedule started (e.g. system sleep)
                self.stop_reminder(schedule_id)
                return

            notification = ReminderNotification.for_schedule(schedule, is_repeat=False, fired_at=now)
            self._registry.cancel(schedule_id)
            self._registry.repeat(schedule_id, self.repeat_interval, self._on_repeat_tick)
            self._log_transition(schedule_id, ReminderState.ARMED_PRE_EVENT, ReminderState.REPEATING)

        self.notifier.dispatch(notification)

    def _on_repeat_tick(self, schedule_id: str, generation: int) -> None:
        notification = None
        with self._lock:
            if not self._is_current(schedule_id, generation):
                return
            now = self.clock.now()
            schedule = self.store.get(schedule_id)
            if repeat_tick_action(schedule, now) is RepeatAction.STOP:
                self.stop_reminder(schedule_id)
                return
            notification = ReminderNotification.for_schedule(schedule, is_repeat=True, fired_at=now)

        self.notifier.dispatch(notification)

    def reconcile(self) -> int:
        """Re-check every schedule's timers against the clock.

        Arms idle schedules whose first reminder is still ahead (after a
        clock change, for instance), re-arms chains whose fire time no
        longer matches their schedule, stops repeat phases whose schedule
        has started, and drops timers of schedules that no longer exist.

        Returns:
            Number of schedules whose timers changed
        """
        changed = 0
        with self._lock:
            now = self.clock.now()
            known_ids = set()
            for schedule in self.store.list():
                known_ids.add(schedule.id)
                if self._reconcile_schedule(schedule, now):
                    changed += 1

            for schedule_id in self._registry.ids():
                if schedule_id not in known_ids:
                    self.stop_reminder(schedule_id)
                    changed += 1

        if changed:
            self.structured_logger.info("Reminders reconciled", changed=changed)
        return changed

    def _reconcile_schedule(self, schedule: Schedule, now: datetime) -> bool:
        state = self.state_of(schedule.id)

        if schedule.completed:
            if self._registry.has_timers(schedule.id):
                self.stop_reminder(schedule.id)
                return True
            return False

        if state is ReminderState.IDLE:
            if plan_reminder(schedule, now, self.pre_event_lead).state is ReminderState.ARMED_PRE_EVENT:
                self.start_reminder(schedule)
                return True
            if self._registry.has_timers(schedule.id):
                self._registry.cancel(schedule.id)
                return True
            return False

        if state is ReminderState.ARMED_PRE_EVENT:
            bundle = self._registry.bundle(schedule.id)
            if bundle.fire_at != schedule.event_start - self.pre_event_lead:
                self.start_reminder(schedule)
                return True
            return False

        if repeat_tick_action(schedule, now) is RepeatAction.STOP:
            self.stop_reminder(schedule.id)
            return True
        return False

    # ------------------------------------------------------------------
    # Schedule commands
    # ------------------------------------------------------------------

    def get_schedules(self) -> list[Schedule]:
        with self._lock:
            return self.store.list()

    def get_upcoming_schedules(self) -> list[Schedule]:
        with self._lock:
            return self.store.upcoming(self.clock.now())

    def add_schedule(self, data: Mapping[str, Any] | Schedule) -> Schedule:
        """Add a schedule, start its reminder and save.

        Raises:
            ValidationError: If the record is malformed or its id is taken
        """
        schedule = data if isinstance(data, Schedule) else Schedule.from_dict(data, generate_id=True)
        with self._lock:
            self.store.add(schedule)
            if not schedule.completed:
                self.start_reminder(schedule)
            self.store.save()
        self.structured_logger.info("Schedule added", schedule_id=schedule.id, event_start=schedule.event_start)
        return schedule

    def update_schedule(self, schedule_id: str, fields: Mapping[str, Any]) -> Schedule:
        """Merge ``fields`` into a schedule, rebuild its reminder and save.

        The old timer chain is cancelled before the new one is installed.
        A rejected update leaves both the schedule and its timers untouched.

        Raises:
            NotFoundError: If no schedule has ``schedule_id``
            ValidationError: If the merged schedule is invalid
        """
        with self._lock:
            updated = self.store.update(schedule_id, fields)
            self.stop_reminder(schedule_id)
            if not updated.completed:
                self.start_reminder(updated)
            self.store.save()
        self.structured_logger.info("Schedule updated", schedule_id=schedule_id, fields=sorted(fields))
        return updated

    def complete_schedule(self, schedule_id: str, completed: bool = True) -> Schedule:
        return self.update_schedule(schedule_id, {"completed": completed})

    def delete_schedule(self, schedule_id: str) -> Schedule:
        """Delete a schedule, cancel its reminder and save.

        Raises:
            NotFoundError: If no schedule has ``schedule_id``
        """
        with self._lock:
            removed = self.store.delete(schedule_id)
            self.stop_reminder(schedule_id)
            self.store.save()
        self.structured_logger.info("Schedule deleted", schedule_id=schedule_id)
        return removed
