"""Reminder Presenter for Schedule Buddy application.

This module contains the ReminderPresenter class. It builds the reminder
engine from the configuration, exposes the schedule commands the host UI
calls, and acts as the engine's notification sink by forwarding
notifications to the view through Qt signals.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..models.configuration_model import ConfigurationModel
from ..models.errors import ScheduleBuddyError
from ..models.notification import ReminderNotifier, SoundAlert
from ..models.reminder_engine import ReminderEngine
from ..models.schedule import Schedule
from ..models.schedule_store import ScheduleStore
from ..utils.clock import Clock
from ..utils.qt_timer_backend import QtTimerBackend
from ..utils.sound_alert import PlatformSoundAlert
from ..utils.timer_backend import TimerBackend


@dataclass
class CommandResult:
    """Outcome of a command issued by the host."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "CommandResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: Exception) -> "CommandResult":
        return cls(success=False, error=str(error), error_type=type(error).__name__)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.success:
            if self.data is not None:
                result["data"] = self.data
        else:
            result["error"] = self.error
            result["errorType"] = self.error_type
        return result


class ReminderPresenter(QObject):
    """Presenter coordinating the reminder engine and the view."""

    # Qt signals for thread-safe UI updates
    notification_requested = pyqtSignal(str, str, bool)  # title, body, is_repeat
    schedules_changed = pyqtSignal()

    def __init__(
        self,
        config_model: ConfigurationModel,
        view=None,
        backend: Optional[TimerBackend] = None,
        clock: Optional[Clock] = None,
        sound: Optional[SoundAlert] = None,
    ):
        """Initialize the ReminderPresenter.

        Args:
            config_model: Application configuration
            view: Optional view; must provide ``show_notification``,
                ``show_upcoming_schedules`` and ``show_error_message``
            backend: Timer backend (defaults to a Qt timer backend)
            clock: Wall-clock source (defaults to the backend's clock)
            sound: Alert sound player (defaults to the platform player)
        """
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.config_model = config_model
        config = config_model.config_data

        if backend is None:
            backend = QtTimerBackend(clock, parent=self)
        if sound is None:
            sound = PlatformSoundAlert(enabled=config.sound_enabled)

        self.store = ScheduleStore(config_model.data_file)
        self.notifier = ReminderNotifier(self, sound)
        self.engine = ReminderEngine(
            self.store,
            backend,
            self.notifier,
            clock=clock,
            pre_event_lead=config.pre_event_lead,
            repeat_interval=config.repeat_interval,
            catch_up_on_startup=config.catch_up_on_startup,
        )

        self._reconcile_timer = QTimer(self)
        self._reconcile_timer.timeout.connect(self._on_reconcile_timeout)

        self.view = view
        if view is not None:
            self._connect_view(view)

        self.logger.info(f"ReminderPresenter initialized with data file {self.store.data_file}")

    def _connect_view(self, view) -> None:
        view.on_add_schedule = self._handle_add_schedule
        view.on_update_schedule = self._handle_update_schedule
        view.on_delete_schedule = self._handle_delete_schedule
        view.on_complete_schedule = self._handle_complete_schedule
        self.notification_requested.connect(view.show_notification)
        self.schedules_changed.connect(self._refresh_view)
        self.logger.debug("View callbacks connected")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Load schedules, start reminders and the periodic re-check."""
        active = self.engine.start()
        interval_ms = int(self.config_model.config_data.reconcile_interval.total_seconds() * 1000)
        self._reconcile_timer.start(interval_ms)
        self.logger.info(f"Reminders running: {active} active, re-check every {interval_ms} ms")
        self.schedules_changed.emit()

    def shutdown(self) -> None:
        self._reconcile_timer.stop()
        self.engine.shutdown()

    def _on_reconcile_timeout(self) -> None:
        self.engine.reconcile()
        # Upcoming list changes as schedules end
        self.schedules_changed.emit()

    # ------------------------------------------------------------------
    # NotificationSink
    # ------------------------------------------------------------------

    def notify(self, title: str, body: str, is_repeat: bool) -> None:
        self.logger.info(f"Reminder notification: {title}")
        self.notification_requested.emit(title, body, is_repeat)

    # ------------------------------------------------------------------
    # Command surface
    # ------------------------------------------------------------------

    def _run_command(self, name: str, command: Callable[[], Any], changes_schedules: bool = False) -> CommandResult:
        try:
            data = command()
        except ScheduleBuddyError as e:
            self.logger.warning(f"{name} failed: {type(e).__name__}: {e}")
            return CommandResult.failure(e)
        if changes_schedules:
            self.schedules_changed.emit()
        return CommandResult.ok(data)

    def get_schedules(self) -> CommandResult:
        return self._run_command(
            "get_schedules", lambda: [schedule.to_dict() for schedule in self.engine.get_schedules()]
        )

    def get_upcoming_schedules(self) -> CommandResult:
        return self._run_command(
            "get_upcoming_schedules",
            lambda: [schedule.to_dict() for schedule in self.engine.get_upcoming_schedules()],
        )

    def add_schedule(self, schedule: Mapping[str, Any]) -> CommandResult:
        return self._run_command(
            "add_schedule", lambda: self.engine.add_schedule(schedule).to_dict(), changes_schedules=True
        )

    def update_schedule(self, schedule_id: str, fields: Mapping[str, Any]) -> CommandResult:
        return self._run_command(
            "update_schedule",
            lambda: self.engine.update_schedule(schedule_id, fields).to_dict(),
            changes_schedules=True,
        )

    def delete_schedule(self, schedule_id: str) -> CommandResult:
        return self._run_command(
            "delete_schedule", lambda: self.engine.delete_schedule(schedule_id).to_dict(), changes_schedules=True
        )

    # ------------------------------------------------------------------
    # View handlers
    # ------------------------------------------------------------------

    def _report(self, result: CommandResult, title: str) -> None:
        if not result.success and self.view is not None:
            self.view.show_error_message(title, result.error)

    def _handle_add_schedule(self, record: dict) -> None:
        self._report(self.add_schedule(record), "Could not add schedule")

    def _handle_update_schedule(self, schedule_id: str, fields: dict) -> None:
        self._report(self.update_schedule(schedule_id, fields), "Could not update schedule")

    def _handle_delete_schedule(self, schedule_id: str) -> None:
        self._report(self.delete_schedule(schedule_id), "Could not delete schedule")

    def _handle_complete_schedule(self, schedule_id: str) -> None:
        self._report(self.update_schedule(schedule_id, {"completed": True}), "Could not complete schedule")

    def _refresh_view(self) -> None:
        if self.view is None:
            return
        upcoming: list[Schedule] = self.engine.get_upcoming_schedules()
        self.view.show_upcoming_schedules(upcoming)
