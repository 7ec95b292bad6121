"""Reminder notification dispatch for Schedule Buddy application.

The reminder engine decides *when* a schedule fires; this module turns a
fire into user-visible effects: a desktop notification and an alert sound.
Both are best-effort, a failing sink or sound player is logged and ignored.
"""

import logging
from datetime import datetime
from typing import Optional, Protocol

from .schedule import Schedule

REMINDER_TITLE = "⏰ Schedule Reminder"
REPEAT_REMINDER_TITLE = "⏰ Schedule Reminder (repeat)"


class NotificationSink(Protocol):
    """Host capability that shows a notification to the user."""

    def notify(self, title: str, body: str, is_repeat: bool) -> None: ...


class SoundAlert(Protocol):
    """Host capability that plays an alert sound."""

    def play(self) -> None: ...


class ReminderNotification:
    """Data class representing one notification about a schedule."""

    def __init__(self, schedule_id: str, title: str, body: str, is_repeat: bool, fired_at: datetime):
        self.schedule_id = schedule_id
        self.title = title
        self.body = body
        self.is_repeat = is_repeat
        self.fired_at = fired_at

    @classmethod
    def for_schedule(cls, schedule: Schedule, is_repeat: bool, fired_at: datetime) -> "ReminderNotification":
        title = REPEAT_REMINDER_TITLE if is_repeat else REMINDER_TITLE
        body = f"{schedule.content}\nTime: {schedule.formatted_time_range}"
        return cls(schedule.id, title, body, is_repeat, fired_at)

    def __repr__(self) -> str:
        return (
            f"ReminderNotification(schedule_id='{self.schedule_id}', is_repeat={self.is_repeat}, "
            f"fired_at={self.fired_at.isoformat()})"
        )


class ReminderNotifier:
    """Delivers reminder notifications to a sink and plays the alert sound."""

    def __init__(self, sink: NotificationSink, sound: Optional[SoundAlert] = None):
        self.logger = logging.getLogger(__name__)
        self.sink = sink
        self.sound = sound
        self.delivered: int = 0
        self.failed: int = 0

    def dispatch(self, notification: ReminderNotification) -> bool:
        """Show ``notification`` and play the sound.

        Returns:
            True if the sink accepted the notification
        """
        delivered = True
        try:
            self.sink.notify(notification.title, notification.body, notification.is_repeat)
            self.delivered += 1
        except Exception:
            delivered = False
            self.failed += 1
            self.logger.exception(f"Notification sink failed for schedule {notification.schedule_id}")

        if self.sound is not None:
            try:
                self.sound.play()
            except Exception:
                self.logger.exception("Alert sound failed")

        return delivered
