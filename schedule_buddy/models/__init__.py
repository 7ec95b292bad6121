"""Models package for Schedule Buddy application.

This package contains the schedule data model, its storage, and the
reminder engine that turns schedules into timed notifications.
"""

from .configuration_model import ConfigurationData, ConfigurationModel
from .errors import NotFoundError, ScheduleBuddyError, StorageError, TimerRegistryError, ValidationError
from .notification import NotificationSink, ReminderNotification, ReminderNotifier, SoundAlert
from .reminder_engine import ReminderEngine, ReminderPlan, ReminderState, plan_reminder, repeat_tick_action
from .schedule import Schedule
from .schedule_store import ScheduleStore
from .timer_registry import TimerBundle, TimerRegistry

__all__ = [
    "ConfigurationData",
    "ConfigurationModel",
    "NotFoundError",
    "NotificationSink",
    "ReminderEngine",
    "ReminderNotification",
    "ReminderNotifier",
    "ReminderPlan",
    "ReminderState",
    "Schedule",
    "ScheduleBuddyError",
    "ScheduleStore",
    "SoundAlert",
    "StorageError",
    "TimerBundle",
    "TimerRegistry",
    "TimerRegistryError",
    "ValidationError",
    "plan_reminder",
    "repeat_tick_action",
]
