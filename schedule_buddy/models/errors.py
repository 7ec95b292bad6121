"""Exceptions raised by the Schedule Buddy models."""


class ScheduleBuddyError(Exception):
    """Base class for recoverable Schedule Buddy errors."""


class StorageError(ScheduleBuddyError):
    """The schedules file could not be read or does not hold valid schedules."""


class ValidationError(ScheduleBuddyError):
    """A schedule record or update is malformed."""


class NotFoundError(ScheduleBuddyError):
    """No schedule exists with the requested id."""

    def __init__(self, schedule_id: str):
        super().__init__(f"Schedule not found: {schedule_id}")
        self.schedule_id = schedule_id


class TimerRegistryError(RuntimeError):
    """Timers were installed for a schedule that still holds live timers.

    This is a programming error: callers must cancel before installing.
    """
