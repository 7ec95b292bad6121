"""Schedule data class for Schedule Buddy application.

A schedule is one timed event on a calendar day. On disk and across the
command surface a schedule travels as a plain dict with camelCase keys::

    {"id": "...", "date": "2024-05-01", "startTime": "09:30",
     "endTime": "10:00", "content": "Stand-up", "completed": false}
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from typing import Any

from .errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

REQUIRED_FIELDS = ("date", "startTime", "endTime", "content")
RECORD_FIELDS = ("id", *REQUIRED_FIELDS, "completed")


def parse_date(value: Any, field_name: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD string, got {type(value).__name__}")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid YYYY-MM-DD date: {value!r}") from None


def parse_time(value: Any, field_name: str) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be an HH:MM string, got {type(value).__name__}")
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT).time()
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid HH:MM time: {value!r}") from None


def format_clock_time(value: time) -> str:
    """Render a time of day on a 12-hour clock, e.g. ``9:05 AM``."""
    period = "PM" if value.hour >= 12 else "AM"
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {period}"


def new_schedule_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Schedule:
    """A timed event the user wants to be reminded about."""

    id: str
    date: date
    start_time: time
    end_time: time
    content: str
    completed: bool = False

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValidationError("id must be a non-empty string")
        if not isinstance(self.content, str) or not self.content.strip():
            raise ValidationError("content must be a non-empty string")
        if not isinstance(self.completed, bool):
            raise ValidationError("completed must be a boolean")
        if self.start_time >= self.end_time:
            raise ValidationError(
                f"startTime ({self.start_time.strftime(TIME_FORMAT)}) must be before "
                f"endTime ({self.end_time.strftime(TIME_FORMAT)})"
            )

    @property
    def event_start(self) -> datetime:
        """Absolute instant at which the schedule begins."""
        return datetime.combine(self.date, self.start_time)

    @property
    def event_end(self) -> datetime:
        return datetime.combine(self.date, self.end_time)

    @property
    def sort_key(self) -> tuple[date, time]:
        return (self.date, self.start_time)

    @property
    def formatted_time_range(self) -> str:
        return f"{format_clock_time(self.start_time)} - {format_clock_time(self.end_time)}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted record format."""
        return {
            "id": self.id,
            "date": self.date.strftime(DATE_FORMAT),
            "startTime": self.start_time.strftime(TIME_FORMAT),
            "endTime": self.end_time.strftime(TIME_FORMAT),
            "content": self.content,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], generate_id: bool = False) -> "Schedule":
        """Build a schedule from a persisted or user-supplied record.

        Args:
            data: Record with camelCase keys; unknown keys are ignored
            generate_id: Assign a fresh id when the record has none

        Raises:
            ValidationError: If any field is missing or malformed
        """
        if not isinstance(data, Mapping):
            raise ValidationError(f"Schedule record must be an object, got {type(data).__name__}")

        missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}")

        schedule_id = data.get("id")
        if schedule_id in (None, "") and generate_id:
            schedule_id = new_schedule_id()
        elif isinstance(schedule_id, int) and not isinstance(schedule_id, bool):
            # Older clients used numeric timestamps as ids
            schedule_id = str(schedule_id)

        return cls(
            id=schedule_id,
            date=parse_date(data["date"]),
            start_time=parse_time(data["startTime"], "startTime"),
            end_time=parse_time(data["endTime"], "endTime"),
            content=data["content"],
            completed=data.get("completed", False),
        )

    def merged(self, fields: Mapping[str, Any]) -> "Schedule":
        """Return a copy with ``fields`` (camelCase record keys) applied.

        Raises:
            ValidationError: On unknown keys, an id change, or an invalid result
        """
        if not isinstance(fields, Mapping):
            raise ValidationError(f"Schedule update must be an object, got {type(fields).__name__}")
        unknown = sorted(set(fields) - set(RECORD_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown schedule field(s): {', '.join(unknown)}")
        if "id" in fields and str(fields["id"]) != self.id:
            raise ValidationError("A schedule's id cannot be changed")

        record = {**self.to_dict(), **fields, "id": self.id}
        return Schedule.from_dict(record)

    def with_completed(self, completed: bool = True) -> "Schedule":
        return replace(self, completed=completed)

    def __str__(self) -> str:
        return f"{self.date.strftime(DATE_FORMAT)} {self.formatted_time_range} {self.content}"
