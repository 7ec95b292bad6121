"""Schedule Store for Schedule Buddy application.

This module contains the ScheduleStore class that owns the authoritative
list of schedules and reads/writes it as a JSON document.
"""

import json
import os
import tempfile
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..utils.structured_logging import EnhancedLoggerMixin, timed_operation
from .errors import NotFoundError, StorageError, ValidationError
from .schedule import Schedule


class ScheduleStore(EnhancedLoggerMixin):
    """In-memory schedule collection backed by a JSON file.

    The in-memory list is authoritative while the application runs; the
    file is written after every change on a best-effort basis.
    """

    def __init__(self, data_file: Path | str):
        """Initialize the ScheduleStore.

        Args:
            data_file: Path of the JSON document holding the schedules
        """
        self.data_file = Path(data_file)
        self._schedules: list[Schedule] = []

    def __len__(self) -> int:
        return len(self._schedules)

    def __contains__(self, schedule_id: str) -> bool:
        return self._index_of(schedule_id) is not None

    @timed_operation("load_schedules")
    def load(self) -> list[Schedule]:
        """Load schedules from the data file, replacing the in-memory list.

        A missing file is not an error and yields an empty list.

        Raises:
            StorageError: If the file cannot be read or holds invalid data.
                The store is left empty in that case.
        """
        self._schedules = []

        if not self.data_file.exists():
            self.structured_logger.info("Schedules file not found, starting empty", data_file=str(self.data_file))
            return []

        try:
            raw = self.data_file.read_text(encoding="utf-8")
            records = json.loads(raw) if raw.strip() else []
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read schedules file {self.data_file}: {e}") from e
        except json.JSONDecodeError as e:
            raise StorageError(f"Schedules file {self.data_file} is not valid JSON: {e}") from e

        if not isinstance(records, list):
            raise StorageError(f"Schedules file {self.data_file} must contain a JSON array")

        schedules = []
        seen_ids = set()
        for position, record in enumerate(records):
            try:
                schedule = Schedule.from_dict(record)
            except ValidationError as e:
                raise StorageError(f"Invalid schedule at position {position} in {self.data_file}: {e}") from e
            if schedule.id in seen_ids:
                raise StorageError(f"Duplicate schedule id {schedule.id!r} in {self.data_file}")
            seen_ids.add(schedule.id)
            schedules.append(schedule)

        self._schedules = schedules
        self.structured_logger.info("Schedules loaded", data_file=str(self.data_file), count=len(schedules))
        return list(schedules)

    @timed_operation("save_schedules")
    def save(self, schedules: Optional[Iterable[Schedule]] = None) -> bool:
        """Write schedules to the data file.

        Args:
            schedules: Schedules to write; defaults to the in-memory list

        Returns:
            True if the file was written, False otherwise
        """
        records = [schedule.to_dict() for schedule in (self._schedules if schedules is None else schedules)]
        temp_path = None
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            # The old file stays intact until the new one is fully written
            fd, temp_file_path = tempfile.mkstemp(
                prefix=f".{self.data_file.name}.", suffix=".tmp", dir=str(self.data_file.parent)
            )
            temp_path = Path(temp_file_path)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.data_file)
        except (OSError, TypeError, ValueError):
            self.structured_logger.exception("Error saving schedules", data_file=str(self.data_file))
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            return False

        self.structured_logger.debug("Schedules saved", data_file=str(self.data_file), count=len(records))
        return True

    def _index_of(self, schedule_id: str) -> Optional[int]:
        for index, schedule in enumerate(self._schedules):
            if schedule.id == schedule_id:
                return index
        return None

    def get(self, schedule_id: str) -> Optional[Schedule]:
        index = self._index_of(schedule_id)
        return None if index is None else self._schedules[index]

    def add(self, schedule: Schedule) -> Schedule:
        """Append a schedule.

        Raises:
            ValidationError: If a schedule with the same id already exists
        """
        if schedule.id in self:
            raise ValidationError(f"A schedule with id {schedule.id!r} already exists")
        self._schedules.append(schedule)
        return schedule

    def update(self, schedule_id: str, fields: Mapping[str, Any]) -> Schedule:
        """Replace-merge ``fields`` into an existing schedule.

        The stored schedule is only replaced once the merged record validates.

        Raises:
            NotFoundError: If no schedule has ``schedule_id``
            ValidationError: If the merged record is invalid
        """
        index = self._index_of(schedule_id)
        if index is None:
            raise NotFoundError(schedule_id)
        updated = self._schedules[index].merged(fields)
        self._schedules[index] = updated
        return updated

    def delete(self, schedule_id: str) -> Schedule:
        index = self._index_of(schedule_id)
        if index is None:
            raise NotFoundError(schedule_id)
        return self._schedules.pop(index)

    def upcoming(self, now: datetime) -> list[Schedule]:
        """Schedules still worth showing at ``now``, soonest first.

        Completed schedules, schedules on earlier days, and schedules from
        today whose end time is before the current minute are left out. The
        rest are sorted by (date, start time); ties keep insertion order.
        """
        today = now.date()
        current_minute = now.time().replace(second=0, microsecond=0)

        def is_upcoming(schedule: Schedule) -> bool:
            if schedule.completed:
                return False
            if schedule.date < today:
                return False
            return not (schedule.date == today and schedule.end_time < current_minute)

        return sorted(filter(is_upcoming, self._schedules), key=lambda schedule: schedule.sort_key)

    def list(self) -> list[Schedule]:
        """All schedules in insertion order."""
        return self._schedules.copy()
