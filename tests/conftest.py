# tests/conftest.py
import os

# Qt widgets and timers need a platform plugin even without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402

from schedule_buddy.models.notification import ReminderNotifier  # noqa: E402
from schedule_buddy.models.reminder_engine import ReminderEngine  # noqa: E402
from schedule_buddy.models.schedule_store import ScheduleStore  # noqa: E402
from schedule_buddy.utils.clock import ManualClock  # noqa: E402
from schedule_buddy.utils.timer_backend import ManualTimerBackend  # noqa: E402

START = datetime(2024, 5, 1, 9, 0)


class RecordingSink:
    """NotificationSink that remembers every notification."""

    def __init__(self):
        self.notifications = []

    def notify(self, title, body, is_repeat):
        self.notifications.append((title, body, is_repeat))

    @property
    def repeat_flags(self):
        return [is_repeat for _title, _body, is_repeat in self.notifications]


class RecordingSound:
    def __init__(self):
        self.plays = 0

    def play(self):
        self.plays += 1


def make_record(clock, start_in, duration=timedelta(minutes=30), content="Team sync", **extra):
    """Schedule record starting ``start_in`` after the clock's current time."""
    start = clock.now() + start_in
    end = start + duration
    record = {
        "date": start.strftime("%Y-%m-%d"),
        "startTime": start.strftime("%H:%M"),
        "endTime": end.strftime("%H:%M"),
        "content": content,
    }
    record.update(extra)
    return record


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def backend(clock):
    return ManualTimerBackend(clock)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def sound():
    return RecordingSound()


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "schedules.json"


@pytest.fixture
def store(data_file):
    return ScheduleStore(data_file)


@pytest.fixture
def engine(store, backend, clock, sink, sound):
    return ReminderEngine(store, backend, ReminderNotifier(sink, sound), clock=clock)
