# tests/test_qt_timer_backend.py
from datetime import datetime, timedelta

import pytest
from PyQt6.QtCore import QCoreApplication, QEvent, Qt

from schedule_buddy.utils.clock import ManualClock
from schedule_buddy.utils.qt_timer_backend import MAX_QTIMER_INTERVAL_MS, QtOneShotTimer, QtTimerBackend

from conftest import START


@pytest.fixture
def qt_backend(qapp):
    backend = QtTimerBackend()
    yield backend
    backend.deleteLater()


def test_one_shot_fires_on_event_loop(qtbot, qt_backend):
    fired = []
    timer = qt_backend.call_at(datetime.now() + timedelta(milliseconds=50), lambda: fired.append(1))

    qtbot.waitUntil(lambda: fired == [1], timeout=2000)
    assert not timer.active


def test_cancelled_one_shot_never_fires(qtbot, qt_backend):
    fired = []
    timer = qt_backend.call_at(datetime.now() + timedelta(milliseconds=50), lambda: fired.append(1))

    timer.cancel()
    timer.cancel()
    qtbot.wait(200)

    assert fired == []
    assert not timer.active


def test_recurring_timer_fires_until_cancelled(qtbot, qt_backend):
    fired = []
    timer = qt_backend.call_every(timedelta(milliseconds=30), lambda: fired.append(1))

    qtbot.waitUntil(lambda: len(fired) >= 2, timeout=2000)
    timer.cancel()
    count = len(fired)
    qtbot.wait(150)

    assert len(fired) == count


def test_recurring_interval_must_be_positive(qt_backend):
    with pytest.raises(ValueError):
        qt_backend.call_every(timedelta(0), lambda: None)


def test_one_shot_waits_for_clock_to_reach_fire_time(qtbot, qapp):
    clock = ManualClock(START)
    backend = QtTimerBackend(clock)
    fired = []
    timer = backend.call_at(START + timedelta(milliseconds=20), lambda: fired.append(clock.now()))

    # The manual clock does not move, so each hop wakes early and waits again
    qtbot.waitUntil(lambda: timer.hops >= 3, timeout=2000)
    assert fired == []

    clock.advance(timedelta(milliseconds=20))
    qtbot.waitUntil(lambda: len(fired) == 1, timeout=2000)
    assert fired == [START + timedelta(milliseconds=20)]


def test_far_future_instant_is_reached_in_capped_hops(qapp):
    clock = ManualClock(START)
    backend = QtTimerBackend(clock)
    timer = backend.call_at(START + timedelta(days=60), lambda: None)

    assert timer._remaining_ms() == MAX_QTIMER_INTERVAL_MS
    assert timer._timer.interval() == MAX_QTIMER_INTERVAL_MS

    timer.cancel()


def test_fired_one_shot_is_released(qtbot, qt_backend):
    fired = []
    timer = qt_backend.call_at(datetime.now() + timedelta(milliseconds=20), lambda: fired.append(1))

    qtbot.waitUntil(lambda: fired == [1], timeout=2000)
    QCoreApplication.sendPostedEvents(None, QEvent.Type.DeferredDelete.value)

    assert qt_backend.findChildren(QtOneShotTimer) == []
    # A cancel after the fire is still harmless
    timer.cancel()


def test_recurring_timer_is_precise(qt_backend):
    timer = qt_backend.call_every(timedelta(minutes=5), lambda: None)

    assert timer._timer.timerType() == Qt.TimerType.PreciseTimer

    timer.cancel()
