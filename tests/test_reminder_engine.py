# tests/test_reminder_engine.py
import json
from datetime import timedelta

import pytest

from schedule_buddy.models.errors import NotFoundError, ValidationError
from schedule_buddy.models.notification import REMINDER_TITLE, REPEAT_REMINDER_TITLE, ReminderNotifier
from schedule_buddy.models.reminder_engine import (
    ReminderEngine,
    ReminderPlan,
    ReminderState,
    RepeatAction,
    plan_reminder,
    repeat_tick_action,
)
from schedule_buddy.models.schedule import Schedule
from schedule_buddy.models.schedule_store import ScheduleStore

from conftest import START, make_record

MINUTE = timedelta(minutes=1)


def build_schedule(clock, start_in, **extra):
    return Schedule.from_dict(make_record(clock, start_in, **extra), generate_id=True)


# ----------------------------------------------------------------------
# Pure decisions
# ----------------------------------------------------------------------


def test_plan_arms_when_pre_event_instant_is_ahead(clock):
    schedule = build_schedule(clock, 20 * MINUTE)

    assert plan_reminder(schedule, clock.now()) == ReminderPlan(
        ReminderState.ARMED_PRE_EVENT, fire_at=START + 5 * MINUTE
    )


@pytest.mark.parametrize("start_in", [15 * MINUTE, 10 * MINUTE, -5 * MINUTE])
def test_plan_is_idle_once_pre_event_instant_has_passed(clock, start_in):
    schedule = build_schedule(clock, start_in)

    assert plan_reminder(schedule, clock.now()).state is ReminderState.IDLE


def test_plan_catch_up_only_before_event_start(clock):
    assert plan_reminder(build_schedule(clock, 10 * MINUTE), clock.now(), catch_up=True).state is (
        ReminderState.REPEATING
    )
    assert plan_reminder(build_schedule(clock, 0 * MINUTE), clock.now(), catch_up=True).state is ReminderState.IDLE


def test_plan_completed_is_idle(clock):
    schedule = build_schedule(clock, 60 * MINUTE, completed=True)

    assert plan_reminder(schedule, clock.now()).state is ReminderState.IDLE


def test_repeat_tick_action(clock):
    schedule = build_schedule(clock, 10 * MINUTE)

    assert repeat_tick_action(schedule, clock.now()) is RepeatAction.NOTIFY
    assert repeat_tick_action(schedule, START + 10 * MINUTE) is RepeatAction.STOP
    assert repeat_tick_action(schedule.with_completed(), clock.now()) is RepeatAction.STOP
    assert repeat_tick_action(None, clock.now()) is RepeatAction.STOP


# ----------------------------------------------------------------------
# Timer state
# ----------------------------------------------------------------------


def test_start_reminder_installs_single_pre_event_timer(engine, clock, backend):
    schedule = build_schedule(clock, 40 * MINUTE)
    engine.store.add(schedule)

    state = engine.start_reminder(schedule)

    bundle = engine.registry.bundle(schedule.id)
    assert state is ReminderState.ARMED_PRE_EVENT
    assert bundle.arm is not None and bundle.arm.active
    assert bundle.repeat is None
    assert bundle.fire_at == schedule.event_start - timedelta(minutes=15)
    assert engine.registry.live_timer_count(schedule.id) == 1
    assert len(backend.pending) == 1


def test_start_reminder_twice_keeps_one_chain(engine, clock, backend):
    schedule = build_schedule(clock, 40 * MINUTE)
    engine.store.add(schedule)

    engine.start_reminder(schedule)
    engine.start_reminder(schedule)

    assert len(backend.pending) == 1


def test_pre_event_fire_moves_to_repeating(engine, clock, backend, sink):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE))

    backend.advance(5 * MINUTE)

    bundle = engine.registry.bundle(schedule.id)
    assert engine.state_of(schedule.id) is ReminderState.REPEATING
    assert bundle.arm is None
    assert bundle.repeat is not None and bundle.repeat.active
    assert engine.registry.live_timer_count(schedule.id) == 1
    assert sink.repeat_flags == [False]


def test_full_reminder_cycle(engine, clock, backend, sink, sound):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE, content="Team sync"))

    assert engine.state_of(schedule.id) is ReminderState.ARMED_PRE_EVENT
    assert sink.notifications == []

    backend.advance(5 * MINUTE)
    assert sink.notifications == [(REMINDER_TITLE, "Team sync\nTime: 9:20 AM - 9:50 AM", False)]

    backend.advance(5 * MINUTE)
    backend.advance(5 * MINUTE)
    assert sink.repeat_flags == [False, True, True]
    assert sink.notifications[-1][0] == REPEAT_REMINDER_TITLE
    assert engine.state_of(schedule.id) is ReminderState.REPEATING

    # The tick at the event start stops the chain without notifying
    backend.advance(5 * MINUTE)
    assert sink.repeat_flags == [False, True, True]
    assert engine.state_of(schedule.id) is ReminderState.IDLE
    assert not engine.registry.has_timers(schedule.id)
    assert backend.pending == []
    assert sound.plays == 3

    backend.advance(timedelta(hours=2))
    assert len(sink.notifications) == 3


def test_stop_reminder_is_idempotent(engine, clock, backend):
    schedule = engine.add_schedule(make_record(clock, 40 * MINUTE))

    for _ in range(3):
        engine.stop_reminder(schedule.id)
        assert engine.registry.live_timer_count(schedule.id) == 0

    engine.stop_reminder("unknown")
    assert backend.pending == []


def test_late_schedule_stays_idle_without_notifying(engine, clock, backend, sink):
    schedule = engine.add_schedule(make_record(clock, 10 * MINUTE))

    assert engine.state_of(schedule.id) is ReminderState.IDLE
    assert not engine.registry.has_timers(schedule.id)
    assert sink.notifications == []

    backend.advance(timedelta(hours=1))
    assert sink.notifications == []


def test_completed_schedule_is_not_armed(engine, clock):
    schedule = engine.add_schedule(make_record(clock, 60 * MINUTE, completed=True))

    assert engine.state_of(schedule.id) is ReminderState.IDLE


# ----------------------------------------------------------------------
# Mutations
# ----------------------------------------------------------------------


def test_add_schedule_saves(engine, clock, data_file):
    schedule = engine.add_schedule(make_record(clock, 60 * MINUTE))

    assert [record["id"] for record in json.loads(data_file.read_text(encoding="utf-8"))] == [schedule.id]


def test_add_invalid_schedule_changes_nothing(engine, clock, backend, data_file):
    record = make_record(clock, 60 * MINUTE)
    record["endTime"] = record["startTime"]

    with pytest.raises(ValidationError):
        engine.add_schedule(record)
    assert engine.get_schedules() == []
    assert backend.pending == []
    assert not data_file.exists()


def test_update_pushing_start_later_replaces_timer_chain(engine, clock, backend, sink):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE))
    later = make_record(clock, 60 * MINUTE)

    engine.update_schedule(schedule.id, {"startTime": later["startTime"], "endTime": later["endTime"]})

    assert len(backend.pending) == 1
    assert engine.registry.bundle(schedule.id).fire_at == START + 45 * MINUTE

    backend.advance(30 * MINUTE)
    assert sink.notifications == []

    backend.advance(15 * MINUTE)
    assert sink.repeat_flags == [False]


def test_update_while_repeating_rearms(engine, clock, backend, sink):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE))
    backend.advance(5 * MINUTE)
    assert engine.state_of(schedule.id) is ReminderState.REPEATING

    later = make_record(clock, 60 * MINUTE)
    engine.update_schedule(schedule.id, {"startTime": later["startTime"], "endTime": later["endTime"]})

    assert engine.state_of(schedule.id) is ReminderState.ARMED_PRE_EVENT
    backend.advance(10 * MINUTE)
    assert sink.repeat_flags == [False]


def test_rejected_update_keeps_timers(engine, clock, backend):
    schedule = engine.add_schedule(make_record(clock, 40 * MINUTE))
    generation = engine.registry.generation(schedule.id)

    with pytest.raises(ValidationError):
        engine.update_schedule(schedule.id, {"startTime": "23:59"})
    assert engine.registry.generation(schedule.id) == generation
    assert len(backend.pending) == 1


def test_completing_schedule_stops_reminders(engine, clock, backend, sink):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE))
    backend.advance(5 * MINUTE)

    engine.complete_schedule(schedule.id)

    assert engine.state_of(schedule.id) is ReminderState.IDLE
    backend.advance(timedelta(hours=1))
    assert sink.repeat_flags == [False]


def test_delete_cancels_timers(engine, clock, backend, sink, data_file):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE))

    removed = engine.delete_schedule(schedule.id)

    assert removed == schedule
    assert backend.pending == []
    backend.advance(timedelta(hours=1))
    assert sink.notifications == []
    assert json.loads(data_file.read_text(encoding="utf-8")) == []


def test_unknown_ids_raise_not_found(engine):
    with pytest.raises(NotFoundError):
        engine.update_schedule("missing", {"content": "x"})
    with pytest.raises(NotFoundError):
        engine.delete_schedule("missing")


def test_stale_timer_callback_is_ignored(engine, clock, sink):
    schedule = engine.add_schedule(make_record(clock, 40 * MINUTE))
    stale_generation = engine.registry.generation(schedule.id)
    engine.start_reminder(schedule)

    engine._on_pre_event_fired(schedule.id, stale_generation)
    engine._on_repeat_tick(schedule.id, stale_generation)

    assert sink.notifications == []
    assert engine.state_of(schedule.id) is ReminderState.ARMED_PRE_EVENT


def test_timer_fire_reads_current_schedule(engine, clock, backend, sink):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE, content="Old title"))
    engine.store.update(schedule.id, {"content": "New title"})

    backend.advance(5 * MINUTE)

    assert sink.notifications[0][1].startswith("New title\n")


def test_failing_sink_does_not_break_transition(store, backend, clock, sound):
    class BrokenSink:
        def notify(self, title, body, is_repeat):
            raise OSError("notification daemon gone")

    engine = ReminderEngine(store, backend, ReminderNotifier(BrokenSink(), sound), clock=clock)
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE))

    backend.advance(5 * MINUTE)

    assert engine.state_of(schedule.id) is ReminderState.REPEATING
    assert engine.notifier.failed == 1
    assert sound.plays == 1


def test_failed_save_does_not_abort_add(tmp_path, backend, clock, sink):
    directory = tmp_path / "occupied"
    directory.mkdir()
    engine = ReminderEngine(ScheduleStore(directory), backend, ReminderNotifier(sink), clock=clock)

    schedule = engine.add_schedule(make_record(clock, 40 * MINUTE))

    assert engine.state_of(schedule.id) is ReminderState.ARMED_PRE_EVENT


# ----------------------------------------------------------------------
# Startup and re-evaluation
# ----------------------------------------------------------------------


def write_schedules(data_file, records):
    data_file.write_text(json.dumps(records), encoding="utf-8")


def test_start_derives_states_from_clock(engine, clock, data_file):
    records = [
        make_record(clock, 60 * MINUTE, id="future"),
        make_record(clock, 10 * MINUTE, id="missed-first"),
        make_record(clock, -60 * MINUTE, id="past"),
        make_record(clock, 60 * MINUTE, id="done", completed=True),
    ]
    write_schedules(data_file, records)

    active = engine.start()

    assert active == 2
    assert engine.state_of("future") is ReminderState.ARMED_PRE_EVENT
    assert engine.state_of("missed-first") is ReminderState.REPEATING
    assert engine.state_of("past") is ReminderState.IDLE
    assert engine.state_of("done") is ReminderState.IDLE


def test_startup_catch_up_repeats_without_immediate_notification(engine, clock, backend, sink, data_file):
    write_schedules(data_file, [make_record(clock, 10 * MINUTE, id="missed-first")])

    engine.start()
    assert sink.notifications == []

    backend.advance(5 * MINUTE)
    assert sink.repeat_flags == [True]

    backend.advance(5 * MINUTE)
    assert sink.repeat_flags == [True]
    assert engine.state_of("missed-first") is ReminderState.IDLE


def test_startup_without_catch_up_leaves_missed_schedules_idle(store, backend, clock, sink, data_file):
    write_schedules(data_file, [make_record(clock, 10 * MINUTE, id="missed-first")])
    engine = ReminderEngine(store, backend, ReminderNotifier(sink), clock=clock, catch_up_on_startup=False)

    assert engine.start() == 0
    assert engine.state_of("missed-first") is ReminderState.IDLE


def test_start_with_corrupt_file_starts_empty(engine, data_file):
    data_file.write_text("[{broken", encoding="utf-8")

    assert engine.start() == 0
    assert engine.get_schedules() == []


def test_reconcile_arms_after_clock_moves_back(engine, clock):
    schedule = engine.add_schedule(make_record(clock, 10 * MINUTE))
    assert engine.state_of(schedule.id) is ReminderState.IDLE

    clock.set(START - 30 * MINUTE)

    assert engine.reconcile() == 1
    assert engine.state_of(schedule.id) is ReminderState.ARMED_PRE_EVENT
    assert engine.reconcile() == 0


def test_reconcile_stops_repeating_after_clock_jump(engine, clock, backend):
    schedule = engine.add_schedule(make_record(clock, 20 * MINUTE))
    backend.advance(5 * MINUTE)

    clock.set(START + 25 * MINUTE)

    assert engine.reconcile() == 1
    assert engine.state_of(schedule.id) is ReminderState.IDLE


def test_reconcile_rearms_mismatched_chain(engine, clock):
    schedule = engine.add_schedule(make_record(clock, 40 * MINUTE))
    later = make_record(clock, 90 * MINUTE)
    engine.store.update(schedule.id, {"startTime": later["startTime"], "endTime": later["endTime"]})

    assert engine.reconcile() == 1
    assert engine.registry.bundle(schedule.id).fire_at == START + 75 * MINUTE


def test_upcoming_uses_engine_clock(engine, clock):
    engine.add_schedule(make_record(clock, 120 * MINUTE, id="later"))
    engine.add_schedule(make_record(clock, 60 * MINUTE, id="sooner"))
    engine.add_schedule(make_record(clock, -120 * MINUTE, duration=30 * MINUTE, id="over"))

    assert [schedule.id for schedule in engine.get_upcoming_schedules()] == ["sooner", "later"]


def test_shutdown_cancels_everything(engine, clock, backend):
    engine.add_schedule(make_record(clock, 40 * MINUTE))
    engine.add_schedule(make_record(clock, 80 * MINUTE))

    engine.shutdown()

    assert backend.pending == []
    assert len(engine.registry) == 0
