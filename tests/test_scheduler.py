import asyncio
from datetime import timedelta

import pytest

from petcare.core.clock import SystemClock
from petcare.core.scheduler import Scheduler


def test_periodic_task_fires_at_each_due_time(clock):
    scheduler = Scheduler(clock)
    start = clock.now()
    seen = []
    scheduler.every("tick", 30, lambda: seen.append(clock.now()))

    fired = scheduler.advance(95)

    assert fired == 3
    assert seen == [start + timedelta(seconds=s) for s in (30, 60, 90)]
    assert clock.now() == start + timedelta(seconds=95)


def test_one_shot_task_fires_once(clock):
    scheduler = Scheduler(clock)
    calls = []
    scheduler.call_later("once", 10, lambda: calls.append(1))
    scheduler.advance(100)
    assert calls == [1]
    assert not scheduler.is_scheduled("once")


def test_tasks_fire_in_time_order(clock):
    scheduler = Scheduler(clock)
    order = []
    scheduler.call_later("late", 20, lambda: order.append("late"))
    scheduler.call_later("early", 5, lambda: order.append("early"))
    scheduler.call_later("same-a", 10, lambda: order.append("a"))
    scheduler.call_later("same-b", 10, lambda: order.append("b"))
    scheduler.advance(30)
    assert order == ["early", "a", "b", "late"]


def test_cancel(clock):
    scheduler = Scheduler(clock)
    calls = []
    scheduler.every("tick", 1, lambda: calls.append(1))
    scheduler.advance(3)
    assert scheduler.cancel("tick")
    assert not scheduler.cancel("tick")
    scheduler.advance(10)
    assert len(calls) == 3


def test_periodic_task_can_cancel_itself(clock):
    scheduler = Scheduler(clock)
    calls = []

    def countdown():
        calls.append(1)
        if len(calls) == 2:
            scheduler.cancel("countdown")

    scheduler.every("countdown", 1, countdown)
    scheduler.advance(10)
    assert len(calls) == 2
    assert scheduler.task_names == []


def test_same_name_replaces_existing_task(clock):
    scheduler = Scheduler(clock)
    calls = []
    scheduler.call_later("job", 5, lambda: calls.append("old"))
    scheduler.call_later("job", 8, lambda: calls.append("new"))
    scheduler.advance(10)
    assert calls == ["new"]


def test_cancel_prefix_and_cancel_all(clock):
    scheduler = Scheduler(clock)
    for i in range(3):
        scheduler.call_later(f"action-event-{i}", 5, lambda: None)
    scheduler.every("decay", 30, lambda: None)
    assert scheduler.cancel_prefix("action-event-") == 3
    assert scheduler.task_names == ["decay"]
    scheduler.cancel_all()
    assert scheduler.task_names == []
    assert scheduler.next_due() is None


def test_advance_needs_manual_clock():
    with pytest.raises(TypeError):
        Scheduler(SystemClock()).advance(1)


def test_callback_errors_propagate_from_run_pending(clock):
    scheduler = Scheduler(clock)

    def boom():
        raise RuntimeError("boom")

    scheduler.call_later("boom", 0, boom)
    with pytest.raises(RuntimeError):
        scheduler.run_pending()


def test_async_loop_survives_task_errors_and_stops(clock):
    scheduler = Scheduler(clock)
    calls = []

    def boom():
        raise RuntimeError("boom")

    def stop():
        calls.append("stop")
        scheduler.stop()

    scheduler.call_later("boom", 0, boom)
    scheduler.call_later("stop", 0, stop)

    asyncio.run(asyncio.wait_for(scheduler.run(poll_seconds=0), timeout=5))

    assert calls == ["stop"]
