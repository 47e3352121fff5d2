"""
Unit tests for advance schedulers.

The pyglet scheduler is tested against a fake clock, so no window or event
loop is needed.
"""

import pytest
from trialflow.execution.engine import TimelineEngine
from trialflow.execution.node import TimelineNode
from trialflow.execution.scheduling import (
    ImmediateScheduler, PygletScheduler, create_scheduler
)
from conftest import RecordingRunner, make_trial


class FakeClock:
    """Collects schedule_once() calls like pyglet.clock."""

    def __init__(self):
        self.scheduled = []

    def schedule_once(self, func, delay):
        self.scheduled.append((func, delay))

    def tick(self):
        """Run everything scheduled so far; return how many ran."""
        due, self.scheduled = self.scheduled, []
        for func, delay in due:
            func(delay)
        return len(due)


# ==================== IMMEDIATE SCHEDULER ====================

@pytest.mark.unit
def test_immediate_runs_callback_now():
    scheduler = ImmediateScheduler()
    calls = []

    scheduler.call_soon(lambda: calls.append('a'))

    assert calls == ['a']
    assert scheduler.pending == 0


@pytest.mark.unit
def test_immediate_queues_nested_calls():
    """Callbacks scheduled from a running callback run after it returns."""
    scheduler = ImmediateScheduler()
    events = []

    def outer():
        events.append('outer start')
        scheduler.call_soon(lambda: events.append('inner'))
        events.append('outer end')

    scheduler.call_soon(outer)

    assert events == ['outer start', 'outer end', 'inner']


@pytest.mark.unit
def test_immediate_clears_queue_on_error():
    """An exception propagates and drops the callbacks still queued."""
    scheduler = ImmediateScheduler()
    calls = []

    def failing():
        scheduler.call_soon(lambda: calls.append('never'))
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        scheduler.call_soon(failing)

    assert scheduler.pending == 0
    assert calls == []

    scheduler.call_soon(lambda: calls.append('later'))
    assert calls == ['later']


# ==================== PYGLET SCHEDULER ====================

@pytest.mark.unit
def test_pyglet_scheduler_defers_to_clock():
    clock = FakeClock()
    scheduler = PygletScheduler(clock)
    calls = []

    scheduler.call_soon(lambda: calls.append(1))

    assert calls == []
    assert clock.scheduled[0][1] == 0.0
    clock.tick()
    assert calls == [1]


@pytest.mark.unit
def test_engine_on_pyglet_scheduler_advances_per_tick():
    """Each completion schedules one advance on the clock."""
    clock = FakeClock()
    runner = RecordingRunner()
    engine = TimelineEngine(runner, scheduler=PygletScheduler(clock))

    engine.start([TimelineNode([make_trial('a'), make_trial('b')])])
    assert runner.executed == []

    ticks = 0
    while clock.tick():
        ticks += 1

    assert runner.stimuli == ['a', 'b']
    assert engine.is_finished()
    assert ticks == 3


# ==================== FACTORY ====================

@pytest.mark.unit
def test_create_scheduler():
    assert isinstance(create_scheduler('immediate'), ImmediateScheduler)

    with pytest.raises(ValueError, match="Unknown scheduler"):
        create_scheduler('threads')
