"""Unit tests for timemachine.timer module.

These tests run real worker threads with short due times; every wait has a
timeout so a broken timer fails the test instead of hanging the suite.
"""

import datetime
import logging
import threading
import time

import pytest

from timemachine.exceptions import (
    InvalidArgumentError,
    InvalidOperationError,
    ObjectDisposedError,
)
from timemachine.timer import INFINITE, ControllableTimer, ControllableTimerFactory, to_seconds

pytestmark = pytest.mark.unit

WAIT = 2.0


@pytest.fixture
def timer():
    timer = ControllableTimer()
    yield timer
    timer.dispose()


class TestToSeconds:
    """Tests for interval normalization."""

    def test_accepts_numbers_and_timedelta(self):
        assert to_seconds(1, "due") == 1.0
        assert to_seconds(0.25, "due") == 0.25
        assert to_seconds(datetime.timedelta(milliseconds=1500), "due") == 1.5

    def test_infinite_values(self):
        assert to_seconds(INFINITE, "due") == INFINITE
        assert to_seconds(datetime.timedelta.max, "due") == INFINITE

    @pytest.mark.parametrize("value", [-1, -0.5, datetime.timedelta(seconds=-1), float("nan")])
    def test_rejects_negative(self, value):
        with pytest.raises(InvalidArgumentError):
            to_seconds(value, "due")

    @pytest.mark.parametrize("value", ["1", None, True])
    def test_rejects_wrong_type(self, value):
        with pytest.raises(InvalidArgumentError):
            to_seconds(value, "due")


class TestArming:
    """Tests for on_callback, change, start and stop."""

    def test_new_timer_is_unarmed(self, timer):
        assert timer.callback is None
        assert not timer.is_started
        assert timer.change(1) is False
        assert timer.stop() is False

    def test_start_unarmed_raises(self, timer):
        timer._due = 1.0
        timer._period = 1.0

        with pytest.raises(InvalidOperationError, match="not initialized"):
            timer.start()

    def test_start_with_infinite_due_raises(self, timer):
        timer.on_callback(lambda state: None, auto_start=False)

        with pytest.raises(InvalidOperationError, match="infinite"):
            timer.start()

    def test_change_with_infinite_raises(self, timer):
        timer.on_callback(lambda state: None)

        with pytest.raises(InvalidOperationError):
            timer.change(INFINITE)
        with pytest.raises(InvalidOperationError):
            timer.change(1, INFINITE)

    def test_change_negative_raises(self, timer):
        timer.on_callback(lambda state: None)

        with pytest.raises(InvalidArgumentError):
            timer.change(-1)

    @pytest.mark.parametrize("callback", [None, "not callable"])
    def test_on_callback_rejects_non_callable(self, timer, callback):
        with pytest.raises(InvalidArgumentError):
            timer.on_callback(callback)

    def test_auto_start_marks_started(self, timer):
        def callback(state):
            return None

        timer.on_callback(callback)

        assert timer.is_started
        assert timer.callback is callback

    def test_change_without_period_reuses_due(self, timer):
        timer.on_callback(lambda state: None, auto_start=False)

        assert timer.change(datetime.timedelta(seconds=30)) is True
        assert timer.due == 30.0
        assert timer.period == 30.0

    def test_stop_keeps_callback(self, timer):
        def callback(state):
            return None

        timer.on_callback(callback)

        assert timer.stop() is True
        assert not timer.is_started
        assert timer.callback is callback


class TestFiring:
    """Tests for callbacks running on the worker thread."""

    def test_one_shot_fires_once_with_state(self, timer):
        calls = []
        fired = threading.Event()

        def callback(state):
            calls.append(state)
            fired.set()

        timer.on_callback(callback, state="payload", auto_start=False)
        timer.change(0.01, 0)
        timer.start()

        assert fired.wait(WAIT)
        time.sleep(0.05)
        assert calls == ["payload"]

    def test_change_on_started_timer_reschedules(self, timer):
        fired = threading.Event()
        timer.on_callback(lambda state: fired.set())

        assert timer.change(0.01, 0) is True
        assert fired.wait(WAIT)

    def test_change_on_stopped_timer_does_not_fire(self, timer):
        fired = threading.Event()
        timer.on_callback(lambda state: fired.set(), auto_start=False)

        timer.change(0.01, 0)

        assert not fired.wait(0.1)

    def test_periodic_timer_fires_repeatedly(self, timer):
        ticks = []
        enough = threading.Event()

        def callback(state):
            ticks.append(time.monotonic())
            if len(ticks) >= 3:
                enough.set()

        timer.on_callback(callback, auto_start=False)
        timer.change(0.01, 0.01)
        timer.start()

        assert enough.wait(WAIT)

    def test_stop_prevents_further_ticks(self, timer):
        fired = threading.Event()
        timer.on_callback(lambda state: fired.set(), auto_start=False)
        timer.change(0.2, 0)
        timer.start()

        timer.stop()

        assert not fired.wait(0.4)

    def test_callback_error_is_logged_and_timer_keeps_running(self, timer, caplog):
        count = []
        survived = threading.Event()

        def callback(state):
            count.append(1)
            if len(count) == 1:
                raise ValueError("callback failure")
            survived.set()

        with caplog.at_level(logging.WARNING, logger="timemachine.timer"):
            timer.on_callback(callback, auto_start=False)
            timer.change(0.01, 0.01)
            timer.start()
            assert survived.wait(WAIT)

        assert any("callback raised" in record.getMessage() for record in caplog.records)

    def test_slow_callback_does_not_replay_missed_ticks(self, timer):
        starts = []
        enough = threading.Event()

        def callback(state):
            starts.append(time.monotonic())
            if len(starts) == 1:
                time.sleep(0.3)
            if len(starts) >= 4:
                enough.set()

        timer.on_callback(callback, auto_start=False)
        timer.change(0.01, 0.05)
        timer.start()

        assert enough.wait(WAIT)
        gaps = [later - earlier for earlier, later in zip(starts[1:], starts[2:4])]
        assert all(gap >= 0.03 for gap in gaps)

    def test_rearming_replaces_callback(self, timer):
        first = threading.Event()
        second = threading.Event()
        timer.on_callback(lambda state: first.set(), auto_start=False)
        timer.change(0.05, 0)

        timer.on_callback(lambda state: second.set())
        timer.change(0.01, 0)

        assert second.wait(WAIT)
        assert not first.is_set()


class TestDispose:
    """Tests for dispose semantics."""

    def test_dispose_is_idempotent(self):
        timer = ControllableTimer()
        timer.on_callback(lambda state: None)

        timer.dispose()
        timer.dispose()

        assert timer.is_disposed
        assert not timer.is_started

    def test_calls_after_dispose_raise(self):
        timer = ControllableTimer()
        timer.dispose()

        with pytest.raises(ObjectDisposedError, match="ControllableTimer"):
            timer.on_callback(lambda state: None)
        with pytest.raises(ObjectDisposedError):
            timer.change(1)
        with pytest.raises(ObjectDisposedError):
            timer.start()
        with pytest.raises(ObjectDisposedError):
            timer.stop()

    def test_dispose_waits_for_in_flight_callback(self):
        timer = ControllableTimer()
        entered = threading.Event()
        finished = []

        def callback(state):
            entered.set()
            time.sleep(0.2)
            finished.append(True)

        timer.on_callback(callback, auto_start=False)
        timer.change(0.01, 0)
        timer.start()
        assert entered.wait(WAIT)

        timer.dispose()

        assert finished == [True]

    def test_dispose_from_inside_callback_does_not_deadlock(self):
        timer = ControllableTimer()
        done = threading.Event()

        def callback(state):
            timer.dispose()
            done.set()

        timer.on_callback(callback, auto_start=False)
        timer.change(0.01, 0)
        timer.start()

        assert done.wait(WAIT)
        assert timer.is_disposed

    def test_context_manager_disposes(self):
        with ControllableTimer() as timer:
            timer.on_callback(lambda state: None)

        assert timer.is_disposed


class TestControllableTimerFactory:
    """Tests for the timer factory."""

    def test_create_returns_distinct_named_timers(self):
        factory = ControllableTimerFactory()

        first = factory.create()
        second = factory.create()

        assert first is not second
        assert isinstance(first, ControllableTimer)
        assert first._name != second._name
        first.dispose()
        second.dispose()
