"""A timer whose callback, schedule and lifetime can be controlled explicitly.

Each armed :class:`ControllableTimer` owns one daemon worker thread. The
thread sleeps on a :class:`threading.Condition` until the next deadline,
runs the callback outside the lock, and goes back to sleep. ``dispose()``
waits for an in-flight callback to finish before it returns, unless it is
called from inside that callback.
"""

from __future__ import annotations

import datetime
import logging
import math
import threading
import time
from collections.abc import Callable
from typing import Any

from .exceptions import InvalidArgumentError, InvalidOperationError, ObjectDisposedError

logger = logging.getLogger(__name__)

#: Due time or period meaning "never".
INFINITE: float = math.inf

TimerCallback = Callable[[Any], Any]
Interval = float | int | datetime.timedelta


def to_seconds(value: Interval, name: str) -> float:
    """Normalize a due time or period to seconds.

    ``datetime.timedelta.max`` and :data:`INFINITE` both map to ``math.inf``.

    Raises:
        InvalidArgumentError: If the value is negative or of the wrong type.
    """
    if isinstance(value, datetime.timedelta):
        seconds = math.inf if value == datetime.timedelta.max else value.total_seconds()
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        raise InvalidArgumentError(f"{name} must be seconds or a timedelta, got {type(value).__name__}")
    if math.isnan(seconds) or seconds < 0:
        raise InvalidArgumentError(f"{name} must not be negative, got {value!r}")
    return seconds


class ControllableTimer:
    """Thread-backed timer with explicit arm, start, stop and dispose.

    A new timer is unarmed and has an infinite due time and period. Arm it
    with :meth:`on_callback`, give it a schedule with :meth:`change`, and run
    it with :meth:`start`. A period of ``0`` fires once.

    Callbacks never overlap. When a callback outlasts the period, the next tick
    runs as soon as it returns and any further missed ticks are skipped.
    """

    def __init__(self, name: str = "timemachine-timer") -> None:
        self._name = name
        self._cond = threading.Condition()
        self._thread: threading.Thread | None = None
        self._callback: TimerCallback | None = None
        self._state: Any = None
        self._due = INFINITE
        self._period = INFINITE
        self._deadline: float | None = None
        self._started = False
        self._in_flight = 0
        self._disposed = False

    @property
    def callback(self) -> TimerCallback | None:
        """The armed callback, or None when the timer is unarmed."""
        return self._callback

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def due(self) -> float:
        return self._due

    @property
    def period(self) -> float:
        return self._period

    def on_callback(self, callback: TimerCallback, state: Any = None, auto_start: bool = True) -> None:
        """Arm the timer, replacing any previously armed callback.

        Args:
            callback: Called with ``state`` on every tick
            state: Value passed to the callback
            auto_start: Mark the timer started and schedule it right away if
                a finite due time is already set

        Raises:
            InvalidArgumentError: If ``callback`` is None or not callable.
            ObjectDisposedError: If the timer was disposed.
        """
        if callback is None or not callable(callback):
            raise InvalidArgumentError("callback must be a callable")

        with self._cond:
            self._check_disposed()
            self._callback = callback
            self._state = state
            self._started = auto_start
            self._deadline = None
            if auto_start:
                self._schedule()
            self._ensure_worker()
            self._cond.notify_all()
        logger.debug("Armed timer %s (auto_start=%s)", self._name, auto_start)

    def change(self, due: Interval, period: Interval | None = None) -> bool:
        """Set a new due time and period.

        A started timer is rescheduled immediately; a stopped one keeps the
        values for the next :meth:`start`.

        Args:
            due: Delay before the first tick, in seconds or as a timedelta
            period: Interval between ticks; ``None`` reuses ``due``

        Returns:
            False when the timer is not armed, True otherwise.

        Raises:
            InvalidOperationError: If ``due`` or ``period`` is infinite.
            InvalidArgumentError: If ``due`` or ``period`` is negative.
            ObjectDisposedError: If the timer was disposed.
        """
        due_seconds = to_seconds(due, "due")
        period_seconds = due_seconds if period is None else to_seconds(period, "period")

        with self._cond:
            self._check_disposed()
            if math.isinf(due_seconds) or math.isinf(period_seconds):
                raise InvalidOperationError(
                    "Timer with infinite due time or period cannot be started."
                )
            if self._callback is None:
                return False
            self._due = due_seconds
            self._period = period_seconds
            if self._started:
                self._schedule()
                self._cond.notify_all()
            return True

    def start(self) -> bool:
        """Start the timer with its current due time and period.

        Raises:
            InvalidOperationError: If the due time or period is infinite, or
                the timer is not armed.
            ObjectDisposedError: If the timer was disposed.
        """
        with self._cond:
            self._check_disposed()
            if math.isinf(self._due) or math.isinf(self._period):
                raise InvalidOperationError(
                    "Timer with infinite due time or period cannot be started."
                )
            if self._callback is None:
                raise InvalidOperationError(
                    "Timer is not initialized. Use on_callback() to initialize the timer."
                )
            self._started = True
            self._schedule()
            self._cond.notify_all()
            return True

    def stop(self) -> bool:
        """Stop the timer, keeping its callback and schedule.

        Returns:
            False when the timer is not armed, True otherwise.
        """
        with self._cond:
            self._check_disposed()
            if self._callback is None:
                return False
            self._started = False
            self._deadline = None
            self._cond.notify_all()
            return True

    def dispose(self) -> None:
        """Stop the timer for good and release its worker thread.

        Safe to call more than once. Blocks until an in-flight callback has
        finished, unless called from that callback.
        """
        in_worker = threading.current_thread() is self._thread
        with self._cond:
            if self._disposed:
                return
            self._disposed = True
            self._started = False
            self._deadline = None
            self._due = INFINITE
            self._period = INFINITE
            self._cond.notify_all()
            if not in_worker:
                self._cond.wait_for(lambda: self._in_flight == 0)
            thread = self._thread
            self._thread = None

        if thread is not None and not in_worker:
            thread.join()
        logger.debug("Disposed timer %s", self._name)

    def __enter__(self) -> ControllableTimer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def _check_disposed(self) -> None:
        if self._disposed:
            raise ObjectDisposedError(type(self).__name__)

    def _schedule(self) -> None:
        # Caller holds self._cond
        if math.isinf(self._due):
            self._deadline = None
        else:
            self._deadline = time.monotonic() + self._due

    def _ensure_worker(self) -> None:
        # Caller holds self._cond
        if self._thread is None:
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def _next_tick(self) -> tuple[TimerCallback, Any] | None:
        """Wait for the next deadline. Returns None once disposed."""
        # Caller holds self._cond
        while not self._disposed:
            if self._deadline is None:
                self._cond.wait()
                continue
            remaining = self._deadline - time.monotonic()
            if remaining > 0:
                self._cond.wait(remaining)
                continue

            if self._period > 0 and not math.isinf(self._period):
                # Missed ticks are dropped, not replayed back to back
                now = time.monotonic()
                self._deadline += self._period
                if self._deadline <= now:
                    self._deadline = now + self._period
            else:
                self._deadline = None
            return self._callback, self._state
        return None

    def _run(self) -> None:
        while True:
            with self._cond:
                tick = self._next_tick()
                if tick is None:
                    return
                self._in_flight += 1

            callback, state = tick
            try:
                callback(state)
            except Exception:
                logger.warning("Timer %s callback raised", self._name, exc_info=True)
            finally:
                with self._cond:
                    self._in_flight -= 1
                    self._cond.notify_all()


class ControllableTimerFactory:
    """Creates :class:`ControllableTimer` instances."""

    def __init__(self, name_prefix: str = "timemachine-timer") -> None:
        self._name_prefix = name_prefix
        self._counter = 0
        self._lock = threading.Lock()

    def create(self) -> ControllableTimer:
        with self._lock:
            self._counter += 1
            name = f"{self._name_prefix}-{self._counter}"
        return ControllableTimer(name=name)
