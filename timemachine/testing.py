"""Test doubles for code that depends on the clock or on timers."""

from __future__ import annotations

import datetime
from typing import Any
from unittest.mock import MagicMock

from .civil import CivilDateTime
from .context import AmbientZoneContext
from .exceptions import InvalidArgumentError
from .machine import TimeMachine
from .maps import UTC_IANA_ID
from .timer import ControllableTimer, Interval, TimerCallback
from .zones import ZoneHandle


class FakeTimeMachine(TimeMachine):
    """A :class:`TimeMachine` whose clock only moves when told to.

    Setting :attr:`current_utc_time` also updates :attr:`current_civil` (viewed
    in :attr:`current_zone`) and the other way around.
    """

    def __init__(
        self,
        context: AmbientZoneContext | None = None,
        current_zone: ZoneHandle | str = UTC_IANA_ID,
        current_utc_time: datetime.datetime | None = None,
    ) -> None:
        if context is None:
            from .services import get_services

            context = get_services().context
        super().__init__(context)
        self._current_zone = self._resolve(current_zone)
        self.current_utc_time = current_utc_time or datetime.datetime.now(datetime.timezone.utc)

    @property
    def current_zone(self) -> ZoneHandle:
        return self._current_zone

    @current_zone.setter
    def current_zone(self, zone: ZoneHandle | str) -> None:
        if zone is None:
            raise InvalidArgumentError("current_zone must not be None")
        self._current_zone = self._resolve(zone)
        self._current_civil = self._current_civil.with_timezone(self._current_zone)

    @property
    def current_utc_time(self) -> datetime.datetime:
        return self._current_utc

    @current_utc_time.setter
    def current_utc_time(self, value: datetime.datetime) -> None:
        if value.tzinfo is None or value.utcoffset() is None:
            raise InvalidArgumentError("current_utc_time must be timezone-aware")
        self._current_utc = value.astimezone(datetime.timezone.utc)
        self._current_civil = CivilDateTime.from_utc(
            self._current_utc, self._current_zone, cache=self.context.cache
        )

    @property
    def current_civil(self) -> CivilDateTime:
        return self._current_civil

    @current_civil.setter
    def current_civil(self, value: CivilDateTime) -> None:
        if not isinstance(value, CivilDateTime):
            raise InvalidArgumentError("current_civil must be a CivilDateTime")
        self._current_civil = value
        self._current_utc = value.to_utc_datetime()

    def now(self, zone: ZoneHandle | str | None = None) -> CivilDateTime:
        """Return the fake current value, viewed in ``zone`` when given."""
        if zone is None:
            return self._current_civil
        return self._current_civil.with_timezone(zone)

    def utc_now(self) -> datetime.datetime:
        return self._current_utc

    def advance(self, delta: datetime.timedelta) -> CivilDateTime:
        """Move the fake clock forward by ``delta`` and return the new value."""
        self.current_utc_time = self._current_utc + delta
        return self._current_civil

    def real_now(self, zone: ZoneHandle | str | None = None) -> CivilDateTime:
        """Return the real current time, bypassing the fake clock."""
        return super().now(zone)

    def real_utc_now(self) -> datetime.datetime:
        return super().utc_now()


class FakeControllableTimer:
    """A timer that never fires on its own.

    Every call is forwarded to :attr:`spy` (a ``MagicMock`` with the
    :class:`ControllableTimer` interface) so tests can assert on it. The armed
    callback is kept so a test can run it with :meth:`fire`.
    """

    def __init__(self) -> None:
        self.spy = MagicMock(spec=ControllableTimer)
        self.spy.change.return_value = True
        self.spy.start.return_value = True
        self.spy.stop.return_value = True
        self._callback: TimerCallback | None = None
        self._state: Any = None
        self._started = False

    @property
    def callback(self) -> TimerCallback | None:
        return self._callback

    @property
    def is_started(self) -> bool:
        return self._started

    def on_callback(self, callback: TimerCallback, state: Any = None, auto_start: bool = True) -> None:
        self.spy.on_callback(callback, state, auto_start)
        self._callback = callback
        self._state = state
        self._started = auto_start

    def change(self, due: Interval, period: Interval | None = None) -> bool:
        return self.spy.change(due, period)

    def start(self) -> bool:
        self._started = True
        return self.spy.start()

    def stop(self) -> bool:
        self._started = False
        return self.spy.stop()

    def dispose(self) -> None:
        self._started = False
        self.spy.dispose()

    def fire(self, state: Any = None) -> Any:
        """Run the armed callback synchronously.

        Args:
            state: Passed to the callback; the armed state when None

        Raises:
            InvalidArgumentError: If no callback is armed.
        """
        if self._callback is None:
            raise InvalidArgumentError("No callback armed; call on_callback() first")
        return self._callback(self._state if state is None else state)

    def __enter__(self) -> FakeControllableTimer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class FakeControllableTimerFactory:
    """Hands out :class:`FakeControllableTimer` objects and remembers them."""

    def __init__(self) -> None:
        self.created: list[FakeControllableTimer] = []

    def create(self) -> FakeControllableTimer:
        timer = FakeControllableTimer()
        self.created.append(timer)
        return timer
