"""Calendar systems and weekday helpers.

Calendar math is not implemented here. Each :class:`CalendarSystem` adapts an
engine (``datetime``/``calendar`` for Gregorian, ``jdatetime`` for Persian) to
the small surface the rest of the package needs: converting between a
Gregorian date and the calendar's own (year, month, day), the number of days
in a month, and month/year addition with the day clamped to the target month.
"""

from __future__ import annotations

import calendar as _stdlib_calendar
import datetime
from abc import ABC, abstractmethod
from enum import IntEnum
from functools import lru_cache

import jdatetime

from .exceptions import InvalidArgumentError


class DayOfWeek(IntEnum):
    """Days of the week, numbered from Sunday like most locale data."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_date(cls, value: datetime.date) -> DayOfWeek:
        """Return the weekday of a Gregorian ``date`` or ``datetime``."""
        # date.weekday() counts from Monday
        return cls((value.weekday() + 1) % 7)

    @classmethod
    def from_name(cls, name: str) -> DayOfWeek:
        """Parse a weekday name such as ``"saturday"`` or ``"Sat"``."""
        key = name.strip().upper()
        for day in cls:
            if day.name == key or day.name[:3] == key:
                return day
        raise InvalidArgumentError(f"Unknown day of week: {name!r}")


@lru_cache(maxsize=7)
def order_weekdays(first_day_of_week: DayOfWeek) -> tuple[DayOfWeek, ...]:
    """Return the seven weekdays rotated so index 0 is ``first_day_of_week``.

    Results are cached, so every caller asking for the same first day gets
    the same tuple object.
    """
    first = int(first_day_of_week)
    return tuple(DayOfWeek((first + offset) % 7) for offset in range(7))


def day_in_week(weekday: DayOfWeek, first_day_of_week: DayOfWeek) -> int:
    """Return the zero-based position of ``weekday`` in a week starting on ``first_day_of_week``."""
    return (7 + (int(weekday) - int(first_day_of_week))) % 7


class CalendarSystem(ABC):
    """Adapter around a calendar conversion engine."""

    #: Stable identifier used in configuration files.
    name: str = ""

    min_year: int = 1
    max_year: int = 9999

    @abstractmethod
    def from_gregorian(self, value: datetime.date) -> tuple[int, int, int]:
        """Convert a Gregorian date to (year, month, day) in this calendar."""

    @abstractmethod
    def to_gregorian(self, year: int, month: int, day: int) -> datetime.date:
        """Convert (year, month, day) in this calendar to a Gregorian date.

        Raises:
            InvalidArgumentError: If the fields do not name a valid date.
        """

    @abstractmethod
    def days_in_month(self, year: int, month: int) -> int:
        """Return the number of days in ``month`` of ``year``."""

    def months_in_year(self, year: int) -> int:
        """Return the number of months in ``year``."""
        return 12

    def add_months(self, year: int, month: int, day: int, months: int) -> tuple[int, int, int]:
        """Add ``months`` to a date, clamping the day to the target month's length."""
        per_year = self.months_in_year(year)
        index = (year * per_year + (month - 1)) + months
        new_year, new_month = divmod(index, per_year)
        new_month += 1
        self._check_year(new_year)
        return new_year, new_month, min(day, self.days_in_month(new_year, new_month))

    def add_years(self, year: int, month: int, day: int, years: int) -> tuple[int, int, int]:
        """Add ``years`` to a date, clamping the day to the target month's length."""
        new_year = year + years
        self._check_year(new_year)
        return new_year, month, min(day, self.days_in_month(new_year, month))

    def _check_year(self, year: int) -> None:
        if not self.min_year <= year <= self.max_year:
            raise InvalidArgumentError(
                f"Year {year} is outside the {self.name} calendar range "
                f"{self.min_year}..{self.max_year}"
            )

    def __repr__(self) -> str:
        return f"<CalendarSystem {self.name}>"


class GregorianCalendar(CalendarSystem):
    """Proleptic Gregorian calendar backed by the standard library."""

    name = "gregorian"
    min_year = datetime.MINYEAR
    max_year = datetime.MAXYEAR

    def from_gregorian(self, value: datetime.date) -> tuple[int, int, int]:
        return value.year, value.month, value.day

    def to_gregorian(self, year: int, month: int, day: int) -> datetime.date:
        try:
            return datetime.date(year, month, day)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"Invalid gregorian date {year}-{month}-{day}: {e}"
            ) from e

    def days_in_month(self, year: int, month: int) -> int:
        if not 1 <= month <= 12:
            raise InvalidArgumentError(f"Month must be in 1..12, got {month}")
        return _stdlib_calendar.monthrange(year, month)[1]


class PersianCalendar(CalendarSystem):
    """Solar Hijri calendar backed by ``jdatetime``."""

    name = "persian"
    min_year = 1
    max_year = 9377

    def from_gregorian(self, value: datetime.date) -> tuple[int, int, int]:
        if isinstance(value, datetime.datetime):
            value = value.date()
        try:
            jalali = jdatetime.date.fromgregorian(date=value)
        except ValueError as e:
            raise InvalidArgumentError(
                f"{value.isoformat()} is outside the persian calendar range: {e}"
            ) from e
        return jalali.year, jalali.month, jalali.day

    def to_gregorian(self, year: int, month: int, day: int) -> datetime.date:
        try:
            return jdatetime.date(year, month, day).togregorian()
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(
                f"Invalid persian date {year}-{month}-{day}: {e}"
            ) from e

    def days_in_month(self, year: int, month: int) -> int:
        if not 1 <= month <= 12:
            raise InvalidArgumentError(f"Month must be in 1..12, got {month}")
        if month <= 6:
            return 31
        if month <= 11:
            return 30
        return 30 if jdatetime.date(year, 1, 1).isleap() else 29


GREGORIAN = GregorianCalendar()
PERSIAN = PersianCalendar()

_CALENDARS: dict[str, CalendarSystem] = {
    GREGORIAN.name: GREGORIAN,
    PERSIAN.name: PERSIAN,
    # Aliases seen in configuration files
    "iso": GREGORIAN,
    "jalali": PERSIAN,
    "solar_hijri": PERSIAN,
}


def get_calendar(name: str) -> CalendarSystem:
    """Return the calendar system registered under ``name``.

    Raises:
        InvalidArgumentError: If no calendar has that name.
    """
    try:
        return _CALENDARS[name.strip().lower()]
    except (AttributeError, KeyError) as e:
        raise InvalidArgumentError(f"Unknown calendar system: {name!r}") from e


def calendar_names() -> list[str]:
    """Return the names accepted by :func:`get_calendar`."""
    return sorted(_CALENDARS)
