"""Calendar-aware civil date-time values anchored to an IANA zone.

A :class:`CivilDateTime` is an absolute instant (``ticks``) together with the
identifier of the zone it is viewed in. The civil fields (year, month, day,
hour, minute, second, weekday) are always derived from ``ticks`` through the
zone's calendar engine, so the two can never disagree.

Ticks are 100 nanosecond units since 0001-01-01T00:00:00Z, the same scale
.NET uses, which makes values exchangeable with services that store them.

Local wall times are resolved leniently: an ambiguous time (clocks going back)
takes the earlier offset and a skipped time (clocks going forward) is shifted
forward by the length of the gap.
"""

from __future__ import annotations

import datetime
import functools
import logging
from typing import TYPE_CHECKING

from .calendars import DayOfWeek, day_in_week
from .cultures import format_pattern
from .exceptions import InconsistentStateError, InvalidArgumentError
from .zones import ZoneCache, ZoneHandle

if TYPE_CHECKING:
    from .calendars import CalendarSystem
    from .cultures import Culture

logger = logging.getLogger(__name__)

UTC = datetime.timezone.utc
EPOCH = datetime.datetime(1, 1, 1, tzinfo=UTC)

TICKS_PER_MICROSECOND = 10
TICKS_PER_SECOND = 10_000_000
TICKS_PER_DAY = TICKS_PER_SECOND * 86_400
MIN_TICKS = 0
MAX_TICKS = 3_155_378_975_999_999_999

_ONE_MICROSECOND = datetime.timedelta(microseconds=1)
def ticks_from_datetime(value: datetime.datetime) -> int:
    """Convert a datetime to ticks. Naive values are taken as UTC."""
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=UTC)
    try:
        utc = value.astimezone(UTC)
    except OverflowError as e:
        raise InvalidArgumentError(f"{value!r} is outside the supported range") from e
    return (utc - EPOCH) // _ONE_MICROSECOND * TICKS_PER_MICROSECOND


def datetime_from_ticks(ticks: int) -> datetime.datetime:
    """Convert ticks to an aware UTC datetime, truncated to microseconds."""
    _check_ticks(ticks)
    return EPOCH + datetime.timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)


def ticks_from_timedelta(delta: datetime.timedelta) -> int:
    return (
        (delta.days * 86_400 + delta.seconds) * TICKS_PER_SECOND
        + delta.microseconds * TICKS_PER_MICROSECOND
    )


def _check_ticks(ticks: int) -> None:
    if isinstance(ticks, bool) or not isinstance(ticks, int):
        raise InvalidArgumentError(f"ticks must be an int, got {type(ticks).__name__}")
    if not MIN_TICKS <= ticks <= MAX_TICKS:
        raise InvalidArgumentError(f"ticks {ticks} outside {MIN_TICKS}..{MAX_TICKS}")


def _services():
    # Imported lazily: services builds on this module
    from .services import get_services

    return get_services()


def _bind_zone(
    zone: ZoneHandle | str | None, cache: ZoneCache | None
) -> tuple[ZoneHandle, ZoneCache]:
    if zone is None:
        handle = _services().context.current()
    elif isinstance(zone, ZoneHandle):
        handle = zone
    elif isinstance(zone, str):
        if cache is None:
            cache = _services().zones
        handle = cache.resolve(zone)
    else:
        raise InvalidArgumentError(
            f"zone must be a ZoneHandle, an IANA id or None, got {type(zone).__name__}"
        )
    if cache is None:
        cache = handle.owner if handle.owner is not None else _services().zones
    return handle, cache


def _resolve_wall_time(naive: datetime.datetime, zone: ZoneHandle) -> int:
    """Resolve a Gregorian wall time in ``zone`` leniently and return ticks."""
    # fold=0 picks the earlier offset for ambiguous times and the pre-transition
    # offset for skipped ones, which lands after the gap
    aware = naive.replace(tzinfo=zone.tzinfo, fold=0)
    try:
        utc = aware.astimezone(UTC)
        round_trip = utc.astimezone(zone.tzinfo).replace(tzinfo=None)
    except OverflowError as e:
        raise InvalidArgumentError(f"{naive.isoformat()} in {zone.iana_id} is out of range") from e

    if abs(round_trip - naive) >= datetime.timedelta(days=1):
        raise InconsistentStateError(
            f"Resolving {naive.isoformat()} in {zone.iana_id} moved wall time to "
            f"{round_trip.isoformat()}"
        )
    return ticks_from_datetime(utc)


def _duration(**amount: float) -> datetime.timedelta:
    try:
        return datetime.timedelta(**amount)
    except OverflowError as e:
        raise InvalidArgumentError(f"Duration {amount} is out of range") from e


def _check_int(name: str, value: object, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an int, got {type(value).__name__}")
    if not low <= value <= high:
        raise InvalidArgumentError(f"{name} must be in {low}..{high}, got {value}")
    return value


@functools.total_ordering
class CivilDateTime:
    """An instant viewed as civil fields in a zone's calendar and culture.

    Values are immutable. Equality, hashing and ordering use ``ticks`` only,
    so the same instant in two zones compares equal.
    """

    __slots__ = (
        "_ticks",
        "_zone_id",
        "_cache",
        "_year",
        "_month",
        "_day",
        "_hour",
        "_minute",
        "_second",
        "_weekday",
    )

    def __init__(
        self,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        zone: ZoneHandle | str | None = None,
        *,
        cache: ZoneCache | None = None,
    ) -> None:
        """Build a value from civil fields in the zone's calendar.

        Args:
            year: Year in the zone's calendar
            month: Month, 1-based
            day: Day of month, 1-based
            hour: Hour, 0-23
            minute: Minute, 0-59
            second: Second, 0-59
            zone: Zone handle or IANA id; the ambient current zone when None
            cache: Cache used to resolve ``zone`` when it is an identifier

        Raises:
            InvalidArgumentError: If the fields do not name a valid date-time.
            UnknownZoneError: If ``zone`` is an identifier the database lacks.
        """
        handle, bound_cache = _bind_zone(zone, cache)
        ticks = _ticks_from_civil(handle, year, month, day, hour, minute, second)
        self._assign(ticks, handle, bound_cache)

    @classmethod
    def _from_ticks(cls, ticks: int, zone: ZoneHandle, cache: ZoneCache) -> CivilDateTime:
        value = cls.__new__(cls)
        value._assign(ticks, zone, cache)
        return value

    @classmethod
    def from_utc(
        cls,
        instant: datetime.datetime | int,
        zone: ZoneHandle | str | None = None,
        *,
        cache: ZoneCache | None = None,
    ) -> CivilDateTime:
        """View an absolute instant in ``zone``.

        Args:
            instant: Aware datetime, naive datetime taken as UTC, or ticks
            zone: Zone handle or IANA id; the ambient current zone when None
            cache: Cache used to resolve ``zone`` when it is an identifier
        """
        handle, bound_cache = _bind_zone(zone, cache)
        if isinstance(instant, datetime.datetime):
            ticks = ticks_from_datetime(instant)
        elif isinstance(instant, int) and not isinstance(instant, bool):
            ticks = instant
        else:
            raise InvalidArgumentError(
                f"instant must be a datetime or ticks, got {type(instant).__name__}"
            )
        return cls._from_ticks(ticks, handle, bound_cache)

    @classmethod
    def from_datetime(
        cls,
        value: datetime.datetime,
        zone: ZoneHandle | str | None = None,
        *,
        cache: ZoneCache | None = None,
    ) -> CivilDateTime:
        """Convert a ``datetime`` into a civil value in ``zone``.

        Aware values are taken as instants. Naive values are Gregorian wall
        times in ``zone``, resolved leniently.
        """
        if not isinstance(value, datetime.datetime):
            raise InvalidArgumentError(f"value must be a datetime, got {type(value).__name__}")
        if value.tzinfo is not None and value.utcoffset() is not None:
            return cls.from_utc(value, zone, cache=cache)
        handle, bound_cache = _bind_zone(zone, cache)
        return cls._from_ticks(_resolve_wall_time(value, handle), handle, bound_cache)

    def _assign(self, ticks: int, zone: ZoneHandle, cache: ZoneCache) -> None:
        try:
            local = datetime_from_ticks(ticks).astimezone(zone.tzinfo)
        except OverflowError as e:
            raise InvalidArgumentError(f"ticks {ticks} cannot be shown in {zone.iana_id}") from e
        year, month, day = zone.calendar.from_gregorian(local.date())
        calendar = zone.calendar
        if not 1 <= month <= calendar.months_in_year(year) or not (
            1 <= day <= calendar.days_in_month(year, month)
        ):
            raise InconsistentStateError(
                f"{calendar.name} engine returned {year}-{month}-{day} for {local.date()}"
            )

        self._ticks = ticks
        self._zone_id = zone.iana_id
        self._cache = cache
        self._year = year
        self._month = month
        self._day = day
        self._hour = local.hour
        self._minute = local.minute
        self._second = local.second
        self._weekday = DayOfWeek.from_date(local)

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def year(self) -> int:
        return self._year

    @property
    def month(self) -> int:
        return self._month

    @property
    def day(self) -> int:
        return self._day

    @property
    def hour(self) -> int:
        return self._hour

    @property
    def minute(self) -> int:
        return self._minute

    @property
    def second(self) -> int:
        return self._second

    @property
    def weekday(self) -> DayOfWeek:
        return self._weekday

    @property
    def zone_id(self) -> str:
        return self._zone_id

    @property
    def zone(self) -> ZoneHandle:
        """The zone handle, re-resolved from the cache on each access."""
        return self._cache.resolve(self._zone_id)

    @property
    def calendar(self) -> CalendarSystem:
        return self.zone.calendar

    @property
    def culture(self) -> Culture:
        return self.zone.culture

    def with_timezone(self, zone: ZoneHandle | str) -> CivilDateTime:
        """Return the same instant viewed in ``zone``."""
        if zone is None:
            raise InvalidArgumentError("zone must not be None")
        handle, cache = _bind_zone(zone, self._cache if isinstance(zone, str) else None)
        return self._from_ticks(self._ticks, handle, cache)

    def to_utc_datetime(self) -> datetime.datetime:
        """Return the instant as an aware UTC datetime."""
        return datetime_from_ticks(self._ticks)

    def to_datetime(self) -> datetime.datetime:
        """Return the instant as an aware datetime in the value's zone."""
        return self.to_utc_datetime().astimezone(self.zone.tzinfo)

    # Calendar arithmetic

    def add_years(self, years: int) -> CivilDateTime:
        """Add calendar years, clamping the day to the target month."""
        zone = self.zone
        year, month, day = zone.calendar.add_years(self._year, self._month, self._day, years)
        return self._with_civil(zone, year, month, day, self._hour, self._minute, self._second)

    def add_months(self, months: int) -> CivilDateTime:
        """Add calendar months, clamping the day to the target month."""
        zone = self.zone
        year, month, day = zone.calendar.add_months(self._year, self._month, self._day, months)
        return self._with_civil(zone, year, month, day, self._hour, self._minute, self._second)

    # Fixed-duration arithmetic

    def add(self, delta: datetime.timedelta) -> CivilDateTime:
        """Add a fixed duration to the instant."""
        if not isinstance(delta, datetime.timedelta):
            raise InvalidArgumentError(f"delta must be a timedelta, got {type(delta).__name__}")
        return self._from_ticks(self._ticks + ticks_from_timedelta(delta), self.zone, self._cache)

    def add_days(self, days: float) -> CivilDateTime:
        return self.add(_duration(days=days))

    def add_hours(self, hours: float) -> CivilDateTime:
        return self.add(_duration(hours=hours))

    def add_minutes(self, minutes: float) -> CivilDateTime:
        return self.add(_duration(minutes=minutes))

    def add_seconds(self, seconds: float) -> CivilDateTime:
        return self.add(_duration(seconds=seconds))

    def subtract(
        self, other: datetime.timedelta | CivilDateTime
    ) -> CivilDateTime | datetime.timedelta:
        """Subtract a duration, or return the elapsed time since ``other``."""
        if isinstance(other, CivilDateTime):
            return datetime.timedelta(
                microseconds=(self._ticks - other._ticks) // TICKS_PER_MICROSECOND
            )
        if isinstance(other, datetime.timedelta):
            return self.add(-other)
        raise InvalidArgumentError(
            f"Can only subtract a timedelta or CivilDateTime, got {type(other).__name__}"
        )

    def __add__(self, other: object) -> CivilDateTime:
        if not isinstance(other, datetime.timedelta):
            return NotImplemented
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other: object):
        if not isinstance(other, (datetime.timedelta, CivilDateTime)):
            return NotImplemented
        return self.subtract(other)

    # Boundaries

    def start_of_minute(self) -> CivilDateTime:
        return self._with_fields(second=0)

    def end_of_minute(self) -> CivilDateTime:
        return self._with_fields(second=59)

    def start_of_hour(self) -> CivilDateTime:
        return self._with_fields(minute=0, second=0)

    def end_of_hour(self) -> CivilDateTime:
        return self._with_fields(minute=59, second=59)

    def start_of_day(self) -> CivilDateTime:
        return self._with_fields(hour=0, minute=0, second=0)

    def end_of_day(self) -> CivilDateTime:
        return self._with_fields(hour=23, minute=59, second=59)

    def start_of_month(self) -> CivilDateTime:
        return self._with_fields(day=1, hour=0, minute=0, second=0)

    def end_of_month(self) -> CivilDateTime:
        return self._with_fields(day=self.days_in_month(), hour=23, minute=59, second=59)

    def start_of_week(self) -> CivilDateTime:
        """Return midnight of the first day of this value's week.

        The week starts on the zone's ``first_day_of_week``.
        """
        return self._on_week_day(0, datetime.time())

    def end_of_week(self) -> CivilDateTime:
        """Return 23:59:59 on the sixth day after :meth:`start_of_week`."""
        return self._on_week_day(6, datetime.time(23, 59, 59))

    def _on_week_day(self, offset: int, wall_time: datetime.time) -> CivilDateTime:
        # Built from the wall clock so a DST change inside the week cannot shift it
        zone = self.zone
        back = day_in_week(self._weekday, zone.first_day_of_week)
        gregorian = zone.calendar.to_gregorian(self._year, self._month, self._day)
        try:
            target = gregorian + datetime.timedelta(days=offset - back)
        except OverflowError as e:
            raise InvalidArgumentError(
                f"Week of {self!r} extends past the supported date range"
            ) from e
        naive = datetime.datetime.combine(target, wall_time)
        return self._from_ticks(_resolve_wall_time(naive, zone), zone, self._cache)

    def days_in_month(self) -> int:
        """Return the length of this value's month in the zone's calendar."""
        return self.zone.calendar.days_in_month(self._year, self._month)

    def _with_fields(self, **fields: int) -> CivilDateTime:
        current = {
            "year": self._year,
            "month": self._month,
            "day": self._day,
            "hour": self._hour,
            "minute": self._minute,
            "second": self._second,
        }
        current.update(fields)
        return self._with_civil(self.zone, **current)

    def _with_civil(
        self,
        zone: ZoneHandle,
        year: int,
        month: int,
        day: int,
        hour: int,
        minute: int,
        second: int,
    ) -> CivilDateTime:
        ticks = _ticks_from_civil(zone, year, month, day, hour, minute, second)
        return self._from_ticks(ticks, zone, self._cache)

    # Formatting

    def format(self, specifier: str | None = None) -> str:
        """Render the value with the zone's culture.

        Args:
            specifier: One of ``d D f F g G m M MMMM``; ``None`` or ``""`` means ``G``

        Raises:
            FormatError: If the specifier is not supported.
        """
        culture = self.zone.culture
        return format_pattern(
            culture.pattern_for(specifier),
            culture,
            year=self._year,
            month=self._month,
            day=self._day,
            hour=self._hour,
            minute=self._minute,
            second=self._second,
            weekday=self._weekday,
        )

    def __format__(self, format_spec: str) -> str:
        return self.format(format_spec)

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return (
            f"CivilDateTime({self._year:04d}-{self._month:02d}-{self._day:02d} "
            f"{self._hour:02d}:{self._minute:02d}:{self._second:02d}, {self._zone_id})"
        )

    # Comparison

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CivilDateTime):
            return NotImplemented
        return self._ticks == other._ticks

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CivilDateTime):
            return NotImplemented
        return self._ticks < other._ticks

    def __hash__(self) -> int:
        return hash(self._ticks)

    def __setattr__(self, name: str, value: object) -> None:
        if hasattr(self, "_weekday"):
            raise AttributeError(f"{type(self).__name__} is immutable")
        object.__setattr__(self, name, value)


def _ticks_from_civil(
    zone: ZoneHandle,
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
) -> int:
    calendar = zone.calendar
    _check_int("year", year, calendar.min_year, calendar.max_year)
    _check_int("month", month, 1, calendar.months_in_year(year))
    _check_int("day", day, 1, calendar.days_in_month(year, month))
    _check_int("hour", hour, 0, 23)
    _check_int("minute", minute, 0, 59)
    _check_int("second", second, 0, 59)
    gregorian = calendar.to_gregorian(year, month, day)
    naive = datetime.datetime.combine(gregorian, datetime.time(hour, minute, second))
    return _resolve_wall_time(naive, zone)
