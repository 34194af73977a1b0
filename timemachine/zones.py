"""Resolved time zones and the process-wide cache that holds them.

A :class:`ZoneHandle` bundles everything needed to turn an instant into civil
fields for one IANA zone: the ``zoneinfo`` handle, the calendar system, the
culture and the weekday ordering. Handles are built once per identifier by
:class:`ZoneCache` and shared from then on.
"""

from __future__ import annotations

import datetime
import functools
import logging
import os
import threading
import time
from pathlib import Path
from typing import ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .calendars import GREGORIAN, CalendarSystem, DayOfWeek, order_weekdays
from .cultures import INVARIANT, Culture
from .exceptions import InvalidArgumentError, UnknownZoneError
from .maps import UTC_IANA_ID, MapRegistry

logger = logging.getLogger(__name__)

# IANA identifier -> Windows time zone identifier
# https://learn.microsoft.com/en-us/windows-hardware/manufacture/desktop/default-time-zones
PLATFORM_IDS: dict[str, str] = {
    "UTC": "UTC",
    "Etc/UTC": "UTC",
    "America/Los_Angeles": "Pacific Standard Time",
    "America/Denver": "Mountain Standard Time",
    "America/Chicago": "Central Standard Time",
    "America/New_York": "Eastern Standard Time",
    "America/Anchorage": "Alaskan Standard Time",
    "Pacific/Honolulu": "Hawaiian Standard Time",
    "America/Phoenix": "US Mountain Standard Time",
    "America/Halifax": "Atlantic Standard Time",
    "America/Sao_Paulo": "E. South America Standard Time",
    "Europe/London": "GMT Standard Time",
    "Europe/Paris": "Romance Standard Time",
    "Europe/Berlin": "W. Europe Standard Time",
    "Europe/Budapest": "Central Europe Standard Time",
    "Europe/Athens": "GTB Standard Time",
    "Europe/Helsinki": "FLE Standard Time",
    "Europe/Istanbul": "Turkey Standard Time",
    "Europe/Moscow": "Russian Standard Time",
    "Africa/Cairo": "Egypt Standard Time",
    "Africa/Johannesburg": "South Africa Standard Time",
    "Asia/Tehran": "Iran Standard Time",
    "Asia/Dubai": "Arabian Standard Time",
    "Asia/Baghdad": "Arabic Standard Time",
    "Asia/Jerusalem": "Israel Standard Time",
    "Asia/Kabul": "Afghanistan Standard Time",
    "Asia/Karachi": "Pakistan Standard Time",
    "Asia/Kolkata": "India Standard Time",
    "Asia/Bangkok": "SE Asia Standard Time",
    "Asia/Shanghai": "China Standard Time",
    "Asia/Singapore": "Singapore Standard Time",
    "Asia/Tokyo": "Tokyo Standard Time",
    "Asia/Seoul": "Korea Standard Time",
    "Australia/Sydney": "AUS Eastern Standard Time",
    "Pacific/Auckland": "New Zealand Standard Time",
}


@functools.total_ordering
class ZoneHandle:
    """A resolved, immutable time zone.

    Equality and hashing use ``iana_id``. Ordering uses the UTC offset that was
    captured when the handle was resolved, so two different zones with the
    same offset are neither equal nor ordered.
    """

    __slots__ = (
        "_iana_id",
        "_platform_id",
        "_tzinfo",
        "_offset",
        "_calendar",
        "_culture",
        "_first_day_of_week",
        "_weekday_ordering",
        "_owner",
    )

    def __init__(
        self,
        iana_id: str,
        tzinfo: ZoneInfo,
        offset: datetime.timedelta,
        calendar: CalendarSystem,
        culture: Culture,
        first_day_of_week: DayOfWeek,
        platform_id: str = "",
        owner: ZoneCache | None = None,
    ) -> None:
        self._iana_id = iana_id
        self._platform_id = platform_id
        self._tzinfo = tzinfo
        self._offset = offset
        self._calendar = calendar
        self._culture = culture
        self._first_day_of_week = DayOfWeek(first_day_of_week)
        self._weekday_ordering = order_weekdays(self._first_day_of_week)
        self._owner = owner

    @property
    def iana_id(self) -> str:
        return self._iana_id

    @property
    def platform_id(self) -> str:
        """Windows zone identifier, or an empty string when there is none."""
        return self._platform_id

    @property
    def tzinfo(self) -> ZoneInfo:
        return self._tzinfo

    @property
    def offset(self) -> datetime.timedelta:
        """UTC offset captured when the handle was resolved.

        This is not refreshed. Instant conversions never use it; they ask
        ``tzinfo`` for the offset in effect at each instant.
        """
        return self._offset

    @property
    def calendar(self) -> CalendarSystem:
        return self._calendar

    @property
    def culture(self) -> Culture:
        return self._culture

    @property
    def first_day_of_week(self) -> DayOfWeek:
        return self._first_day_of_week

    @property
    def weekday_ordering(self) -> tuple[DayOfWeek, ...]:
        """The seven weekdays starting from ``first_day_of_week``."""
        return self._weekday_ordering

    @property
    def owner(self) -> ZoneCache | None:
        """The cache this handle was published into."""
        return self._owner

    def utc_offset_at(self, instant: datetime.datetime) -> datetime.timedelta:
        """Return the UTC offset in effect at an aware ``instant``."""
        offset = instant.astimezone(self._tzinfo).utcoffset()
        return offset if offset is not None else datetime.timedelta(0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ZoneHandle):
            return NotImplemented
        return self._iana_id == other._iana_id

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ZoneHandle):
            return NotImplemented
        return self._offset < other._offset

    def __hash__(self) -> int:
        return hash(self._iana_id)

    def __setattr__(self, name: str, value: object) -> None:
        if hasattr(self, "_owner"):
            raise AttributeError(f"{type(self).__name__} is immutable")
        object.__setattr__(self, name, value)

    def __str__(self) -> str:
        return f"GMT{format_offset(self._offset)}"

    def __repr__(self) -> str:
        return (
            f"ZoneHandle({self._iana_id!r}, offset={format_offset(self._offset)}, "
            f"calendar={self._calendar.name}, culture={self._culture.name})"
        )


def format_offset(offset: datetime.timedelta) -> str:
    """Render an offset as ``+HH:MM`` / ``-HH:MM``."""
    total_minutes = int(offset.total_seconds()) // 60
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


class ZoneCache:
    """Lazily populated, never-evicting cache of :class:`ZoneHandle` objects.

    Concurrent first requests for the same identifier may each build a
    handle, but only the first one to be published is ever returned.
    """

    def __init__(self, registry: MapRegistry | None = None) -> None:
        """Initialize the cache.

        Args:
            registry: Calendar maps consulted when a zone is first resolved
        """
        self.registry = registry if registry is not None else MapRegistry()
        self._lock = threading.Lock()
        self._zones: dict[str, ZoneHandle] = {}

    def resolve(self, iana_id: str) -> ZoneHandle:
        """Return the handle for ``iana_id``, building it on first use.

        Raises:
            InvalidArgumentError: If ``iana_id`` is None, empty or not a string.
            UnknownZoneError: If the time-zone database has no such zone.
        """
        if iana_id is None:
            raise InvalidArgumentError("iana_id must not be None")
        if not isinstance(iana_id, str) or not iana_id.strip():
            raise InvalidArgumentError(f"iana_id must be a non-empty string, got {iana_id!r}")

        with self._lock:
            cached = self._zones.get(iana_id)
        if cached is not None:
            return cached

        handle = self._build(iana_id)
        with self._lock:
            published = self._zones.setdefault(iana_id, handle)
        if published is handle:
            logger.debug("Resolved zone %r", handle)
        return published

    def clear(self) -> None:
        """Drop every cached handle."""
        with self._lock:
            self._zones.clear()

    def __contains__(self, iana_id: object) -> bool:
        with self._lock:
            return iana_id in self._zones

    def __len__(self) -> int:
        with self._lock:
            return len(self._zones)

    def _build(self, iana_id: str) -> ZoneHandle:
        tzinfo = load_tzinfo(iana_id)
        offset = datetime.datetime.now(datetime.timezone.utc).astimezone(tzinfo).utcoffset()

        calendar_map = self.registry.lookup(iana_id)
        if calendar_map is not None:
            calendar = calendar_map.calendar
            culture = calendar_map.culture
            first_day_of_week = calendar_map.first_day_of_week
        else:
            calendar = GREGORIAN
            culture = INVARIANT
            first_day_of_week = culture.first_day_of_week

        return ZoneHandle(
            iana_id=iana_id,
            tzinfo=tzinfo,
            offset=offset if offset is not None else datetime.timedelta(0),
            calendar=calendar,
            culture=culture,
            first_day_of_week=first_day_of_week,
            platform_id=PLATFORM_IDS.get(iana_id, ""),
            owner=self,
        )


def load_tzinfo(iana_id: str) -> ZoneInfo:
    """Load a zone from the time-zone database.

    Raises:
        UnknownZoneError: If the identifier is unknown or malformed.
    """
    try:
        return ZoneInfo(iana_id)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise UnknownZoneError(iana_id) from e


def is_valid_zone(iana_id: str) -> bool:
    """Return True when ``iana_id`` names a zone in the time-zone database."""
    try:
        load_tzinfo(iana_id)
    except UnknownZoneError:
        return False
    return True


class SystemTimezoneDetector:
    """Detects the host's time zone using several fallback strategies."""

    # Abbreviation to IANA identifier mapping
    TZ_ABBREV_MAP: ClassVar[dict[str, str]] = {
        "UTC": UTC_IANA_ID,
        "GMT": UTC_IANA_ID,
        "PST": "America/Los_Angeles",
        "PDT": "America/Los_Angeles",
        "MST": "America/Denver",
        "MDT": "America/Denver",
        "CST": "America/Chicago",
        "CDT": "America/Chicago",
        "EST": "America/New_York",
        "EDT": "America/New_York",
        "BST": "Europe/London",
        "CET": "Europe/Paris",
        "CEST": "Europe/Paris",
        "IRST": "Asia/Tehran",
        "+0330": "Asia/Tehran",
        "+03": "Europe/Istanbul",
    }

    LOCALTIME_PATH: ClassVar[Path] = Path("/etc/localtime")

    def detect(self) -> str:
        """Return the host's zone as an IANA identifier.

        Strategies, in order: the ``TZ`` environment variable, the target of
        the ``/etc/localtime`` symlink, the ``time.tzname`` abbreviation.
        Falls back to ``"UTC"`` and never raises.
        """
        for strategy in (self._from_env, self._from_localtime, self._from_tzname):
            try:
                candidate = strategy()
            except OSError as e:
                logger.debug("Zone detection strategy %s failed: %s", strategy.__name__, e)
                continue
            if candidate and is_valid_zone(candidate):
                return candidate

        logger.warning("Could not detect system time zone, falling back to %s", UTC_IANA_ID)
        return UTC_IANA_ID

    def _from_env(self) -> str | None:
        value = os.environ.get("TZ", "").strip()
        # POSIX allows a leading colon
        return value.lstrip(":") or None

    def _from_localtime(self) -> str | None:
        if not self.LOCALTIME_PATH.is_symlink():
            return None
        target = str(self.LOCALTIME_PATH.resolve())
        marker = "zoneinfo/"
        index = target.rfind(marker)
        return target[index + len(marker) :] if index >= 0 else None

    def _from_tzname(self) -> str | None:
        name = time.tzname[time.daylight] if time.daylight else time.tzname[0]
        return self.TZ_ABBREV_MAP.get(name)


def detect_system_timezone() -> str:
    """Return the host's IANA zone identifier, ``"UTC"`` when undetectable."""
    return SystemTimezoneDetector().detect()
