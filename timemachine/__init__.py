"""timemachine - calendar-aware civil date-times anchored to IANA time zones.

The aiohttp integration lives in :mod:`timemachine.middleware` and is not
imported here, so the package can be used without pulling in a web stack.
"""

from __future__ import annotations

import datetime

__version__ = "1.0.0"

from .calendars import GREGORIAN, PERSIAN, CalendarSystem, DayOfWeek, get_calendar
from .civil import CivilDateTime
from .context import AmbientZoneContext
from .cultures import Culture, get_culture
from .exceptions import (
    FormatError,
    InconsistentStateError,
    InvalidArgumentError,
    InvalidOperationError,
    NotFoundError,
    ObjectDisposedError,
    TimeMachineError,
    UnknownZoneError,
)
from .machine import TimeMachine
from .maps import CalendarMap, MapRegistry
from .services import (
    TimeMachineServices,
    build_services,
    get_services,
    reset_services,
    set_services,
)
from .timer import INFINITE, ControllableTimer, ControllableTimerFactory
from .zones import ZoneCache, ZoneHandle

__all__ = [
    "GREGORIAN",
    "INFINITE",
    "PERSIAN",
    "AmbientZoneContext",
    "CalendarMap",
    "CalendarSystem",
    "CivilDateTime",
    "ControllableTimer",
    "ControllableTimerFactory",
    "Culture",
    "DayOfWeek",
    "FormatError",
    "InconsistentStateError",
    "InvalidArgumentError",
    "InvalidOperationError",
    "MapRegistry",
    "NotFoundError",
    "ObjectDisposedError",
    "TimeMachine",
    "TimeMachineError",
    "TimeMachineServices",
    "UnknownZoneError",
    "ZoneCache",
    "ZoneHandle",
    "build_services",
    "current_zone",
    "get_calendar",
    "get_culture",
    "get_services",
    "now",
    "reset_services",
    "resolve_zone",
    "set_services",
    "timezone_scope",
    "utc_now",
]


def now(zone: ZoneHandle | str | None = None) -> CivilDateTime:
    """Return the current time in ``zone``, or in the ambient current zone."""
    return get_services().machine.now(zone)


def utc_now() -> datetime.datetime:
    """Return the current UTC time from the process-wide time machine."""
    return get_services().machine.utc_now()


def current_zone() -> ZoneHandle:
    """Return the ambient current zone of the calling chain."""
    return get_services().context.current()


def resolve_zone(iana_id: str) -> ZoneHandle:
    """Resolve ``iana_id`` through the process-wide zone cache."""
    return get_services().zones.resolve(iana_id)


def timezone_scope(zone: ZoneHandle | str):
    """Context manager making ``zone`` current for the calling chain.

    Example:
        >>> with timezone_scope("Asia/Tehran"):
        ...     print(now().format("D"))
    """
    return get_services().context.scope(zone)
