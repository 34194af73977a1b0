"""Per-zone calendar configuration and the registry that holds it."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

from .calendars import GREGORIAN, CalendarSystem, DayOfWeek, order_weekdays
from .cultures import INVARIANT, Culture
from .exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

UTC_IANA_ID = "UTC"


@dataclass(frozen=True)
class CalendarMap:
    """Static calendar settings for one IANA zone.

    ``first_day_of_week`` defaults to the culture's first day of week when not
    given explicitly.
    """

    iana_id: str
    calendar: CalendarSystem = GREGORIAN
    culture: Culture = INVARIANT
    first_day_of_week: DayOfWeek | None = None
    weekday_ordering: tuple[DayOfWeek, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.iana_id, str) or not self.iana_id.strip():
            raise InvalidArgumentError("CalendarMap.iana_id must be a non-empty string")
        if self.first_day_of_week is None:
            object.__setattr__(self, "first_day_of_week", self.culture.first_day_of_week)
        else:
            object.__setattr__(self, "first_day_of_week", DayOfWeek(self.first_day_of_week))
        object.__setattr__(self, "weekday_ordering", order_weekdays(self.first_day_of_week))


def utc_map() -> CalendarMap:
    """Return the built-in map for UTC: Gregorian, invariant culture, Sunday first."""
    return CalendarMap(iana_id=UTC_IANA_ID, calendar=GREGORIAN, culture=INVARIANT)


class MapRegistry:
    """Thread-safe mapping from IANA identifier to :class:`CalendarMap`.

    A UTC map is present from construction. ``clear()`` removes it along with
    everything else; it comes back the next time ``lookup("UTC")`` is called.
    """

    def __init__(self) -> None:
        """Initialize the registry with the built-in UTC map."""
        self._lock = threading.Lock()
        self._maps: dict[str, CalendarMap] = {UTC_IANA_ID: utc_map()}

    def add(self, calendar_map: CalendarMap) -> None:
        """Insert or replace the map for ``calendar_map.iana_id``.

        Raises:
            InvalidArgumentError: If ``calendar_map`` is None.
        """
        if calendar_map is None:
            raise InvalidArgumentError("calendar_map must not be None")
        with self._lock:
            self._maps[calendar_map.iana_id] = calendar_map
        logger.debug(
            "Registered calendar map for %s (calendar=%s, culture=%s)",
            calendar_map.iana_id,
            calendar_map.calendar.name,
            calendar_map.culture.name,
        )

    def remove(self, iana_id: str) -> None:
        """Remove the map for ``iana_id`` if present."""
        _require_id(iana_id)
        with self._lock:
            self._maps.pop(iana_id, None)

    def clear(self) -> None:
        """Remove every map, including the built-in UTC map."""
        with self._lock:
            self._maps.clear()
        logger.debug("Cleared calendar map registry")

    def lookup(self, iana_id: str) -> CalendarMap | None:
        """Return the map for ``iana_id``, or None when nothing is registered."""
        _require_id(iana_id)
        with self._lock:
            found = self._maps.get(iana_id)
            if found is None and iana_id == UTC_IANA_ID:
                found = self._maps[UTC_IANA_ID] = utc_map()
            return found

    def __getitem__(self, iana_id: str) -> CalendarMap:
        found = self.lookup(iana_id)
        if found is None:
            raise KeyError(iana_id)
        return found

    def __contains__(self, iana_id: object) -> bool:
        with self._lock:
            return iana_id in self._maps

    def __len__(self) -> int:
        with self._lock:
            return len(self._maps)

    def __iter__(self) -> Iterator[CalendarMap]:
        with self._lock:
            snapshot = list(self._maps.values())
        return iter(snapshot)


def _require_id(iana_id: object) -> None:
    if iana_id is None:
        raise InvalidArgumentError("iana_id must not be None")
