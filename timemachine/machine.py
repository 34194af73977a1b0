"""The "now" accessor."""

from __future__ import annotations

import datetime

from .civil import CivilDateTime
from .context import AmbientZoneContext
from .zones import ZoneHandle


class TimeMachine:
    """Reads the system clock and views it in a zone.

    Inject this instead of calling ``datetime.now`` so tests can substitute
    :class:`timemachine.testing.FakeTimeMachine`.
    """

    def __init__(self, context: AmbientZoneContext) -> None:
        self._context = context

    @property
    def context(self) -> AmbientZoneContext:
        return self._context

    def now(self, zone: ZoneHandle | str | None = None) -> CivilDateTime:
        """Return the current instant in ``zone``, or in the ambient current zone."""
        handle = self._context.current() if zone is None else self._resolve(zone)
        return CivilDateTime.from_utc(self.utc_now(), handle, cache=self._context.cache)

    def utc_now(self) -> datetime.datetime:
        """Return the current instant as an aware UTC datetime."""
        return datetime.datetime.now(datetime.timezone.utc)

    def _resolve(self, zone: ZoneHandle | str) -> ZoneHandle:
        if isinstance(zone, ZoneHandle):
            return zone
        return self._context.cache.resolve(zone)
