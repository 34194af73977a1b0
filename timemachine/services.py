"""Process-scoped container for the shared timemachine objects."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from .config.settings import TimeMachineSettings, get_settings
from .context import AmbientZoneContext
from .machine import TimeMachine
from .maps import CalendarMap, MapRegistry
from .timer import ControllableTimerFactory
from .zones import ZoneCache

logger = logging.getLogger(__name__)


@dataclass
class TimeMachineServices:
    """Container for the objects an application shares process-wide.

    Build one with :func:`build_services`. Tests build their own and install
    it with :func:`set_services` so nothing leaks between them.
    """

    registry: MapRegistry
    zones: ZoneCache
    context: AmbientZoneContext
    machine: TimeMachine
    timer_factory: ControllableTimerFactory
    settings: TimeMachineSettings | None = None


def build_services(
    settings: TimeMachineSettings | None = None,
    maps: Iterable[CalendarMap] = (),
    default_timezone: str | None = None,
) -> TimeMachineServices:
    """Build a fresh, fully wired services container.

    Args:
        settings: Configured calendar maps and default zone are applied when given
        maps: Extra calendar maps registered after the configured ones
        default_timezone: Default zone id; overrides ``settings.default_timezone``

    Returns:
        TimeMachineServices with its own registry, cache and ambient context
    """
    registry = MapRegistry()
    if settings is not None:
        for map_config in settings.calendar_maps:
            registry.add(map_config.to_map())
    for calendar_map in maps:
        registry.add(calendar_map)

    zones = ZoneCache(registry)
    default = default_timezone or (settings.default_timezone if settings is not None else None)
    context = AmbientZoneContext(zones, default=default)

    services = TimeMachineServices(
        registry=registry,
        zones=zones,
        context=context,
        machine=TimeMachine(context),
        timer_factory=ControllableTimerFactory(),
        settings=settings,
    )
    logger.debug(
        "Built timemachine services (maps=%d, default_timezone=%s)",
        len(registry),
        default or "<system>",
    )
    return services


_services_lock = threading.Lock()
_services_instance: TimeMachineServices | None = None


def get_services() -> TimeMachineServices:
    """Return the process-wide services, building them from settings on first use."""
    if globals()["_services_instance"] is None:
        with _services_lock:
            if globals()["_services_instance"] is None:
                globals()["_services_instance"] = build_services(get_settings())
    return globals()["_services_instance"]


def peek_services() -> TimeMachineServices | None:
    """Return the process-wide services if they have been built, without building them."""
    return globals()["_services_instance"]


def set_services(services: TimeMachineServices) -> None:
    """Replace the process-wide services."""
    with _services_lock:
        globals()["_services_instance"] = services


def reset_services() -> None:
    """Drop the process-wide services (primarily for testing)."""
    with _services_lock:
        globals()["_services_instance"] = None
