"""Shared fixtures for timemachine tests."""

from collections.abc import Generator
from typing import Any

import pytest

from timemachine import build_services, reset_services, set_services
from timemachine.calendars import GREGORIAN, PERSIAN
from timemachine.config import reset_settings
from timemachine.cultures import EN_GB, EN_US, FA_IR, TR_TR
from timemachine.maps import CalendarMap
from timemachine.services import TimeMachineServices
from timemachine.zones import ZoneHandle

TEHRAN = "Asia/Tehran"
ISTANBUL = "Europe/Istanbul"
LONDON = "Europe/London"
LOS_ANGELES = "America/Los_Angeles"


def pytest_configure(config: Any) -> None:
    """Register the markers used across the suite."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests that exercise several components")
    config.addinivalue_line("markers", "slow: Tests that wait on real timer threads")


@pytest.fixture(autouse=True)
def isolate_global_state(monkeypatch: Any, tmp_path: Any) -> Generator[None, Any, None]:
    """Clear process-wide singletons and TIMEMACHINE_* env vars around each test."""
    for key in (
        "DEFAULT_TIMEZONE",
        "TIMEZONE_HEADER",
        "LOG_LEVEL",
        "DEBUG",
        "CALENDAR_MAPS",
    ):
        monkeypatch.delenv(f"TIMEMACHINE_{key}", raising=False)
    # Keep a real ~/.config/timemachine/config.yaml out of the tests
    monkeypatch.setenv("TIMEMACHINE_CONFIG_DIR", str(tmp_path / "no-user-config"))
    reset_services()
    reset_settings()
    yield
    reset_services()
    reset_settings()


@pytest.fixture
def iran_map() -> CalendarMap:
    """Tehran with the Solar Hijri calendar and Persian culture (Saturday first)."""
    return CalendarMap(iana_id=TEHRAN, calendar=PERSIAN, culture=FA_IR)


@pytest.fixture
def turkey_map() -> CalendarMap:
    return CalendarMap(iana_id=ISTANBUL, calendar=GREGORIAN, culture=TR_TR)


@pytest.fixture
def uk_map() -> CalendarMap:
    return CalendarMap(iana_id=LONDON, calendar=GREGORIAN, culture=EN_GB)


@pytest.fixture
def la_map() -> CalendarMap:
    return CalendarMap(iana_id=LOS_ANGELES, calendar=GREGORIAN, culture=EN_US)


@pytest.fixture
def services(
    iran_map: CalendarMap,
    turkey_map: CalendarMap,
    uk_map: CalendarMap,
    la_map: CalendarMap,
) -> Generator[TimeMachineServices, Any, None]:
    """Fresh registry, cache and ambient context installed process-wide, UTC by default."""
    svc = build_services(maps=[iran_map, turkey_map, uk_map, la_map], default_timezone="UTC")
    set_services(svc)
    yield svc
    reset_services()


@pytest.fixture
def tehran(services: TimeMachineServices) -> ZoneHandle:
    return services.zones.resolve(TEHRAN)


@pytest.fixture
def istanbul(services: TimeMachineServices) -> ZoneHandle:
    return services.zones.resolve(ISTANBUL)


@pytest.fixture
def london(services: TimeMachineServices) -> ZoneHandle:
    return services.zones.resolve(LONDON)


@pytest.fixture
def los_angeles(services: TimeMachineServices) -> ZoneHandle:
    return services.zones.resolve(LOS_ANGELES)
