"""Unit tests for the services container and the package-level helpers."""

import pytest

import timemachine
from timemachine import build_services, get_services, reset_services, set_services
from timemachine.calendars import PERSIAN
from timemachine.context import AmbientZoneContext
from timemachine.maps import CalendarMap
from timemachine.services import peek_services

pytestmark = pytest.mark.unit


class TestBuildServices:
    """Tests for build_services."""

    def test_components_are_wired_together(self):
        services = build_services(default_timezone="UTC")

        assert services.zones.registry is services.registry
        assert services.context.cache is services.zones
        assert services.machine.context is services.context
        assert services.settings is None

    def test_containers_are_isolated(self):
        first = build_services(
            maps=[CalendarMap("Asia/Tehran", calendar=PERSIAN)], default_timezone="UTC"
        )
        second = build_services(default_timezone="UTC")

        assert first.zones.resolve("Asia/Tehran").calendar is PERSIAN
        assert second.zones.resolve("Asia/Tehran").calendar.name == "gregorian"

    def test_scopes_do_not_leak_between_containers(self):
        first = build_services(default_timezone="UTC")
        second = build_services(default_timezone="UTC")

        with first.context.scope("Asia/Tehran"):
            assert first.context.current().iana_id == "Asia/Tehran"
            assert second.context.current().iana_id == "UTC"

    def test_default_timezone(self):
        services = build_services(default_timezone="Europe/London")

        assert services.context.default.iana_id == "Europe/London"


class TestProcessWideServices:
    """Tests for get_services/set_services/reset_services/peek_services."""

    def test_get_services_builds_once(self):
        assert peek_services() is None

        services = get_services()

        assert get_services() is services
        assert peek_services() is services
        assert isinstance(services.context, AmbientZoneContext)

    def test_get_services_reads_settings(self, monkeypatch):
        monkeypatch.setenv("TIMEMACHINE_DEFAULT_TIMEZONE", "Asia/Tokyo")
        monkeypatch.setenv(
            "TIMEMACHINE_CALENDAR_MAPS",
            '[{"iana_id": "Asia/Tehran", "calendar": "persian", "culture": "fa-IR"}]',
        )

        services = get_services()

        assert services.context.current().iana_id == "Asia/Tokyo"
        assert services.zones.resolve("Asia/Tehran").calendar is PERSIAN
        assert services.settings.default_timezone == "Asia/Tokyo"

    def test_set_and_reset(self):
        services = build_services(default_timezone="UTC")

        set_services(services)
        assert get_services() is services

        reset_services()
        assert peek_services() is None


class TestPackageHelpers:
    """Tests for the convenience functions on the package."""

    def test_now_and_current_zone_follow_scope(self, services):
        assert timemachine.current_zone().iana_id == "UTC"

        with timemachine.timezone_scope("Asia/Tehran"):
            assert timemachine.current_zone().iana_id == "Asia/Tehran"
            assert timemachine.now().calendar is PERSIAN

        assert timemachine.now().zone_id == "UTC"

    def test_now_with_zone(self, services):
        assert timemachine.now("Europe/Istanbul").zone_id == "Europe/Istanbul"

    def test_resolve_zone_uses_process_cache(self, services):
        assert timemachine.resolve_zone("Asia/Tehran") is services.zones.resolve("Asia/Tehran")

    def test_utc_now_is_aware(self, services):
        assert timemachine.utc_now().utcoffset().total_seconds() == 0

    def test_version(self):
        assert timemachine.__version__ == "1.0.0"
