"""Unit tests for timemachine.context module.

Covers scope semantics and isolation of the ambient zone between threads and
asyncio tasks.
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from timemachine import context as context_module
from timemachine.context import AmbientZoneContext
from timemachine.exceptions import InvalidArgumentError, UnknownZoneError
from timemachine.zones import ZoneCache

pytestmark = pytest.mark.unit


class TestDefaultZone:
    """Tests for the default zone."""

    def test_explicit_default(self, services):
        assert services.context.default.iana_id == "UTC"
        assert services.context.current().iana_id == "UTC"

    def test_default_is_detected_lazily(self, monkeypatch):
        calls = []

        def fake_detect():
            calls.append(1)
            return "Europe/London"

        monkeypatch.setattr(context_module, "detect_system_timezone", fake_detect)
        context = AmbientZoneContext(ZoneCache())

        assert calls == []
        assert context.default.iana_id == "Europe/London"
        assert context.default.iana_id == "Europe/London"
        assert calls == [1]

    def test_default_can_be_replaced(self, services, tehran):
        services.context.default = "Asia/Tehran"

        assert services.context.current() is tehran

    def test_default_rejects_none(self, services):
        with pytest.raises(InvalidArgumentError):
            services.context.default = None


class TestScopes:
    """Tests for start_scope/end_scope and scope()."""

    def test_start_and_end_scope(self, services, tehran):
        context = services.context

        assert context.start_scope("Asia/Tehran") is tehran
        assert context.current() is tehran

        context.end_scope()
        assert context.current().iana_id == "UTC"
        assert context.current_override() is None

    def test_start_scope_replaces_instead_of_stacking(self, services, london):
        context = services.context
        context.start_scope("Asia/Tehran")
        context.start_scope(london)

        assert context.current() is london

        context.end_scope()
        assert context.current().iana_id == "UTC"

    def test_scope_context_manager(self, services, tehran):
        with services.context.scope(tehran) as zone:
            assert zone is tehran
            assert services.context.current() is tehran

        assert services.context.current().iana_id == "UTC"

    def test_scope_is_released_on_exception(self, services):
        with pytest.raises(RuntimeError, match="boom"):
            with services.context.scope("Asia/Tehran"):
                raise RuntimeError("boom")

        assert services.context.current_override() is None

    def test_nested_scopes_restore_outer(self, services):
        context = services.context

        with context.scope("Asia/Tehran"):
            with context.scope("Europe/London"):
                assert context.current().iana_id == "Europe/London"
            assert context.current().iana_id == "Asia/Tehran"

    def test_none_zone_raises(self, services):
        with pytest.raises(InvalidArgumentError):
            services.context.start_scope(None)
        with pytest.raises(InvalidArgumentError):
            with services.context.scope(None):
                pass

    def test_unknown_zone_raises_and_leaves_context_untouched(self, services):
        with pytest.raises(UnknownZoneError):
            services.context.start_scope("Nowhere/Special")

        assert services.context.current_override() is None

    def test_wrong_type_raises(self, services):
        with pytest.raises(InvalidArgumentError):
            services.context.start_scope(3.5)


class TestThreadIsolation:
    """Tests for scope isolation between threads."""

    def test_other_thread_sees_default(self, services):
        seen = []

        with services.context.scope("Asia/Tehran"):
            thread = threading.Thread(target=lambda: seen.append(services.context.current().iana_id))
            thread.start()
            thread.join()

        assert seen == ["UTC"]

    def test_scope_in_thread_does_not_leak(self, services):
        def worker():
            services.context.start_scope("Asia/Tehran")
            return services.context.current().iana_id

        with ThreadPoolExecutor(max_workers=1) as pool:
            assert pool.submit(worker).result() == "Asia/Tehran"

        assert services.context.current().iana_id == "UTC"

    def test_wrap_carries_scope_into_thread(self, services):
        with services.context.scope("Asia/Tehran"):
            bound = services.context.wrap(lambda: services.context.current().iana_id)

        assert services.context.current().iana_id == "UTC"
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = [pool.submit(bound).result() for _ in range(4)]

        assert results == ["Asia/Tehran"] * 4

    def test_wrap_preserves_metadata(self, services):
        def named_function():
            """Docstring."""

        bound = services.context.wrap(named_function)

        assert bound.__name__ == "named_function"
        assert bound.__doc__ == "Docstring."


class TestAsyncIsolation:
    """Tests for scope isolation between asyncio tasks."""

    @pytest.mark.asyncio
    async def test_concurrent_tasks_see_their_own_zone(self, services):
        async def scoped(zone_id):
            with services.context.scope(zone_id):
                await asyncio.sleep(0.01)
                first = services.context.current().iana_id
                await asyncio.sleep(0.01)
                return first, services.context.current().iana_id

        results = await asyncio.gather(
            scoped("Asia/Tehran"), scoped("Europe/London"), scoped("America/Los_Angeles")
        )

        assert results == [
            ("Asia/Tehran", "Asia/Tehran"),
            ("Europe/London", "Europe/London"),
            ("America/Los_Angeles", "America/Los_Angeles"),
        ]
        assert services.context.current().iana_id == "UTC"

    @pytest.mark.asyncio
    async def test_child_task_inherits_scope(self, services):
        async def child():
            return services.context.current().iana_id

        with services.context.scope("Asia/Tehran"):
            inherited = await asyncio.create_task(child())

        assert inherited == "Asia/Tehran"

    @pytest.mark.asyncio
    async def test_child_task_scope_does_not_leak_to_parent(self, services):
        async def child():
            services.context.start_scope("Europe/London")

        await asyncio.create_task(child())

        assert services.context.current().iana_id == "UTC"
