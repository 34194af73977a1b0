"""aiohttp integration: run each request inside a time-zone scope.

The middleware asks a resolver for the caller's zone once per request,
resolves it through the zone cache and makes it current for the rest of the
handler chain. The scope is always left when the handler returns or raises.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from aiohttp import web

from .exceptions import UnknownZoneError
from .services import TimeMachineServices, get_services
from .zones import ZoneHandle

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE_HEADER = "X-Timezone"

SERVICES_KEY = web.AppKey("timemachine_services", TimeMachineServices)

# Returns a zone id, a ZoneHandle or None, directly or as an awaitable
ZoneResolver = Callable[[web.Request], Any]


def header_timezone_resolver(header: str = DEFAULT_TIMEZONE_HEADER) -> ZoneResolver:
    """Return a resolver that reads the zone id from a request header.

    Args:
        header: Header name, ``X-Timezone`` by default

    Returns:
        Resolver returning the stripped header value, or None when absent
    """

    def _resolve(request: web.Request) -> str | None:
        return request.headers.get(header, "").strip() or None

    return _resolve


def timezone_scope_middleware(
    resolver: ZoneResolver | None = None,
    services: TimeMachineServices | None = None,
) -> Callable[..., Any]:
    """Create middleware that scopes each request to the caller's zone.

    The resolved handle is stored in ``request["timezone"]``. Requests whose
    resolver returns nothing run unscoped, under the default zone. Unknown zone
    ids are answered with ``400 {"error": "unknown_timezone"}``.

    Args:
        resolver: Sync or async callable returning a zone id or handle per request
        services: Services to use; falls back to the app's, then the process-wide ones

    Returns:
        aiohttp middleware
    """
    zone_resolver = resolver or header_timezone_resolver()

    @web.middleware
    async def _timezone_scope(
        request: web.Request, handler: Callable[[web.Request], Any]
    ) -> web.StreamResponse:
        svc = services or request.app.get(SERVICES_KEY) or get_services()

        requested = zone_resolver(request)
        if inspect.isawaitable(requested):
            requested = await requested

        if not requested:
            request["timezone"] = svc.context.current()
            return await handler(request)

        try:
            zone = requested if isinstance(requested, ZoneHandle) else svc.zones.resolve(requested)
        except UnknownZoneError as e:
            logger.warning("Rejected request %s %s: %s", request.method, request.path, e)
            return web.json_response(
                {"error": "unknown_timezone", "timezone": e.iana_id, "message": str(e)},
                status=400,
            )

        with svc.context.scope(zone):
            request["timezone"] = zone
            return await handler(request)

    return _timezone_scope


def setup_time_machine(
    app: web.Application,
    resolver: ZoneResolver | None = None,
    services: TimeMachineServices | None = None,
) -> TimeMachineServices:
    """Register services on ``app`` and install the scope middleware.

    When no resolver is given, the zone is read from the header named by
    ``services.settings.timezone_header`` (``X-Timezone`` by default).

    Returns:
        The services now stored in ``app[SERVICES_KEY]``
    """
    svc = services or get_services()
    if resolver is None:
        header = svc.settings.timezone_header if svc.settings is not None else None
        resolver = header_timezone_resolver(header or DEFAULT_TIMEZONE_HEADER)

    app[SERVICES_KEY] = svc
    app.middlewares.append(timezone_scope_middleware(resolver, svc))
    logger.debug("Installed timezone scope middleware")
    return svc
