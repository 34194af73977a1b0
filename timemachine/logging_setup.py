"""
Central logging configuration for timemachine.

Stamps every record with the zone scope of the call chain that emitted it and
keeps noisy third-party loggers quiet.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .context import AmbientZoneContext

NO_ZONE = "-"

_LOG_FORMAT = "[%(asctime)s] [%(timezone)s] %(levelname)s - %(name)s - %(message)s"

# Third-party libraries that generate excessive debug logs
_THIRD_PARTY_LEVELS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "aiohttp.web_log": logging.WARNING,
    "asyncio": logging.WARNING,
}


class ZoneContextFilter(logging.Filter):
    """Add the current zone scope to all log records as ``record.timezone``."""

    def __init__(self, context: AmbientZoneContext | None = None) -> None:
        super().__init__()
        self._context = context

    def filter(self, record: logging.LogRecord) -> bool:
        """Add the zone id, or ``"-"`` outside any scope.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        context = self._context
        if context is None:
            # Never build services from inside a log call
            from .services import peek_services

            services = peek_services()
            context = services.context if services is not None else None

        zone = context.current_override() if context is not None else None
        record.timezone = zone.iana_id if zone is not None else NO_ZONE
        return True


def configure_logging(debug_mode: bool = False, force_debug: bool | None = None) -> None:
    """
    Configure logging levels for timemachine.

    Args:
        debug_mode: Whether to enable debug logging for timemachine modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        TIMEMACHINE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        TIMEMACHINE_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("TIMEMACHINE_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("TIMEMACHINE_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    zone_filter = ZoneContextFilter()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler.addFilter(zone_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, ZoneContextFilter) for f in existing_handler.filters):
                existing_handler.addFilter(zone_filter)

    for logger_name, level in _THIRD_PARTY_LEVELS.items():
        logging.getLogger(logger_name).setLevel(level)
    logging.getLogger("timemachine").setLevel(logging.DEBUG if final_debug else logging.INFO)

    if final_debug:
        root_logger.info("Debug logging enabled for timemachine modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("timemachine", *_THIRD_PARTY_LEVELS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
