"""Configuration for timemachine."""

from .settings import (
    CalendarMapConfig,
    TimeMachineSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "CalendarMapConfig",
    "TimeMachineSettings",
    "get_settings",
    "reset_settings",
]
