"""Settings management using Pydantic for type validation and configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, PrivateAttr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..calendars import DayOfWeek, get_calendar
from ..cultures import get_culture
from ..maps import CalendarMap
from ..zones import is_valid_zone

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CalendarMapConfig(BaseModel):
    """Calendar settings for one zone as written in configuration."""

    iana_id: str = Field(description="IANA zone identifier, e.g. Asia/Tehran")
    calendar: str = Field(default="gregorian", description="Calendar system: gregorian or persian")
    culture: str = Field(default="invariant", description="Culture name, e.g. fa-IR")
    first_day_of_week: str | None = Field(
        default=None, description="First day of week by name; culture default when unset"
    )

    @field_validator("iana_id")
    @classmethod
    def _validate_iana_id(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_zone(value):
            raise ValueError(f"Unknown time zone: {value!r}")
        return value

    @field_validator("calendar")
    @classmethod
    def _validate_calendar(cls, value: str) -> str:
        return get_calendar(value).name

    @field_validator("culture")
    @classmethod
    def _validate_culture(cls, value: str) -> str:
        return get_culture(value).name

    @field_validator("first_day_of_week")
    @classmethod
    def _validate_first_day_of_week(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return DayOfWeek.from_name(value).name.lower()

    def to_map(self) -> CalendarMap:
        """Build the registry entry this configuration describes."""
        return CalendarMap(
            iana_id=self.iana_id,
            calendar=get_calendar(self.calendar),
            culture=get_culture(self.culture),
            first_day_of_week=(
                DayOfWeek.from_name(self.first_day_of_week) if self.first_day_of_week else None
            ),
        )


class TimeMachineSettings(BaseSettings):
    """Application settings with environment variable support.

    Values come from, in increasing priority: field defaults, the YAML config
    file, environment variables (``TIMEMACHINE_*`` and ``.env``), and keyword
    arguments.
    """

    _config_path: Path | None = PrivateAttr(default=None)

    default_timezone: str | None = Field(
        default=None, description="Default zone id; the host's zone is detected when unset"
    )
    timezone_header: str = Field(
        default="X-Timezone", description="Request header carrying the caller's zone id"
    )
    log_level: str = Field(default="INFO", description="Root log level")
    debug: bool = Field(default=False, description="Enable debug logging")
    calendar_maps: list[CalendarMapConfig] = Field(
        default_factory=list, description="Per-zone calendar and culture settings"
    )
    config_dir: Path = Field(
        default_factory=lambda: Path.home() / ".config" / "timemachine",
        description="Directory searched for config.yaml",
    )

    model_config = SettingsConfigDict(
        env_prefix="TIMEMACHINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    def __init__(self, **kwargs: Any) -> None:
        config_file = kwargs.pop("_config_file", None)
        super().__init__(**kwargs)
        self._config_path = Path(config_file) if config_file is not None else None
        self._load_yaml_config()

    @field_validator("default_timezone")
    @classmethod
    def _validate_default_timezone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not is_valid_zone(value):
            raise ValueError(f"Unknown time zone: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    def _find_config_file(self) -> Path | None:
        """Find config file: explicit path, then the project directory, then user home."""
        if self._config_path is not None:
            if self._config_path.exists():
                return self._config_path
            logger.warning("Config file %s does not exist", self._config_path)
            return None

        project_root = Path(__file__).resolve().parent.parent.parent
        project_config = project_root / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _load_yaml_config(self) -> None:
        """Apply values from the YAML config file to fields not set explicitly."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open(encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logger.warning("Could not load YAML config from %s: %s", config_file, e)
            return

        if not config_data:
            return
        if not isinstance(config_data, dict):
            logger.warning("Ignoring YAML config %s: top level must be a mapping", config_file)
            return

        section = config_data.get("timemachine", config_data)
        if not isinstance(section, dict):
            logger.warning(
                "Ignoring YAML config %s: timemachine section must be a mapping", config_file
            )
            return
        explicit = set(self.model_fields_set)
        for key, value in section.items():
            if key not in type(self).model_fields:
                logger.debug("Ignoring unknown config key %r in %s", key, config_file)
                continue
            if key in explicit:
                continue
            try:
                setattr(self, key, value)
            except ValidationError as e:
                logger.warning("Invalid value for %r in %s: %s", key, config_file, e)

        logger.debug("Loaded YAML config from %s", config_file)


_settings_instance: TimeMachineSettings | None = None


def get_settings() -> TimeMachineSettings:
    """Get the global settings instance, creating it lazily if needed.

    Raises:
        ValidationError: If environment variables hold invalid values.
    """
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = TimeMachineSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
