"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_ENV_PREFIX = "SLOTPLANNER_"


def _env(name: str, default: str) -> str:
    return os.environ.get(f"{_ENV_PREFIX}{name}", default)


def _env_int(name: str, default: int) -> int:
    raw_value = os.environ.get(f"{_ENV_PREFIX}{name}")
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{name} must be an integer") from exc


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    default_schedule_start: str
    default_schedule_end: str
    default_active_weekdays: tuple[str, ...]
    default_interval_minutes: int
    default_min_gap_minutes: int
    overflow_building_code: str
    overflow_feature_tag: str
    clock_time_regex: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process; call `get_settings.cache_clear()` to reload."""
    weekdays = tuple(
        item.strip()
        for item in _env(
            "ACTIVE_WEEKDAYS",
            "Monday,Tuesday,Wednesday,Thursday,Friday",
        ).split(",")
        if item.strip()
    )
    return Settings(
        app_name=_env("APP_NAME", "Slot Planner"),
        app_version=_env("APP_VERSION", "1.0.0"),
        log_level=_env("LOG_LEVEL", "INFO"),
        default_schedule_start=_env("SCHEDULE_START", "08:00"),
        default_schedule_end=_env("SCHEDULE_END", "22:00"),
        default_active_weekdays=weekdays,
        default_interval_minutes=_env_int("INTERVAL_MINUTES", 10),
        default_min_gap_minutes=_env_int("MIN_GAP_MINUTES", 10),
        overflow_building_code=_env("OVERFLOW_BUILDING_CODE", "UN"),
        overflow_feature_tag=_env("OVERFLOW_FEATURE_TAG", "Virtual"),
        clock_time_regex=r"^([01]?\d|2[0-3]):[0-5]\d$",
    )
