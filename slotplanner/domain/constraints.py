"""Domain-level validation rules for schedule generation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from slotplanner.domain.models import DAY_CODES, DAY_CODES_BY_NAME


@dataclass(frozen=True)
class ScheduleConfig:
    schedule_start_minute: int
    schedule_end_minute: int
    active_weekdays: tuple[str, ...]
    interval_minutes: int
    min_gap_minutes: int
    preferences: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    seed: Optional[int] = None

    @property
    def slots_per_day(self) -> int:
        return (self.schedule_end_minute - self.schedule_start_minute) // self.interval_minutes

    @property
    def total_slots(self) -> int:
        return self.slots_per_day * len(self.active_weekdays)

    @property
    def gap_slots(self) -> int:
        if self.min_gap_minutes == 0:
            return 0
        return math.ceil(self.min_gap_minutes / self.interval_minutes)

    def preferred_buildings(self, department: str) -> tuple[str, ...]:
        return tuple(self.preferences.get(department, ()))


def normalize_weekday(token: str) -> str:
    """Map "Monday"/"monday"/"M" to the single-token day code."""
    value = str(token).strip()
    if value in DAY_CODES:
        return value
    code = DAY_CODES_BY_NAME.get(value.lower())
    if code is None:
        raise ValueError(f"unknown weekday '{token}'")
    return code


def normalize_weekdays(tokens: Iterable[str]) -> tuple[str, ...]:
    return tuple(normalize_weekday(token) for token in tokens)


def normalize_preferences(
    preferences: Optional[Mapping[str, Iterable[str]]],
) -> dict[str, tuple[str, ...]]:
    normalized: dict[str, tuple[str, ...]] = {}
    for department, buildings in (preferences or {}).items():
        normalized[str(department).strip().upper()] = tuple(
            str(building).strip() for building in buildings
        )
    return normalized


def validate_schedule_config(config: ScheduleConfig) -> None:
    if config.interval_minutes <= 0:
        raise ValueError("interval_minutes must be > 0")
    if config.min_gap_minutes < 0:
        raise ValueError("min_gap_minutes must be >= 0")
    if config.schedule_start_minute < 0 or config.schedule_end_minute > 24 * 60:
        raise ValueError("schedule bounds must fall within one day")
    if config.schedule_end_minute <= config.schedule_start_minute:
        raise ValueError("schedule end must be later than schedule start")
    if config.slots_per_day == 0:
        raise ValueError("schedule window must span at least one interval")
    if not config.active_weekdays:
        raise ValueError("at least one active weekday is required")
    unknown = [day for day in config.active_weekdays if day not in DAY_CODES]
    if unknown:
        raise ValueError(f"unknown active weekdays: {unknown}")
    if len(set(config.active_weekdays)) != len(config.active_weekdays):
        raise ValueError("active weekdays must not repeat")
    if config.seed is not None and config.seed < 0:
        raise ValueError("seed must be >= 0")
