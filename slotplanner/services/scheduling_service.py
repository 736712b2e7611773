"""Schedule generation orchestration: config resolution, ingestion, and runs."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping, Optional, Sequence

from slotplanner.domain.constraints import (
    ScheduleConfig,
    normalize_preferences,
    normalize_weekdays,
    validate_schedule_config,
)
from slotplanner.domain.models import Activity, Resource, minutes_from_clock
from slotplanner.repository.data_repository import ScheduleDataRepository, Source
from slotplanner.services.schedule_run import ScheduleResult, ScheduleRun
from slotplanner.utils.config import Settings, get_settings
from slotplanner.utils.logger import get_logger


logger = get_logger(__name__)


class ScheduleValidationError(Exception):
    """Raised when schedule inputs are rejected before a run starts."""


class SchedulingService:
    """Builds validated configurations and executes one isolated run per call."""

    def __init__(
        self,
        repository: Optional[ScheduleDataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or ScheduleDataRepository()

    @property
    def repository(self) -> ScheduleDataRepository:
        return self._repository

    def build_config(
        self,
        *,
        schedule_start: Optional[str] = None,
        schedule_end: Optional[str] = None,
        active_weekdays: Optional[Iterable[str]] = None,
        interval_minutes: Optional[int] = None,
        min_gap_minutes: Optional[int] = None,
        preferences: Optional[Mapping[str, Iterable[str]]] = None,
        seed: Optional[int] = None,
    ) -> ScheduleConfig:
        """Merge explicit values over settings defaults and validate the result."""
        try:
            config = ScheduleConfig(
                schedule_start_minute=minutes_from_clock(
                    schedule_start or self._settings.default_schedule_start
                ),
                schedule_end_minute=minutes_from_clock(
                    schedule_end or self._settings.default_schedule_end
                ),
                active_weekdays=normalize_weekdays(
                    active_weekdays
                    if active_weekdays is not None
                    else self._settings.default_active_weekdays
                ),
                interval_minutes=(
                    interval_minutes
                    if interval_minutes is not None
                    else self._settings.default_interval_minutes
                ),
                min_gap_minutes=(
                    min_gap_minutes
                    if min_gap_minutes is not None
                    else self._settings.default_min_gap_minutes
                ),
                preferences=normalize_preferences(preferences),
                seed=seed,
            )
            validate_schedule_config(config)
        except ValueError as exc:
            raise ScheduleValidationError(str(exc)) from exc
        return config

    def generate_schedule(
        self,
        activities: Sequence[Activity],
        resources: Sequence[Resource],
        config: ScheduleConfig,
    ) -> ScheduleResult:
        """Run all placement phases on `activities`; the resource list is not mutated."""
        try:
            validate_schedule_config(config)
        except ValueError as exc:
            raise ScheduleValidationError(str(exc)) from exc

        names = [resource.name for resource in resources]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ScheduleValidationError(f"resource names must be unique: {duplicates}")
        if any(resource.is_overflow for resource in resources):
            raise ScheduleValidationError("overflow resources are created by the engine only")

        run = ScheduleRun(config=config, resources=resources, settings=self._settings)
        result = run.execute(activities)
        if result.unscheduled:
            logger.warning(
                "Activities left unscheduled | count=%s | codes=%s",
                len(result.unscheduled),
                [activity.code for activity in result.unscheduled],
            )
        return result

    def generate_from_files(
        self,
        *,
        events: Source,
        locations: Source,
        config: ScheduleConfig,
        preferences: Optional[Source] = None,
    ) -> ScheduleResult:
        activities = self._repository.load_activities(events)
        resources = self._repository.load_resources(locations)
        if preferences is not None:
            loaded = self._repository.load_preferences(preferences)
            config = replace(config, preferences={**dict(config.preferences), **loaded})
        return self.generate_schedule(activities, resources, config)
