"""Single schedule generation run: placement primitive and phased allocation.

A `ScheduleRun` owns every piece of mutable state for one invocation (grid,
failure counter, overflow counter, randomizer). Construct a fresh run per
generation; runs never share state.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from slotplanner.domain.constraints import ScheduleConfig
from slotplanner.domain.models import (
    Activity,
    PlacementPreconditionError,
    Resource,
    ScheduleMetrics,
    SlotRange,
)
from slotplanner.services.randomizer import DeterministicRandom
from slotplanner.services.reporting_service import compute_metrics
from slotplanner.services.time_grid import ResourceTimeGrid
from slotplanner.utils.config import Settings, get_settings
from slotplanner.utils.logger import get_run_logger


OVERFLOW_CAPACITY = sys.maxsize


@dataclass(frozen=True)
class ScheduleResult:
    seed: int
    activities: list[Activity]
    resources: list[Resource]
    grid: ResourceTimeGrid
    failures: int
    metrics: ScheduleMetrics
    unscheduled: list[Activity]

    @property
    def overflow_resources(self) -> list[Resource]:
        return [resource for resource in self.resources if resource.is_overflow]

    @property
    def placed(self) -> list[Activity]:
        return [activity for activity in self.activities if activity.is_placed]


class ScheduleRun:
    def __init__(
        self,
        config: ScheduleConfig,
        resources: Sequence[Resource],
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.config = config
        self.rng = DeterministicRandom(config.seed)
        self.seed = self.rng.seed
        self.resources: list[Resource] = list(resources)
        self._resources_by_name = {resource.name: resource for resource in self.resources}
        if len(self._resources_by_name) != len(self.resources):
            raise ValueError("resource names must be unique")
        self.grid = ResourceTimeGrid(config, (resource.name for resource in self.resources))
        self.failures = 0
        self.overflow_count = 0
        self._logger = get_run_logger(__name__, self.seed)

    def place(
        self,
        activity: Activity,
        resource: Resource,
        *,
        override_checks: bool = False,
    ) -> bool:
        """Transactionally place `activity` in `resource`.

        `override_checks` skips the capacity, minimum-gap and overlap rules so a
        fixed placement can be seeded; slots it claims are taken from any
        current occupant. The schedule bounds always apply.
        """
        if resource.name not in self.grid:
            raise PlacementPreconditionError(f"resource '{resource.name}' is not part of this run")

        window = activity.window
        if (
            window.start_minute < self.config.schedule_start_minute
            or window.end_minute > self.config.schedule_end_minute
        ):
            self._log_rejection(activity, resource, "outside_schedule_bounds")
            return False

        ranges = self.grid.slot_ranges(window)
        if not ranges:
            self._log_rejection(activity, resource, "no_slot_ranges")
            return False

        if not activity.record_slot_ranges(ranges):
            raise PlacementPreconditionError(
                f"activity {activity.code} already holds slot ranges {activity.slot_ranges}"
            )

        reason = self._rejection_reason(activity, resource, ranges, override_checks)
        if reason is not None:
            activity.clear_slot_ranges()
            self._log_rejection(activity, resource, reason)
            return False

        displaced = self.grid.occupy(resource.name, ranges, activity, overwrite=override_checks)
        if displaced:
            self._logger.warning(
                "Override displaced occupants | activity=%s | resource=%s | displaced=%s",
                activity.code,
                resource.name,
                [item.code for item in displaced],
            )
        activity.commit(resource.name)
        return True

    def _rejection_reason(
        self,
        activity: Activity,
        resource: Resource,
        ranges: Sequence[SlotRange],
        override_checks: bool,
    ) -> Optional[str]:
        if override_checks:
            return None
        if activity.seats > resource.capacity:
            return "capacity"
        gap_slots = self.config.gap_slots
        for slot_range in ranges:
            if self.grid.has_gap_conflict(resource.name, slot_range, gap_slots):
                return "minimum_gap"
        for slot_range in ranges:
            if not self.grid.is_free(resource.name, slot_range):
                return "overlap"
        return None

    def _log_rejection(self, activity: Activity, resource: Resource, reason: str) -> None:
        self._logger.debug(
            "Placement rejected | activity=%s | resource=%s | reason=%s",
            activity.code,
            resource.name,
            reason,
        )

    def find_resource(self, name: str) -> Optional[Resource]:
        return self._resources_by_name.get(name)

    def historical_resource(self, activity: Activity) -> Optional[Resource]:
        raw_name = f"{activity.building_code} {activity.room_code}"
        resource = self.find_resource(raw_name)
        if resource is None and activity.historical_resource_name is not None:
            resource = self.find_resource(activity.historical_resource_name)
        return resource

    def resources_in_building(self, building: str) -> list[Resource]:
        return [resource for resource in self.resources if resource.building == building]

    def _place_first_fit(self, activity: Activity, candidates: Iterable[Resource]) -> bool:
        return any(self.place(activity, resource) for resource in candidates)

    def add_overflow_resource(self) -> Resource:
        name = f"{self._settings.overflow_building_code} {self.overflow_count}"
        while name in self.grid:
            self.overflow_count += 1
            name = f"{self._settings.overflow_building_code} {self.overflow_count}"
        resource = Resource(
            name=name,
            capacity=OVERFLOW_CAPACITY,
            features=frozenset({self._settings.overflow_feature_tag}),
            is_overflow=True,
        )
        self.resources.append(resource)
        self._resources_by_name[name] = resource
        self.grid.add_resource(name)
        self.overflow_count += 1
        self._logger.info("Overflow resource created | resource=%s", name)
        return resource

    def historical_phase(self, activities: Iterable[Activity]) -> tuple[list[Activity], list[Activity]]:
        same_building_pool: list[Activity] = []
        preference_pool: list[Activity] = []
        for activity in activities:
            if activity.building_code is None:
                preference_pool.append(activity)
                continue
            if activity.room_code is None:
                same_building_pool.append(activity)
                continue
            resource = self.historical_resource(activity)
            if resource is not None and self.place(activity, resource):
                continue
            self.failures += 1
            same_building_pool.append(activity)
        return same_building_pool, preference_pool

    def same_building_phase(self, pool: list[Activity]) -> list[Activity]:
        self.rng.shuffle(pool)
        preference_pool: list[Activity] = []
        for activity in pool:
            candidates = self.resources_in_building(activity.building_code or "")
            if not candidates:
                preference_pool.append(activity)
                continue
            if self._place_first_fit(activity, candidates):
                continue
            self.failures += 1
            preference_pool.append(activity)
        return preference_pool

    def preference_candidates(self, activity: Activity) -> list[Resource]:
        preferred: list[Resource] = []
        seen: set[str] = set()
        for building in self.config.preferred_buildings(activity.department):
            for resource in self.resources_in_building(building):
                if resource.name not in seen:
                    seen.add(resource.name)
                    preferred.append(resource)
        remaining = [resource for resource in self.resources if resource.name not in seen]
        return preferred + remaining

    def preference_phase(self, pool: list[Activity]) -> list[Activity]:
        self.rng.shuffle(pool)
        unscheduled: list[Activity] = []
        for activity in pool:
            if self._place_first_fit(activity, self.preference_candidates(activity)):
                continue
            self.failures += 1
            unscheduled.append(activity)
        return unscheduled

    def overflow_phase(self, pool: list[Activity]) -> list[Activity]:
        """Absorb leftovers into synthetic resources; at most one resource per leftover.

        Each pass must place at least one activity, otherwise the loop stops and
        the remaining activities stay unscheduled.
        """
        pending = list(pool)
        while pending:
            resource = self.add_overflow_resource()
            still_pending = [
                activity for activity in pending if not self.place(activity, resource)
            ]
            if len(still_pending) == len(pending):
                self._logger.warning(
                    "Overflow placement aborted | resource=%s | unscheduled=%s",
                    resource.name,
                    [activity.code for activity in still_pending],
                )
                pending = still_pending
                break
            pending = still_pending
        for activity in pending:
            activity.mark_unscheduled()
        return pending

    def execute(self, activities: Sequence[Activity]) -> ScheduleResult:
        for activity in activities:
            activity.reset()

        self._logger.info(
            "Schedule run started | activities=%s | resources=%s | total_slots=%s",
            len(activities),
            len(self.resources),
            self.grid.total_slots,
        )
        work_order = self.rng.shuffle(list(activities))

        same_building_pool, preference_pool = self.historical_phase(work_order)
        self._logger.info(
            "Historical phase completed | same_building_pool=%s | preference_pool=%s | failures=%s",
            len(same_building_pool),
            len(preference_pool),
            self.failures,
        )
        preference_pool.extend(self.same_building_phase(same_building_pool))
        self._logger.info(
            "Same-building phase completed | preference_pool=%s | failures=%s",
            len(preference_pool),
            self.failures,
        )
        overflow_pool = self.preference_phase(preference_pool)
        self._logger.info(
            "Preference phase completed | overflow_pool=%s | failures=%s",
            len(overflow_pool),
            self.failures,
        )
        unscheduled = self.overflow_phase(overflow_pool)

        metrics = compute_metrics(activities, self.config)
        self._logger.info(
            (
                "Schedule run completed | desired=%s | same_building=%s | preference=%s | "
                "other=%s | unscheduled=%s | overflow_resources=%s | failures=%s"
            ),
            metrics.desired,
            metrics.same_building,
            metrics.preference,
            metrics.other,
            metrics.unscheduled,
            self.overflow_count,
            self.failures,
        )
        return ScheduleResult(
            seed=self.seed,
            activities=list(activities),
            resources=list(self.resources),
            grid=self.grid,
            failures=self.failures,
            metrics=metrics,
            unscheduled=unscheduled,
        )
