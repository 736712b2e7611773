"""Placement quality tiers, aggregate metrics, and timeline segments for rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from slotplanner.domain.constraints import ScheduleConfig
from slotplanner.domain.models import (
    Activity,
    PlacementTier,
    ScheduleMetrics,
    normalize_room_token,
    split_resource_name,
)
from slotplanner.services.time_grid import ResourceTimeGrid


@dataclass(frozen=True)
class TimelineSegment:
    resource_name: str
    day: str
    start_minute: int
    end_minute: int
    offset_minutes: int
    duration_minutes: int
    activity_code: str
    activity_title: str
    tier: PlacementTier

    def to_api_dict(self) -> dict[str, str | int]:
        return {
            "resource_name": self.resource_name,
            "day": self.day,
            "start_minute": self.start_minute,
            "end_minute": self.end_minute,
            "offset_minutes": self.offset_minutes,
            "duration_minutes": self.duration_minutes,
            "activity_code": self.activity_code,
            "activity_title": self.activity_title,
            "tier": int(self.tier),
        }


def classify_placement(activity: Activity, config: ScheduleConfig) -> PlacementTier:
    """Rank a placed activity against its historical and preferred locations."""
    if activity.resource_name is None:
        return PlacementTier.UNRATED

    placed_building, placed_room = split_resource_name(activity.resource_name)
    if activity.building_code is None:
        return PlacementTier.DESIRED
    if activity.building_code == placed_building:
        if activity.room_code is None:
            return PlacementTier.DESIRED
        if placed_room is not None and (
            normalize_room_token(activity.room_code) == normalize_room_token(placed_room)
        ):
            return PlacementTier.DESIRED
        return PlacementTier.SAME_BUILDING
    if placed_building in config.preferred_buildings(activity.department):
        return PlacementTier.PREFERENCE
    return PlacementTier.OTHER


def compute_metrics(activities: Iterable[Activity], config: ScheduleConfig) -> ScheduleMetrics:
    """Tally tiers over every activity and stamp each placed activity with its tier."""
    counts = {tier: 0 for tier in PlacementTier}
    unscheduled = 0
    for activity in activities:
        if not activity.is_placed:
            activity.tier = PlacementTier.UNRATED
            unscheduled += 1
            continue
        activity.tier = classify_placement(activity, config)
        counts[activity.tier] += 1
    return ScheduleMetrics(
        desired=counts[PlacementTier.DESIRED],
        same_building=counts[PlacementTier.SAME_BUILDING],
        preference=counts[PlacementTier.PREFERENCE],
        other=counts[PlacementTier.OTHER],
        unscheduled=unscheduled,
    )


def build_timeline_segments(
    grid: ResourceTimeGrid,
    config: ScheduleConfig,
) -> list[TimelineSegment]:
    """Merge occupied slots into per-day segments, resources sorted by name.

    `offset_minutes` positions a segment on a linear week axis where each
    active day spans the full schedule window.
    """
    interval = config.interval_minutes
    day_span_minutes = config.schedule_end_minute - config.schedule_start_minute
    segments: list[TimelineSegment] = []
    for resource_name in sorted(grid.resource_names):
        for slot_range, activity in grid.occupied_ranges(resource_name):
            day_index, slot_in_day = divmod(slot_range.start, grid.slots_per_day)
            start_minute = config.schedule_start_minute + slot_in_day * interval
            duration = slot_range.length * interval
            segments.append(
                TimelineSegment(
                    resource_name=resource_name,
                    day=grid.day_for_index(slot_range.start),
                    start_minute=start_minute,
                    end_minute=start_minute + duration,
                    offset_minutes=day_index * day_span_minutes + slot_in_day * interval,
                    duration_minutes=duration,
                    activity_code=activity.code,
                    activity_title=activity.title,
                    tier=activity.tier,
                )
            )
    return segments
