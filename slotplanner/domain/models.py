"""Domain models for time-slot allocation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import NamedTuple, Optional


DAY_CODES_BY_NAME = {
    "sunday": "Su",
    "monday": "M",
    "tuesday": "T",
    "wednesday": "W",
    "thursday": "R",
    "friday": "F",
    "saturday": "Sa",
}
DAY_CODES = ("Su", "M", "T", "W", "R", "F", "Sa")

_DEPARTMENT_PATTERN = re.compile(r"[A-Za-z]+")
_ZERO_ROOM_TOKENS = frozenset({"00", "000"})


class PlacementPreconditionError(Exception):
    """Raised when an activity's outcome is written twice within one attempt."""


def minutes_from_clock(value: str) -> int:
    """Convert an "HH:MM" string to minutes from midnight."""
    hours, minutes = value.strip().split(":")[:2]
    return int(hours) * 60 + int(minutes)


def clock_from_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def derive_department(code: str) -> str:
    """Return the leading alphabetic prefix of an activity code ("CS 101 01" -> "CS")."""
    match = _DEPARTMENT_PATTERN.match(str(code).strip())
    return match.group(0).upper() if match else ""


def normalize_room_token(room: str) -> str:
    # Source data writes the building-wide room as "00" or "000"; resources use "0".
    return "0" if room in _ZERO_ROOM_TOKENS else room


def split_resource_name(name: str) -> tuple[str, Optional[str]]:
    parts = name.split(" ", 1)
    if len(parts) == 1 or not parts[1].strip():
        return parts[0], None
    return parts[0], parts[1].strip()


class SlotRange(NamedTuple):
    """Half-open range of absolute slot indices in a resource grid."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


class PlacementState(str, Enum):
    UNASSIGNED = "UNASSIGNED"
    PLACED = "PLACED"
    UNSCHEDULED = "UNSCHEDULED"


class PlacementTier(IntEnum):
    UNRATED = 0
    DESIRED = 1
    SAME_BUILDING = 2
    PREFERENCE = 3
    OTHER = 4


@dataclass(frozen=True)
class TimeWindow:
    start_minute: int
    end_minute: int
    weekdays: tuple[str, ...]

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def label(self) -> str:
        return f"{clock_from_minutes(self.start_minute)} - {clock_from_minutes(self.end_minute)}"

    @property
    def days_label(self) -> str:
        return "".join(self.weekdays)


@dataclass(frozen=True)
class Resource:
    name: str
    capacity: int
    features: frozenset[str] = frozenset()
    is_overflow: bool = False

    @property
    def building(self) -> str:
        return split_resource_name(self.name)[0]

    @property
    def room(self) -> Optional[str]:
        return split_resource_name(self.name)[1]


@dataclass(frozen=True)
class Assignment:
    resource_name: str
    slot_ranges: tuple[SlotRange, ...]


@dataclass(eq=False)
class Activity:
    """A schedulable unit plus the mutable outcome of the current run.

    Identity matters: grids hold references to the activity object itself, so
    equality is identity and two rows with the same code stay distinct.
    """

    code: str
    title: str
    seats: int
    capacity: int
    window: TimeWindow
    building_code: Optional[str] = None
    room_code: Optional[str] = None
    max_capacity: Optional[int] = None
    state: PlacementState = field(default=PlacementState.UNASSIGNED)
    slot_ranges: tuple[SlotRange, ...] = field(default=())
    resource_name: Optional[str] = None
    tier: PlacementTier = field(default=PlacementTier.UNRATED)

    @property
    def department(self) -> str:
        return derive_department(self.code)

    @property
    def historical_location(self) -> str:
        return f"{self.building_code or ''} {self.room_code or ''}".strip()

    @property
    def historical_resource_name(self) -> Optional[str]:
        if self.building_code is None or self.room_code is None:
            return None
        return f"{self.building_code} {normalize_room_token(self.room_code)}"

    @property
    def is_placed(self) -> bool:
        return self.state is PlacementState.PLACED

    @property
    def assignment(self) -> Optional[Assignment]:
        if not self.is_placed or self.resource_name is None:
            return None
        return Assignment(resource_name=self.resource_name, slot_ranges=self.slot_ranges)

    def record_slot_ranges(self, ranges: tuple[SlotRange, ...]) -> bool:
        """Write-once: returns False if ranges are already recorded."""
        if self.slot_ranges:
            return False
        self.slot_ranges = tuple(ranges)
        return True

    def clear_slot_ranges(self) -> None:
        if self.is_placed:
            raise PlacementPreconditionError(
                f"activity {self.code} is placed; reset it before clearing ranges"
            )
        self.slot_ranges = ()

    def commit(self, resource_name: str) -> None:
        if self.is_placed:
            raise PlacementPreconditionError(
                f"activity {self.code} is already placed in {self.resource_name}"
            )
        if not self.slot_ranges:
            raise PlacementPreconditionError(
                f"activity {self.code} has no recorded slot ranges to commit"
            )
        self.resource_name = resource_name
        self.state = PlacementState.PLACED

    def mark_unscheduled(self) -> None:
        if self.is_placed:
            raise PlacementPreconditionError(
                f"activity {self.code} is placed and cannot be marked unscheduled"
            )
        self.slot_ranges = ()
        self.state = PlacementState.UNSCHEDULED

    def reset(self) -> None:
        self.state = PlacementState.UNASSIGNED
        self.slot_ranges = ()
        self.resource_name = None
        self.tier = PlacementTier.UNRATED


@dataclass(frozen=True)
class ScheduleMetrics:
    desired: int
    same_building: int
    preference: int
    other: int
    unscheduled: int

    @property
    def total_placed(self) -> int:
        return self.desired + self.same_building + self.preference + self.other

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.desired, self.same_building, self.preference, self.other)

    def percentages(self) -> dict[str, float]:
        total = self.total_placed
        counts = {
            "desired": self.desired,
            "same_building": self.same_building,
            "preference": self.preference,
            "other": self.other,
        }
        if total == 0:
            return {key: 0.0 for key in counts}
        return {key: value * 100.0 / total for key, value in counts.items()}

    def to_api_dict(self) -> dict[str, int]:
        return {
            "desired": self.desired,
            "same_building": self.same_building,
            "preference": self.preference,
            "other": self.other,
            "unscheduled": self.unscheduled,
        }
