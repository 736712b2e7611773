"""Per-resource slot arrays and the index math that maps time windows onto them."""

from __future__ import annotations

import math
from typing import Iterable, Iterator, Optional

from slotplanner.domain.constraints import ScheduleConfig
from slotplanner.domain.models import Activity, SlotRange, TimeWindow


class ResourceTimeGrid:
    """One ordered slot sequence per resource; `None` marks an empty slot.

    The grid only grows: resources are appended, never removed, and a slot
    holds at most one activity reference.
    """

    def __init__(self, config: ScheduleConfig, resource_names: Iterable[str] = ()) -> None:
        self._config = config
        self._slots_per_day = config.slots_per_day
        self._day_offsets = {
            day: index * self._slots_per_day
            for index, day in enumerate(config.active_weekdays)
        }
        self._slots: dict[str, list[Optional[Activity]]] = {}
        for name in resource_names:
            self.add_resource(name)

    @property
    def slots_per_day(self) -> int:
        return self._slots_per_day

    @property
    def total_slots(self) -> int:
        return self._slots_per_day * len(self._day_offsets)

    @property
    def resource_names(self) -> list[str]:
        return list(self._slots)

    def __contains__(self, resource_name: object) -> bool:
        return resource_name in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[tuple[str, list[Optional[Activity]]]]:
        return iter(self._slots.items())

    def add_resource(self, name: str) -> None:
        if name in self._slots:
            raise ValueError(f"resource '{name}' already has a grid row")
        self._slots[name] = [None] * self.total_slots

    def row(self, name: str) -> list[Optional[Activity]]:
        return self._slots[name]

    def day_offset(self, day: str) -> Optional[int]:
        return self._day_offsets.get(day)

    def day_for_index(self, index: int) -> str:
        return self._config.active_weekdays[index // self._slots_per_day]

    def slot_ranges(self, window: TimeWindow) -> tuple[SlotRange, ...]:
        """Absolute ranges for every active weekday of the window.

        Days outside the active set, windows starting before the schedule, and
        ranges spilling past the end of their day yield nothing for that day. A
        window that ends at or before its start yields nothing at all.
        """
        time_offset = window.start_minute - self._config.schedule_start_minute
        if time_offset < 0 or window.duration_minutes <= 0:
            return ()
        interval = self._config.interval_minutes
        slots_needed = math.ceil(window.duration_minutes / interval)
        start_in_day = time_offset // interval

        ranges: list[SlotRange] = []
        for day in window.weekdays:
            day_offset = self._day_offsets.get(day)
            if day_offset is None:
                continue
            start = day_offset + start_in_day
            end = start + slots_needed
            if end > day_offset + self._slots_per_day:
                continue
            ranges.append(SlotRange(start, end))
        return tuple(ranges)

    def is_free(self, name: str, slot_range: SlotRange) -> bool:
        row = self._slots[name]
        return all(row[index] is None for index in range(slot_range.start, slot_range.end))

    def has_gap_conflict(self, name: str, slot_range: SlotRange, gap_slots: int) -> bool:
        """True when an occupied slot sits within `gap_slots` of the range.

        A range starting at absolute index 0 has nothing before it, so only
        the trailing side is scanned there.
        """
        if gap_slots <= 0:
            return False
        row = self._slots[name]
        if slot_range.start != 0:
            for distance in range(1, gap_slots + 1):
                index = slot_range.start - distance
                if index >= 0 and row[index] is not None:
                    return True
        for distance in range(gap_slots):
            index = slot_range.end + distance
            if index < len(row) and row[index] is not None:
                return True
        return False

    def occupy(
        self,
        name: str,
        ranges: Iterable[SlotRange],
        activity: Activity,
        *,
        overwrite: bool = False,
    ) -> list[Activity]:
        """Write `activity` into every slot; returns occupants displaced by `overwrite`."""
        row = self._slots[name]
        ranges = tuple(ranges)
        if not overwrite:
            for slot_range in ranges:
                for index in range(slot_range.start, slot_range.end):
                    if row[index] is not None:
                        raise ValueError(
                            f"slot {index} of '{name}' is already held by {row[index].code}"
                        )
        displaced: list[Activity] = []
        for slot_range in ranges:
            for index in range(slot_range.start, slot_range.end):
                occupant = row[index]
                if occupant is not None and occupant is not activity and occupant not in displaced:
                    displaced.append(occupant)
                row[index] = activity
        return displaced

    def occupied_ranges(self, name: str) -> list[tuple[SlotRange, Activity]]:
        """Contiguous runs of one activity within a resource row, split at day boundaries."""
        runs: list[tuple[SlotRange, Activity]] = []
        row = self._slots[name]
        current: Optional[Activity] = None
        run_start = 0
        for index, occupant in enumerate([*row, None]):
            at_day_boundary = index % self._slots_per_day == 0
            if occupant is current and not at_day_boundary:
                continue
            if current is not None:
                runs.append((SlotRange(run_start, index), current))
            current = occupant
            run_start = index
        return runs

    def as_dict(self) -> dict[str, list[Optional[Activity]]]:
        return {name: list(row) for name, row in self._slots.items()}
