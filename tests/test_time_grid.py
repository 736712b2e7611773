from __future__ import annotations

import pytest

from slotplanner.domain.constraints import ScheduleConfig
from slotplanner.domain.models import Activity, SlotRange, TimeWindow
from slotplanner.services.time_grid import ResourceTimeGrid


def _config(**overrides) -> ScheduleConfig:
    defaults = {
        "schedule_start_minute": 8 * 60,
        "schedule_end_minute": 10 * 60,
        "active_weekdays": ("M", "W", "F"),
        "interval_minutes": 10,
        "min_gap_minutes": 0,
        "seed": 1,
    }
    defaults.update(overrides)
    return ScheduleConfig(**defaults)


def _activity(code: str, start: int, end: int, days: tuple[str, ...] = ("M",)) -> Activity:
    return Activity(
        code=code,
        title=code,
        seats=10,
        capacity=10,
        window=TimeWindow(start_minute=start, end_minute=end, weekdays=days),
    )


def test_grid_length_is_days_times_slots_per_day() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    assert grid.slots_per_day == 12
    assert grid.total_slots == 36
    assert len(grid.row("A 1")) == 36


def test_slot_ranges_use_day_offsets_and_skip_inactive_days() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    window = TimeWindow(start_minute=510, end_minute=540, weekdays=("M", "T", "F"))
    assert grid.slot_ranges(window) == (SlotRange(3, 6), SlotRange(27, 30))


def test_partial_slot_duration_rounds_up() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    window = TimeWindow(start_minute=485, end_minute=500, weekdays=("W",))
    assert grid.slot_ranges(window) == (SlotRange(12, 14),)


def test_window_starting_before_schedule_yields_nothing() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    assert grid.slot_ranges(TimeWindow(start_minute=470, end_minute=500, weekdays=("M",))) == ()


def test_window_spilling_past_the_day_yields_nothing() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    assert grid.slot_ranges(TimeWindow(start_minute=570, end_minute=610, weekdays=("M",))) == ()


def test_disjoint_weekdays_yield_nothing() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    assert grid.slot_ranges(TimeWindow(start_minute=510, end_minute=540, weekdays=("Sa",))) == ()


@pytest.mark.parametrize(("start", "end"), [(540, 540), (600, 540)])
def test_empty_or_inverted_window_yields_nothing(start: int, end: int) -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    assert grid.slot_ranges(TimeWindow(start_minute=start, end_minute=end, weekdays=("M", "W"))) == ()


def test_gap_conflict_checks_both_sides() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    grid.occupy("A 1", [SlotRange(3, 6)], _activity("X", 510, 540))

    assert grid.has_gap_conflict("A 1", SlotRange(6, 8), gap_slots=1)
    assert grid.has_gap_conflict("A 1", SlotRange(1, 3), gap_slots=1)
    assert not grid.has_gap_conflict("A 1", SlotRange(7, 9), gap_slots=1)
    assert grid.has_gap_conflict("A 1", SlotRange(7, 9), gap_slots=2)
    assert not grid.has_gap_conflict("A 1", SlotRange(6, 8), gap_slots=0)


def test_range_at_index_zero_still_checks_trailing_gap() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    grid.occupy("A 1", [SlotRange(2, 4)], _activity("X", 500, 520))
    assert grid.has_gap_conflict("A 1", SlotRange(0, 2), gap_slots=1)


def test_occupy_refuses_to_overwrite() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    grid.occupy("A 1", [SlotRange(0, 3)], _activity("X", 480, 510))
    assert not grid.is_free("A 1", SlotRange(2, 4))
    with pytest.raises(ValueError):
        grid.occupy("A 1", [SlotRange(2, 4)], _activity("Y", 500, 520))
    assert grid.row("A 1")[3] is None


def test_occupy_with_overwrite_reports_displaced_occupants() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    first = _activity("X", 480, 510)
    grid.occupy("A 1", [SlotRange(0, 3)], first)
    second = _activity("Y", 500, 520)

    displaced = grid.occupy("A 1", [SlotRange(2, 4)], second, overwrite=True)

    assert displaced == [first]
    assert grid.row("A 1")[:4] == [first, first, second, second]


def test_add_resource_grows_grid_and_rejects_duplicates() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    grid.add_resource("UN 0")
    assert grid.resource_names == ["A 1", "UN 0"]
    with pytest.raises(ValueError):
        grid.add_resource("A 1")


def test_occupied_ranges_split_at_day_boundaries() -> None:
    grid = ResourceTimeGrid(_config(), ["A 1"])
    full_day = _activity("FULL", 480, 600, ("M", "W"))
    grid.occupy("A 1", [SlotRange(0, 12), SlotRange(12, 24)], full_day)

    runs = grid.occupied_ranges("A 1")
    assert [slot_range for slot_range, _ in runs] == [SlotRange(0, 12), SlotRange(12, 24)]
    assert all(activity is full_day for _, activity in runs)
