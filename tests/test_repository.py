from __future__ import annotations

import io

import pandas as pd
import pytest

from slotplanner.domain.models import PlacementTier, Resource, SlotRange
from slotplanner.repository.data_repository import (
    EXPORT_COLUMNS,
    IngestionError,
    ScheduleDataRepository,
)


COURSE_EVENTS = (
    "crs_cde,crs_title,crs_enrollment,crs_capacity,begin_tim,end_tim,bldg_cde,room_cde,"
    "monday_cde,tuesday_cde,wednesday_cde\n"
    "CS 101 01,Intro CS,25,30,09:00,10:15,SCI,00,M,,W\n"
    "MAT 220,Calculus,15,20,13:00:00,13:50:00,,,,T,\n"
    ",Orphan,5,5,09:00,10:00,SCI,101,M,,\n"
    "BIO 110,Biology,10,12,bad,worse,LIB,2,Monday,Funday,\n"
)


def _repository() -> ScheduleDataRepository:
    return ScheduleDataRepository()


def test_load_activities_reads_course_columns() -> None:
    activities = _repository().load_activities(io.StringIO(COURSE_EVENTS))

    assert [activity.code for activity in activities] == ["CS 101 01", "MAT 220", "BIO 110"]
    intro, calculus, biology = activities

    assert intro.title == "Intro CS"
    assert (intro.seats, intro.capacity, intro.max_capacity) == (25, 30, None)
    assert (intro.window.start_minute, intro.window.end_minute) == (540, 615)
    assert intro.window.weekdays == ("M", "W")
    assert (intro.building_code, intro.room_code) == ("SCI", "00")
    assert intro.historical_resource_name == "SCI 0"

    assert (calculus.window.start_minute, calculus.window.end_minute) == (780, 830)
    assert calculus.window.weekdays == ("T",)
    assert calculus.building_code is None
    assert calculus.room_code is None

    assert (biology.window.start_minute, biology.window.end_minute) == (0, 0)
    assert biology.window.weekdays == ("M",)


def test_load_activities_reads_event_columns(tmp_path) -> None:
    path = tmp_path / "events.csv"
    path.write_text(
        "event_cde,event_title,event_enrollment,event_capacity,max_enrollment,begin_time,"
        "end_time,bldg_cde,room_cde,friday_cde\n"
        "EVT 1,Seminar,40,45,60,14:00,15:00,HALL,1,F\n",
        encoding="utf-8",
    )

    (activity,) = _repository().load_activities(path)

    assert activity.code == "EVT 1"
    assert activity.max_capacity == 60
    assert activity.window.weekdays == ("F",)
    assert activity.historical_location == "HALL 1"


def test_load_activities_requires_code_column() -> None:
    with pytest.raises(IngestionError):
        _repository().load_activities(io.StringIO("title,begin_time\nIntro,09:00\n"))


def test_load_activities_rejects_empty_input() -> None:
    with pytest.raises(IngestionError):
        _repository().load_activities(io.StringIO(""))


def test_load_resources_splits_features_and_drops_duplicates() -> None:
    source = io.StringIO(
        "Location,Capacity,Features\n"
        "SCI 101,40,Projector/ Whiteboard\n"
        "SCI 101,10,\n"
        "LIB 1,unknown,\n"
        ",20,TV\n"
    )

    resources = _repository().load_resources(source)

    assert resources == [
        Resource(name="SCI 101", capacity=40, features=frozenset({"Projector", "Whiteboard"})),
        Resource(name="LIB 1", capacity=0),
    ]


def test_load_resources_requires_location_and_capacity() -> None:
    with pytest.raises(IngestionError):
        _repository().load_resources(io.StringIO("Location,Features\nSCI 101,TV\n"))


def test_load_preferences_normalizes_keys() -> None:
    preferences = _repository().load_preferences(io.StringIO('{"cs": ["ENG ", "LIB"], "MAT": []}'))
    assert preferences == {"CS": ("ENG", "LIB"), "MAT": ()}


@pytest.mark.parametrize(
    "document",
    ['["ENG"]', '{"CS": "ENG"}', '{"CS": [1, 2]}', "{not json"],
)
def test_load_preferences_rejects_malformed_documents(document: str) -> None:
    with pytest.raises(IngestionError):
        _repository().load_preferences(io.StringIO(document))


def test_load_preferences_missing_file(tmp_path) -> None:
    with pytest.raises(IngestionError):
        _repository().load_preferences(tmp_path / "missing.json")


def test_export_schedule_lists_placed_activities(tmp_path) -> None:
    repository = _repository()
    placed, waiting, _ = repository.load_activities(io.StringIO(COURSE_EVENTS))
    placed.record_slot_ranges((SlotRange(0, 1),))
    placed.commit("SCI 0")
    placed.tier = PlacementTier.DESIRED
    destination = tmp_path / "schedule.csv"

    frame = repository.export_schedule([placed, waiting], destination)

    assert list(frame.columns) == EXPORT_COLUMNS
    assert len(frame) == 1
    written = pd.read_csv(destination, dtype=str, keep_default_na=False)
    assert written.iloc[0].to_dict() == {
        "Code": "CS 101 01",
        "Event": "Intro CS",
        "Days": "MW",
        "Time": "09:00 - 10:15",
        "Enrollment": "25",
        "Capacity": "30",
        "Max": "0",
        "PastLocation": "SCI 00",
        "Location": "SCI 0",
        "Metric": "1",
    }


def test_templates_round_trip_through_loaders(tmp_path) -> None:
    repository = _repository()
    events, locations, preferences = repository.write_templates(tmp_path / "templates")

    activities = repository.load_activities(events)
    resources = repository.load_resources(locations)

    assert [activity.code for activity in activities] == ["CS101"]
    assert activities[0].window.weekdays == ("M", "W", "F")
    assert [resource.name for resource in resources] == ["BLDG 101", "BLDG 102"]
    assert repository.load_preferences(preferences) == {"CS": ("BLDG",)}
