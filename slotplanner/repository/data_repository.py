"""Repository layer for tabular and JSON schedule inputs and the CSV export."""

from __future__ import annotations

import json
from pathlib import Path
from typing import IO, Iterable, Optional, Union

import pandas as pd

from slotplanner.domain.constraints import normalize_preferences, normalize_weekday
from slotplanner.domain.models import Activity, Resource, TimeWindow, minutes_from_clock
from slotplanner.utils.logger import get_logger


logger = get_logger(__name__)

Source = Union[str, Path, IO[str]]

_UNKNOWN_TOKENS = frozenset({"", "nan", "none", "null", "undefined", "n/a"})

EVENT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "code": ("event_cde", "crs_cde"),
    "title": ("event_title", "crs_title"),
    "seats": ("event_enrollment", "crs_enrollment"),
    "capacity": ("event_capacity", "crs_capacity"),
    "max_capacity": ("max_enrollment",),
    "begin": ("begin_time", "begin_tim"),
    "end": ("end_time", "end_tim"),
    "building": ("bldg_cde",),
    "room": ("room_cde",),
}
WEEKDAY_COLUMNS = (
    "monday_cde",
    "tuesday_cde",
    "wednesday_cde",
    "thursday_cde",
    "friday_cde",
    "saturday_cde",
    "sunday_cde",
)
EXPORT_COLUMNS = [
    "Code",
    "Event",
    "Days",
    "Time",
    "Enrollment",
    "Capacity",
    "Max",
    "PastLocation",
    "Location",
    "Metric",
]

EVENTS_TEMPLATE = (
    "event_cde,event_title,event_enrollment,event_capacity,max_enrollment,"
    "begin_time,end_time,bldg_cde,room_cde,monday_cde,tuesday_cde,wednesday_cde,"
    "thursday_cde,friday_cde\n"
    "CS101,Intro CS,30,40,50,09:00,10:30,BLDG,101,M,,W,,F\n"
)
LOCATIONS_TEMPLATE = "Location,Capacity,Features\nBLDG 101,50,Projector/Whiteboard\nBLDG 102,30,TV\n"
PREFERENCES_TEMPLATE = {"CS": ["BLDG"]}


class IngestionError(Exception):
    """Raised when an input file cannot be read or lacks required columns."""


def _clean(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in _UNKNOWN_TOKENS:
        return None
    return text


def _to_int(value: object) -> int:
    text = _clean(value)
    if text is None:
        return 0
    number = pd.to_numeric(text, errors="coerce")
    if pd.isna(number):
        return 0
    return int(number)


def _to_minutes(value: object) -> Optional[int]:
    text = _clean(value)
    if text is None:
        return None
    try:
        return minutes_from_clock(text)
    except ValueError:
        parsed = pd.to_datetime(text, errors="coerce")
        if pd.isna(parsed):
            return None
        return int(parsed.hour) * 60 + int(parsed.minute)


class ScheduleDataRepository:
    """Maps uploaded tables onto domain records.

    Partial rows degrade to explicit unknowns (None building or room, zero
    counts) instead of failing, so the engine can route them to looser pools.
    """

    def _read_csv(self, source: Source, kind: str) -> pd.DataFrame:
        try:
            frame = pd.read_csv(source, dtype=str, skipinitialspace=True, keep_default_na=False)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
            raise IngestionError(f"Unable to read {kind} CSV: {exc}") from exc
        frame.columns = [str(column).strip() for column in frame.columns]
        return frame

    def load_activities(self, source: Source) -> list[Activity]:
        frame = self._read_csv(source, "events")
        if not any(column in frame.columns for column in EVENT_COLUMN_ALIASES["code"]):
            raise IngestionError("Invalid events CSV. Missing 'event_cde' or 'crs_cde'")

        activities: list[Activity] = []
        skipped = 0
        for row in frame.to_dict(orient="records"):
            fields = {
                name: next(
                    (row[column] for column in aliases if _clean(row.get(column)) is not None),
                    None,
                )
                for name, aliases in EVENT_COLUMN_ALIASES.items()
            }
            code = _clean(fields["code"])
            if code is None:
                skipped += 1
                continue
            activities.append(self._build_activity(code, fields, row))

        if skipped:
            logger.warning("Events rows without a code skipped | count=%s", skipped)
        logger.info("Activities loaded | count=%s", len(activities))
        return activities

    def _build_activity(self, code: str, fields: dict[str, object], row: dict[str, object]) -> Activity:
        weekdays: list[str] = []
        for column in WEEKDAY_COLUMNS:
            token = _clean(row.get(column))
            if token is None:
                continue
            try:
                day = normalize_weekday(token)
            except ValueError:
                logger.warning("Unknown weekday token ignored | activity=%s | token=%s", code, token)
                continue
            if day not in weekdays:
                weekdays.append(day)

        start_minute = _to_minutes(fields["begin"])
        end_minute = _to_minutes(fields["end"])
        if start_minute is None or end_minute is None:
            logger.warning("Activity time window unknown | activity=%s", code)
            start_minute = end_minute = 0
        elif end_minute <= start_minute:
            logger.warning(
                "Activity time window is empty | activity=%s | start=%s | end=%s",
                code,
                start_minute,
                end_minute,
            )

        max_capacity = _to_int(fields["max_capacity"])
        return Activity(
            code=code,
            title=_clean(fields["title"]) or "",
            seats=_to_int(fields["seats"]),
            capacity=_to_int(fields["capacity"]),
            max_capacity=max_capacity or None,
            window=TimeWindow(
                start_minute=start_minute,
                end_minute=end_minute,
                weekdays=tuple(weekdays),
            ),
            building_code=_clean(fields["building"]),
            room_code=_clean(fields["room"]),
        )

    def load_resources(self, source: Source) -> list[Resource]:
        frame = self._read_csv(source, "locations")
        missing = {"Location", "Capacity"} - set(frame.columns)
        if missing:
            raise IngestionError("Invalid locations CSV. Missing 'Location' or 'Capacity'")

        resources: dict[str, Resource] = {}
        for row in frame.to_dict(orient="records"):
            name = _clean(row["Location"])
            if name is None:
                continue
            if name in resources:
                logger.warning("Duplicate location ignored | name=%s", name)
                continue
            features = _clean(row.get("Features")) or ""
            resources[name] = Resource(
                name=name,
                capacity=_to_int(row["Capacity"]),
                features=frozenset(item.strip() for item in features.split("/") if item.strip()),
            )
        logger.info("Resources loaded | count=%s", len(resources))
        return list(resources.values())

    def load_preferences(self, source: Source) -> dict[str, tuple[str, ...]]:
        try:
            if hasattr(source, "read"):
                document = json.load(source)  # type: ignore[arg-type]
            else:
                with open(source, encoding="utf-8") as handle:
                    document = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise IngestionError(f"Invalid preferences JSON: {exc}") from exc

        if not isinstance(document, dict):
            raise IngestionError("Preferences JSON must map department codes to building lists")
        for department, buildings in document.items():
            if not isinstance(buildings, list) or not all(isinstance(item, str) for item in buildings):
                raise IngestionError(
                    f"Preferences for department '{department}' must be a list of building codes"
                )
        preferences = normalize_preferences(document)
        logger.info("Preferences loaded | departments=%s", len(preferences))
        return preferences

    def export_schedule(
        self,
        activities: Iterable[Activity],
        destination: Optional[Source] = None,
    ) -> pd.DataFrame:
        """Build (and optionally write) the placement table for placed activities."""
        rows = [
            {
                "Code": activity.code,
                "Event": activity.title,
                "Days": activity.window.days_label,
                "Time": activity.window.label,
                "Enrollment": activity.seats,
                "Capacity": activity.capacity,
                "Max": activity.max_capacity or 0,
                "PastLocation": activity.historical_location,
                "Location": activity.resource_name,
                "Metric": int(activity.tier),
            }
            for activity in activities
            if activity.is_placed
        ]
        frame = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        if destination is not None:
            frame.to_csv(destination, index=False)
            logger.info("Schedule exported | rows=%s", len(frame))
        return frame

    def write_templates(self, directory: Union[str, Path]) -> list[Path]:
        target = Path(directory)
        target.mkdir(parents=True, exist_ok=True)
        paths = [
            target / "events_template.csv",
            target / "locations_template.csv",
            target / "prefs_template.json",
        ]
        paths[0].write_text(EVENTS_TEMPLATE, encoding="utf-8")
        paths[1].write_text(LOCATIONS_TEMPLATE, encoding="utf-8")
        paths[2].write_text(json.dumps(PREFERENCES_TEMPLATE, indent=2), encoding="utf-8")
        return paths
