"""HTTP controller layer for schedule generation."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator, model_validator

from slotplanner.controllers.dependencies import get_scheduling_service
from slotplanner.domain.constraints import normalize_weekday
from slotplanner.domain.models import (
    Activity,
    PlacementPreconditionError,
    Resource,
    TimeWindow,
    minutes_from_clock,
)
from slotplanner.services.reporting_service import build_timeline_segments
from slotplanner.services.scheduling_service import ScheduleValidationError, SchedulingService
from slotplanner.utils.config import get_settings
from slotplanner.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["schedule"])


class ActivityPayload(BaseModel):
    """Activity row; unknown building or room stay null."""

    code: str = Field(min_length=1)
    title: str = ""
    seats: int = Field(default=0, ge=0)
    capacity: int = Field(default=0, ge=0)
    max_capacity: int | None = Field(default=None, ge=0)
    start_time: str = Field(pattern=settings.clock_time_regex)
    end_time: str = Field(pattern=settings.clock_time_regex)
    weekdays: list[str] = Field(default_factory=list)
    building_code: str | None = None
    room_code: str | None = None

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for token in value:
            day = normalize_weekday(token)
            if day not in normalized:
                normalized.append(day)
        return normalized

    @model_validator(mode="after")
    def validate_window(self) -> "ActivityPayload":
        if minutes_from_clock(self.end_time) <= minutes_from_clock(self.start_time):
            raise ValueError("end_time must be later than start_time")
        return self

    def to_domain(self) -> Activity:
        return Activity(
            code=self.code.strip(),
            title=self.title,
            seats=self.seats,
            capacity=self.capacity,
            max_capacity=self.max_capacity,
            window=TimeWindow(
                start_minute=minutes_from_clock(self.start_time),
                end_minute=minutes_from_clock(self.end_time),
                weekdays=tuple(self.weekdays),
            ),
            building_code=(self.building_code or "").strip() or None,
            room_code=(self.room_code or "").strip() or None,
        )


class ResourcePayload(BaseModel):
    name: str = Field(min_length=1)
    capacity: int = Field(ge=0)
    features: list[str] = Field(default_factory=list)

    def to_domain(self) -> Resource:
        return Resource(
            name=self.name.strip(),
            capacity=self.capacity,
            features=frozenset(feature.strip() for feature in self.features if feature.strip()),
        )


class GenerateScheduleRequest(BaseModel):
    schedule_start: str | None = Field(default=None, pattern=settings.clock_time_regex)
    schedule_end: str | None = Field(default=None, pattern=settings.clock_time_regex)
    active_weekdays: list[str] | None = None
    interval_minutes: int | None = Field(default=None, gt=0)
    min_gap_minutes: int | None = Field(default=None, ge=0)
    seed: int | None = Field(default=None, ge=0)
    preferences: dict[str, list[str]] = Field(default_factory=dict)
    activities: list[ActivityPayload]
    resources: list[ResourcePayload]
    include_timeline: bool = False


class SlotRangeResponse(BaseModel):
    start: int = Field(ge=0)
    end: int = Field(ge=0)


class AssignmentResponse(BaseModel):
    code: str
    title: str
    state: str
    resource_name: str | None
    tier: int = Field(ge=0, le=4)
    slot_ranges: list[SlotRangeResponse]


class MetricsResponse(BaseModel):
    desired: int = Field(ge=0)
    same_building: int = Field(ge=0)
    preference: int = Field(ge=0)
    other: int = Field(ge=0)
    unscheduled: int = Field(ge=0)
    percentages: dict[str, float]


class TimelineSegmentResponse(BaseModel):
    resource_name: str
    day: str
    start_minute: int
    end_minute: int
    offset_minutes: int
    duration_minutes: int
    activity_code: str
    activity_title: str
    tier: int


class GenerateScheduleResponse(BaseModel):
    seed: int = Field(ge=0)
    failures: int = Field(ge=0)
    metrics: MetricsResponse
    assignments: list[AssignmentResponse]
    unscheduled_codes: list[str]
    overflow_resources: list[str]
    timeline: Optional[list[TimelineSegmentResponse]] = None


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post(
    "/generate_schedule",
    response_model=GenerateScheduleResponse,
    status_code=status.HTTP_200_OK,
)
async def generate_schedule(
    payload: GenerateScheduleRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> GenerateScheduleResponse:
    """Run one seeded generation over the posted activities and resources."""
    try:
        config = service.build_config(
            schedule_start=payload.schedule_start,
            schedule_end=payload.schedule_end,
            active_weekdays=payload.active_weekdays,
            interval_minutes=payload.interval_minutes,
            min_gap_minutes=payload.min_gap_minutes,
            preferences=payload.preferences,
            seed=payload.seed,
        )
        activities = [item.to_domain() for item in payload.activities]
        resources = [item.to_domain() for item in payload.resources]
        result = service.generate_schedule(activities, resources, config)

        timeline = None
        if payload.include_timeline:
            timeline = [
                TimelineSegmentResponse(**segment.to_api_dict())
                for segment in build_timeline_segments(result.grid, config)
            ]
        return GenerateScheduleResponse(
            seed=result.seed,
            failures=result.failures,
            metrics=MetricsResponse(
                **result.metrics.to_api_dict(),
                percentages=result.metrics.percentages(),
            ),
            assignments=[
                AssignmentResponse(
                    code=activity.code,
                    title=activity.title,
                    state=activity.state.value,
                    resource_name=activity.resource_name,
                    tier=int(activity.tier),
                    slot_ranges=[
                        SlotRangeResponse(start=item.start, end=item.end)
                        for item in activity.slot_ranges
                    ],
                )
                for activity in result.activities
            ],
            unscheduled_codes=[activity.code for activity in result.unscheduled],
            overflow_resources=[resource.name for resource in result.overflow_resources],
            timeline=timeline,
        )
    except ScheduleValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except PlacementPreconditionError as exc:
        logger.exception("Placement precondition violated")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected schedule generation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate schedule",
        ) from exc
