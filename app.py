"""
app.py — FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and scheduling service and registers routers.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from slotplanner.controllers.schedule_controller import router as schedule_router
from slotplanner.repository.data_repository import ScheduleDataRepository
from slotplanner.services.scheduling_service import SchedulingService
from slotplanner.utils.config import get_settings
from slotplanner.utils.logger import get_logger


logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are attached to app.state so controllers resolve them through
    dependency providers. Each request constructs its own schedule run; the
    service itself holds no per-run state.
    """
    settings = get_settings()

    repository = ScheduleDataRepository()
    scheduling_service = SchedulingService(
        repository=repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.include_router(schedule_router)

    app.state.repository = repository
    app.state.scheduling_service = scheduling_service

    return app


def _startup(app: FastAPI) -> None:
    settings = get_settings()
    logger.info(
        (
            "Startup complete | schedule=%s-%s | weekdays=%s | interval=%s | "
            "min_gap=%s"
        ),
        settings.default_schedule_start,
        settings.default_schedule_end,
        ",".join(settings.default_active_weekdays),
        settings.default_interval_minutes,
        settings.default_min_gap_minutes,
    )


app = create_app()
