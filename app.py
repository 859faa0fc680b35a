"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the scheduling services and registers routers.

Usage (via launcher):
    python main.py serve

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.schedule_controller import router as schedule_router
from backend.repository.demand_repository import DemandRepository
from backend.services.auth_service import AuthService
from backend.services.metrics_service import MetricsRecorder
from backend.services.scheduling_service import SchedulingService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    The metrics recorder is owned by this app instance.
    """
    settings = settings or get_settings()

    metrics_recorder = MetricsRecorder()
    scheduling_service = SchedulingService(settings=settings, observer=metrics_recorder)
    demand_repository = DemandRepository(settings, observer=metrics_recorder)
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Startup complete | default_time_zone=%s | default_capacity=%s | auth=%s",
            settings.default_time_zone,
            settings.default_capacity_per_hour,
            auth_service.auth_enabled,
        )
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(schedule_router)

    app.state.metrics_recorder = metrics_recorder
    app.state.scheduling_service = scheduling_service
    app.state.demand_repository = demand_repository
    app.state.auth_service = auth_service

    return app


# Module-level app object for uvicorn
app = create_app()
