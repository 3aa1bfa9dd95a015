"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from seatsense.controllers.recommendation_controller import router as recommendation_router
from seatsense.controllers.status_controller import router as status_router
from seatsense.repository.data_repository import DataRepository
from seatsense.services.estimation_service import OccupancyEstimationService
from seatsense.services.ingestion_service import StatusIngestionService
from seatsense.services.ranking_service import RankingService
from seatsense.utils.config import Settings, get_settings
from seatsense.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    Every dependency is constructed here and hung off app.state.
    """
    settings = settings or get_settings()

    # --- Repository (SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services (business logic, no direct DB access) ---
    ranking_service = RankingService(repository=repository, settings=settings)
    ingestion_service = StatusIngestionService(repository=repository, settings=settings)
    estimation_service = OccupancyEstimationService(
        ingestion_service=ingestion_service,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(recommendation_router)
    app.include_router(status_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.repository = repository
    app.state.ranking_service = ranking_service
    app.state.ingestion_service = ingestion_service
    app.state.estimation_service = estimation_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before seeding; seeding is skipped when spots exist.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_spots:
        logger.info("Startup: seeding demo study spots (skipped if StudySpots not empty)")
        repository.seed_demo_spots()

    logger.info("Startup complete | system ready")


# Module-level app object for uvicorn
app = create_app()
