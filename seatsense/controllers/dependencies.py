"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from seatsense.services.estimation_service import OccupancyEstimationService
from seatsense.services.ingestion_service import StatusIngestionService
from seatsense.services.ranking_service import RankingService
from seatsense.utils.config import get_settings


def get_ranking_service(request: Request) -> RankingService:
    service = getattr(request.app.state, "ranking_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ranking service is not initialized",
        )
    return service


def get_ingestion_service(request: Request) -> StatusIngestionService:
    service = getattr(request.app.state, "ingestion_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ingestion service is not initialized",
        )
    return service


def get_estimation_service(request: Request) -> OccupancyEstimationService:
    service = getattr(request.app.state, "estimation_service", None)
    if service is None:
        ingestion_service = getattr(request.app.state, "ingestion_service", None)
        if ingestion_service is not None:
            service = OccupancyEstimationService(
                ingestion_service=ingestion_service,
                settings=get_settings(),
            )
            request.app.state.estimation_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Estimation service is not initialized",
        )
    return service
