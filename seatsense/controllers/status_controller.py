"""HTTP controller layer for status submissions and occupancy estimation."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from seatsense.controllers.dependencies import get_estimation_service, get_ingestion_service
from seatsense.domain.errors import InputValidationError, SpotNotFoundError, UpstreamError
from seatsense.domain.models import CrowdReport, NoiseLevel, StatusObservation, StatusSource
from seatsense.services.estimation_service import OccupancyEstimationService
from seatsense.services.ingestion_service import StatusIngestionService
from seatsense.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["status"])


class StatusUpdateRequest(BaseModel):
    """Signal bounds are checked by the service so callers get a 400, not a 422."""

    model_config = ConfigDict(populate_by_name=True)

    spot_id: str | None = Field(default=None, alias="spotId")
    occupancy_percent: float | None = Field(default=None, alias="occupancyPercent")
    noise_level: NoiseLevel | None = Field(default=None, alias="noiseLevel")


class StatusObservationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int | None = None
    spot_id: str = Field(alias="spotId")
    occupancy_percent: float | None = Field(default=None, ge=0.0, le=100.0, alias="occupancyPercent")
    noise_level: NoiseLevel | None = Field(default=None, alias="noiseLevel")
    source: StatusSource
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_observation(cls, observation: StatusObservation) -> "StatusObservationResponse":
        return cls(
            id=observation.observation_id,
            spot_id=observation.spot_id,
            occupancy_percent=observation.occupancy_percent,
            noise_level=observation.noise_level,
            source=observation.source,
            updated_at=observation.updated_at,
        )


class StatusUpdateResponse(BaseModel):
    success: bool = True
    data: StatusObservationResponse


class CrowdReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spot_id: str = Field(min_length=1, alias="spotId")
    status: str = Field(min_length=1)
    reported_at: datetime | None = Field(default=None, alias="reportedAt")


class EstimateOccupancyRequest(BaseModel):
    reports: list[CrowdReportRequest] = Field(min_length=1)


class OccupancyEstimateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spot_id: str = Field(alias="spotId")
    occupancy_percent: int = Field(ge=0, le=100, alias="occupancyPercent")
    report_count: int = Field(ge=1, alias="reportCount")


class EstimateOccupancyResponse(BaseModel):
    estimates: list[OccupancyEstimateResponse]


@router.post(
    "/submit_status",
    response_model=StatusUpdateResponse,
    status_code=status.HTTP_200_OK,
)
async def submit_status(
    payload: StatusUpdateRequest,
    service: StatusIngestionService = Depends(get_ingestion_service),
) -> StatusUpdateResponse:
    """Append a user-reported occupancy/noise observation."""
    try:
        observation = service.submit(
            spot_id=payload.spot_id,
            occupancy_percent=payload.occupancy_percent,
            noise_level=payload.noise_level,
            source=StatusSource.USER,
        )
        return StatusUpdateResponse(
            data=StatusObservationResponse.from_observation(observation),
        )
    except InputValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except SpotNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except UpstreamError as exc:
        logger.warning("Status submission aborted by store failure | error=%s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected status submission failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store status update",
        ) from exc


@router.post(
    "/estimate_occupancy",
    response_model=EstimateOccupancyResponse,
    status_code=status.HTTP_200_OK,
)
async def estimate_occupancy(
    payload: EstimateOccupancyRequest,
    service: OccupancyEstimationService = Depends(get_estimation_service),
) -> EstimateOccupancyResponse:
    """Turn crowd reports into schedule-sourced occupancy observations."""
    try:
        estimates, _ = service.publish(
            [
                CrowdReport(
                    spot_id=report.spot_id,
                    status=report.status,
                    reported_at=report.reported_at,
                )
                for report in payload.reports
            ]
        )
        return EstimateOccupancyResponse(
            estimates=[
                OccupancyEstimateResponse(
                    spot_id=estimate.spot_id,
                    occupancy_percent=estimate.occupancy_percent,
                    report_count=estimate.report_count,
                )
                for estimate in estimates
            ]
        )
    except InputValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except SpotNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except UpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected occupancy estimation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to estimate occupancy",
        ) from exc
