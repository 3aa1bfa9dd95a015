"""HTTP controller layer for study spot recommendations."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, model_validator

from seatsense.controllers.dependencies import get_ranking_service
from seatsense.domain.errors import ComputationError, InputValidationError, UpstreamError
from seatsense.domain.models import NoiseLevel, Preferences, ScoredSpot, Spot, StatusSource
from seatsense.services.ranking_service import RankingService
from seatsense.utils.config import get_settings
from seatsense.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["recommendations"])


class RecommendationRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    model_config = ConfigDict(populate_by_name=True)

    duration: float = Field(gt=0)
    group_size: int = Field(ge=1, alias="groupSize")
    noise: NoiseLevel | None = None
    lat: float | None = Field(default=None, ge=-90.0, le=90.0)
    lng: float | None = Field(default=None, ge=-180.0, le=180.0)
    limit: int | None = Field(default=None, ge=1, le=settings.ranking_max_limit)
    timeout_seconds: float | None = Field(default=None, gt=0.0, le=60.0, alias="timeoutSeconds")

    @model_validator(mode="after")
    def validate_location_pair(self) -> "RecommendationRequest":
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        return self

    def to_preferences(self) -> Preferences:
        return Preferences(
            duration_minutes=self.duration,
            group_size=self.group_size,
            noise_preference=self.noise,
            lat=self.lat,
            lng=self.lng,
        )


class ScoreBreakdownResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    availability: float = Field(ge=0.0, le=1.0)
    distance_match: float = Field(ge=0.0, le=1.0, alias="distanceMatch")
    noise_match: float = Field(ge=0.0, le=1.0, alias="noiseMatch")


class RecommendationItemResponse(BaseModel):
    """Output DTO; score constrained to [0, 1]."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    building: str | None = None
    floor: str | None = None
    lat: float
    lng: float
    occupancy_percent: float | None = Field(default=None, alias="occupancyPercent")
    noise_level: NoiseLevel | None = Field(default=None, alias="noiseLevel")
    distance_meters: float | None = Field(default=None, ge=0.0, alias="distanceMeters")
    score: float = Field(ge=0.0, le=1.0)
    reasons: list[str]
    warnings: list[str]
    match_reason: str = Field(alias="matchReason")
    breakdown: ScoreBreakdownResponse
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    source: StatusSource | None = None

    @classmethod
    def from_scored_spot(cls, item: ScoredSpot) -> "RecommendationItemResponse":
        current = item.status
        return cls(
            id=item.spot.spot_id,
            name=item.spot.name,
            building=item.spot.building,
            floor=item.spot.floor,
            lat=item.spot.lat,
            lng=item.spot.lng,
            occupancy_percent=None if current is None else current.occupancy_percent,
            noise_level=None if current is None else current.noise_level,
            distance_meters=item.distance_meters,
            score=item.score,
            reasons=list(item.reasons),
            warnings=list(item.warnings),
            match_reason=item.match_reason,
            breakdown=ScoreBreakdownResponse(
                availability=item.breakdown.availability,
                distance_match=item.breakdown.distance_match,
                noise_match=item.breakdown.noise_match,
            ),
            updated_at=None if current is None else current.updated_at,
            source=None if current is None else current.source,
        )


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationItemResponse]


class SpotResponse(BaseModel):
    id: str
    name: str
    building: str | None = None
    floor: str | None = None
    lat: float
    lng: float

    @classmethod
    def from_spot(cls, spot: Spot) -> "SpotResponse":
        return cls(
            id=spot.spot_id,
            name=spot.name,
            building=spot.building,
            floor=spot.floor,
            lat=spot.lat,
            lng=spot.lng,
        )


class SpotListResponse(BaseModel):
    spots: list[SpotResponse]


class HealthResponse(BaseModel):
    status: str
    app_name: str
    app_version: str


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        app_name=settings.app_name,
        app_version=settings.app_version,
    )


@router.post(
    "/recommend",
    response_model=RecommendationResponse,
    status_code=status.HTTP_200_OK,
)
async def recommend(
    payload: RecommendationRequest,
    service: RankingService = Depends(get_ranking_service),
) -> RecommendationResponse:
    """Rank known spots for the caller's preferences and location."""
    try:
        ranked = service.rank(
            payload.to_preferences(),
            payload.limit,
            timeout_seconds=payload.timeout_seconds,
        )
        return RecommendationResponse(
            recommendations=[
                RecommendationItemResponse.from_scored_spot(item) for item in ranked
            ]
        )
    except InputValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except UpstreamError as exc:
        logger.warning("Recommendation aborted by store failure | error=%s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except ComputationError as exc:
        logger.exception("Scoring defect while ranking spots")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to score study spots",
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected recommendation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate recommendations",
        ) from exc


@router.get("/spots", response_model=SpotListResponse, status_code=status.HTTP_200_OK)
async def list_spots(
    service: RankingService = Depends(get_ranking_service),
) -> SpotListResponse:
    try:
        return SpotListResponse(
            spots=[SpotResponse.from_spot(spot) for spot in service.list_spots()]
        )
    except UpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected spot listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list study spots",
        ) from exc
