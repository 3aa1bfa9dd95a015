"""Domain models for study spot scoring and ranking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class NoiseLevel(str, Enum):
    QUIET = "Quiet"
    MEDIUM = "Medium"
    LOUD = "Loud"


class StatusSource(str, Enum):
    USER = "user"
    SCHEDULE = "schedule"


@dataclass(frozen=True)
class Spot:
    spot_id: str
    name: str
    lat: float
    lng: float
    building: Optional[str] = None
    floor: Optional[str] = None


@dataclass(frozen=True)
class StatusObservation:
    """A single append-only occupancy/noise report for a spot."""

    spot_id: str
    source: StatusSource
    updated_at: datetime
    occupancy_percent: Optional[float] = None
    noise_level: Optional[NoiseLevel] = None
    observation_id: Optional[int] = None


@dataclass(frozen=True)
class Preferences:
    duration_minutes: float
    group_size: int
    noise_preference: Optional[NoiseLevel] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass(frozen=True)
class SignalScore:
    """Normalized sub-score in [0, 1] with its data-quality notes."""

    value: float
    warnings: tuple[str, ...] = ()
    reason: Optional[str] = None


@dataclass(frozen=True)
class ScoreBreakdown:
    availability: float
    distance_match: float
    noise_match: float


@dataclass(frozen=True)
class SpotScore:
    score: float
    warnings: tuple[str, ...]
    match_reason: str
    breakdown: ScoreBreakdown


@dataclass(frozen=True)
class ScoredSpot:
    spot: Spot
    status: Optional[StatusObservation]
    score: float
    distance_meters: Optional[float]
    match_reason: str
    breakdown: ScoreBreakdown
    warnings: tuple[str, ...] = ()
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class CrowdReport:
    spot_id: str
    status: str
    reported_at: Optional[datetime] = None


@dataclass(frozen=True)
class OccupancyEstimate:
    spot_id: str
    occupancy_percent: int
    report_count: int
