"""Domain-level validation rules for spot scoring."""

from __future__ import annotations

import math
from dataclasses import dataclass

from seatsense.utils.config import Settings


_WEIGHT_SUM_TOLERANCE = 1e-9


@dataclass(frozen=True)
class ScoringConfig:
    availability_weight: float = 0.5
    distance_weight: float = 0.3
    noise_weight: float = 0.2
    staleness_threshold_minutes: float = 30.0
    comfort_radius_meters: float = 1500.0
    close_distance_meters: float = 300.0
    plenty_of_space_threshold: float = 0.7
    neutral_score: float = 0.5

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScoringConfig":
        return cls(
            availability_weight=settings.scoring_availability_weight,
            distance_weight=settings.scoring_distance_weight,
            noise_weight=settings.scoring_noise_weight,
            staleness_threshold_minutes=settings.scoring_staleness_threshold_minutes,
            comfort_radius_meters=settings.scoring_comfort_radius_meters,
            close_distance_meters=settings.scoring_close_distance_meters,
            plenty_of_space_threshold=settings.scoring_plenty_of_space_threshold,
            neutral_score=settings.scoring_neutral_score,
        )


def validate_scoring_config(config: ScoringConfig) -> None:
    weights = (config.availability_weight, config.distance_weight, config.noise_weight)
    if any(weight < 0.0 for weight in weights):
        raise ValueError("scoring weights must be >= 0")
    if not math.isclose(sum(weights), 1.0, abs_tol=_WEIGHT_SUM_TOLERANCE):
        raise ValueError("scoring weights must sum to 1")
    if config.staleness_threshold_minutes <= 0:
        raise ValueError("staleness_threshold_minutes must be > 0")
    if config.comfort_radius_meters <= 0:
        raise ValueError("comfort_radius_meters must be > 0")
    if config.close_distance_meters < 0:
        raise ValueError("close_distance_meters must be >= 0")
    if not 0.0 <= config.plenty_of_space_threshold <= 1.0:
        raise ValueError("plenty_of_space_threshold must be between 0 and 1")
    if not 0.0 <= config.neutral_score <= 1.0:
        raise ValueError("neutral_score must be between 0 and 1")
