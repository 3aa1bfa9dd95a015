"""Weighted composite scoring for a single study spot."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from seatsense.domain.constraints import ScoringConfig
from seatsense.domain.errors import ComputationError
from seatsense.domain.models import (
    Preferences,
    ScoreBreakdown,
    Spot,
    SpotScore,
    StatusObservation,
)
from seatsense.services.signal_normalizer import (
    availability_signal,
    distance_signal,
    noise_signal,
)


VERY_CLOSE_REASON = "Very close to your location"
PLENTY_OF_SPACE_REASON = "Plenty of space available"
GOOD_OVERALL_REASON = "Good overall match"


def select_match_reason(
    *,
    noise_reason: Optional[str],
    distance_meters: Optional[float],
    availability: float,
    config: ScoringConfig,
) -> str:
    if noise_reason:
        return noise_reason
    if distance_meters is not None and distance_meters < config.close_distance_meters:
        return VERY_CLOSE_REASON
    if availability > config.plenty_of_space_threshold:
        return PLENTY_OF_SPACE_REASON
    return GOOD_OVERALL_REASON


def score_spot(
    spot: Spot,
    status: Optional[StatusObservation],
    preferences: Preferences,
    *,
    distance_meters: Optional[float],
    now: datetime,
    config: ScoringConfig,
) -> SpotScore:
    """Combine availability, distance and noise into one score in [0, 1].

    Pure function: warnings and the match reason are returned, never logged.
    Warnings are ordered availability, noise, distance.
    """
    availability = availability_signal(status, now, config)
    distance = distance_signal(distance_meters, config)
    noise = noise_signal(status, preferences.noise_preference, config)

    composite = (
        config.availability_weight * availability.value
        + config.distance_weight * distance.value
        + config.noise_weight * noise.value
    )
    if not math.isfinite(composite):
        raise ComputationError(
            f"Non-finite score for spot {spot.spot_id}: "
            f"availability={availability.value} distance={distance.value} noise={noise.value}"
        )

    return SpotScore(
        score=max(0.0, min(1.0, composite)),
        warnings=availability.warnings + noise.warnings + distance.warnings,
        match_reason=select_match_reason(
            noise_reason=noise.reason,
            distance_meters=distance_meters,
            availability=availability.value,
            config=config,
        ),
        breakdown=ScoreBreakdown(
            availability=availability.value,
            distance_match=distance.value,
            noise_match=noise.value,
        ),
    )
