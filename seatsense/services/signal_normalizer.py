"""Normalization of raw spot signals into bounded sub-scores.

Each function maps one raw signal (occupancy report, distance, noise report)
to a ``SignalScore`` in [0, 1]. Missing or unreliable inputs fall back to the
neutral score and attach a user-facing warning instead of failing.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from seatsense.domain.constraints import ScoringConfig
from seatsense.domain.models import NoiseLevel, SignalScore, StatusObservation


OCCUPANCY_STALE_WARNING = "Occupancy data may be outdated"
OCCUPANCY_UNKNOWN_WARNING = "Occupancy unknown - using neutral estimate"
DISTANCE_UNKNOWN_WARNING = "Distance unknown - using neutral estimate"
NOISE_UNKNOWN_WARNING = "Noise level unknown"
NOISE_ESTIMATED_REASON = "Estimated based on location and availability"
MODERATE_NOISE_REASON = "Moderate noise level"

EXACT_NOISE_MATCH = 1.0
MEDIUM_NOISE_MATCH = 0.6
NOISE_MISMATCH = 0.3


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def availability_signal(
    status: Optional[StatusObservation],
    now: datetime,
    config: ScoringConfig,
) -> SignalScore:
    if status is None or status.occupancy_percent is None:
        return SignalScore(value=config.neutral_score, warnings=(OCCUPANCY_UNKNOWN_WARNING,))

    age = now - status.updated_at
    if age > timedelta(minutes=config.staleness_threshold_minutes):
        return SignalScore(value=config.neutral_score, warnings=(OCCUPANCY_STALE_WARNING,))

    return SignalScore(value=_clamp01(1.0 - status.occupancy_percent / 100.0))


def distance_signal(distance_meters: Optional[float], config: ScoringConfig) -> SignalScore:
    """Linear decay from 1 at the user's location to 0 at the comfort radius."""
    if distance_meters is None:
        return SignalScore(value=config.neutral_score, warnings=(DISTANCE_UNKNOWN_WARNING,))
    ratio = min(distance_meters / config.comfort_radius_meters, 1.0)
    return SignalScore(value=max(0.0, 1.0 - ratio))


def noise_signal(
    status: Optional[StatusObservation],
    preference: Optional[NoiseLevel],
    config: ScoringConfig,
) -> SignalScore:
    observed = None if status is None else status.noise_level

    if observed is None or preference is None:
        return SignalScore(
            value=config.neutral_score,
            warnings=(NOISE_UNKNOWN_WARNING,),
            reason=NOISE_ESTIMATED_REASON,
        )

    if observed == preference:
        return SignalScore(
            value=EXACT_NOISE_MATCH,
            reason=f"Perfect match: {observed.value.lower()} environment",
        )
    if observed == NoiseLevel.MEDIUM:
        return SignalScore(value=MEDIUM_NOISE_MATCH, reason=MODERATE_NOISE_REASON)
    return SignalScore(
        value=NOISE_MISMATCH,
        reason=f"{observed.value} environment (you prefer {preference.value})",
    )
