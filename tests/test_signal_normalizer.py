from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from seatsense.domain.constraints import ScoringConfig
from seatsense.domain.models import NoiseLevel, StatusObservation, StatusSource
from seatsense.services.signal_normalizer import (
    DISTANCE_UNKNOWN_WARNING,
    NOISE_ESTIMATED_REASON,
    NOISE_UNKNOWN_WARNING,
    OCCUPANCY_STALE_WARNING,
    OCCUPANCY_UNKNOWN_WARNING,
    availability_signal,
    distance_signal,
    noise_signal,
)


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
CONFIG = ScoringConfig()


def _status(
    occupancy_percent: float | None = None,
    noise_level: NoiseLevel | None = None,
    age_minutes: float = 1.0,
) -> StatusObservation:
    return StatusObservation(
        spot_id="spot-a",
        source=StatusSource.USER,
        updated_at=NOW - timedelta(minutes=age_minutes),
        occupancy_percent=occupancy_percent,
        noise_level=noise_level,
    )


# --- availability ---

def test_fresh_occupancy_maps_to_free_share() -> None:
    signal = availability_signal(_status(occupancy_percent=20), NOW, CONFIG)
    assert signal.value == pytest.approx(0.8)
    assert signal.warnings == ()


@pytest.mark.parametrize("occupancy", [0.0, 35.0, 100.0])
def test_stale_occupancy_is_discarded(occupancy: float) -> None:
    signal = availability_signal(
        _status(occupancy_percent=occupancy, age_minutes=31),
        NOW,
        CONFIG,
    )
    assert signal.value == 0.5
    assert signal.warnings == (OCCUPANCY_STALE_WARNING,)


def test_occupancy_exactly_at_threshold_is_still_fresh() -> None:
    signal = availability_signal(
        _status(occupancy_percent=40, age_minutes=30),
        NOW,
        CONFIG,
    )
    assert signal.value == pytest.approx(0.6)
    assert signal.warnings == ()


def test_future_timestamp_counts_as_fresh() -> None:
    signal = availability_signal(
        _status(occupancy_percent=90, age_minutes=-5),
        NOW,
        CONFIG,
    )
    assert signal.value == pytest.approx(0.1)
    assert signal.warnings == ()


def test_missing_status_uses_neutral_availability() -> None:
    signal = availability_signal(None, NOW, CONFIG)
    assert signal.value == 0.5
    assert signal.warnings == (OCCUPANCY_UNKNOWN_WARNING,)


def test_noise_only_status_uses_neutral_availability() -> None:
    signal = availability_signal(_status(noise_level=NoiseLevel.LOUD), NOW, CONFIG)
    assert signal.value == 0.5
    assert signal.warnings == (OCCUPANCY_UNKNOWN_WARNING,)


# --- distance ---

@pytest.mark.parametrize(
    "meters, expected",
    [
        (0.0, 1.0),
        (750.0, 0.5),
        (1500.0, 0.0),
        (2000.0, 0.0),
        (50_000.0, 0.0),
    ],
)
def test_distance_decays_linearly_to_comfort_radius(meters: float, expected: float) -> None:
    signal = distance_signal(meters, CONFIG)
    assert signal.value == pytest.approx(expected)
    assert signal.warnings == ()


def test_unknown_distance_is_neutral_with_warning() -> None:
    signal = distance_signal(None, CONFIG)
    assert signal.value == 0.5
    assert signal.warnings == (DISTANCE_UNKNOWN_WARNING,)


# --- noise ---

def test_exact_noise_match() -> None:
    signal = noise_signal(_status(noise_level=NoiseLevel.QUIET), NoiseLevel.QUIET, CONFIG)
    assert signal.value == 1.0
    assert signal.reason == "Perfect match: quiet environment"
    assert signal.warnings == ()


def test_exact_medium_match_is_perfect_not_moderate() -> None:
    signal = noise_signal(_status(noise_level=NoiseLevel.MEDIUM), NoiseLevel.MEDIUM, CONFIG)
    assert signal.value == 1.0
    assert signal.reason == "Perfect match: medium environment"


def test_medium_observation_with_other_preference() -> None:
    signal = noise_signal(_status(noise_level=NoiseLevel.MEDIUM), NoiseLevel.QUIET, CONFIG)
    assert signal.value == 0.6
    assert signal.reason == "Moderate noise level"


@pytest.mark.parametrize(
    "observed, preferred, reason",
    [
        (NoiseLevel.LOUD, NoiseLevel.QUIET, "Loud environment (you prefer Quiet)"),
        (NoiseLevel.QUIET, NoiseLevel.LOUD, "Quiet environment (you prefer Loud)"),
        (NoiseLevel.LOUD, NoiseLevel.MEDIUM, "Loud environment (you prefer Medium)"),
    ],
)
def test_noise_mismatch(observed: NoiseLevel, preferred: NoiseLevel, reason: str) -> None:
    signal = noise_signal(_status(noise_level=observed), preferred, CONFIG)
    assert signal.value == 0.3
    assert signal.reason == reason
    assert signal.warnings == ()


def test_missing_noise_data_is_neutral_with_estimated_reason() -> None:
    signal = noise_signal(_status(occupancy_percent=10), NoiseLevel.QUIET, CONFIG)
    assert signal.value == 0.5
    assert signal.warnings == (NOISE_UNKNOWN_WARNING,)
    assert signal.reason == NOISE_ESTIMATED_REASON


def test_missing_status_and_preference_is_neutral() -> None:
    signal = noise_signal(None, None, CONFIG)
    assert signal.value == 0.5
    assert signal.warnings == (NOISE_UNKNOWN_WARNING,)
    assert signal.reason == NOISE_ESTIMATED_REASON


def test_missing_preference_is_neutral_with_estimated_reason() -> None:
    signal = noise_signal(_status(noise_level=NoiseLevel.LOUD), None, CONFIG)
    assert signal.value == 0.5
    assert signal.warnings == (NOISE_UNKNOWN_WARNING,)
    assert signal.reason == NOISE_ESTIMATED_REASON
