"""Business logic for ranking study spots against user preferences."""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime
from typing import Callable, Optional

from seatsense.domain.constraints import ScoringConfig, validate_scoring_config
from seatsense.domain.errors import PreferenceValidationError, UpstreamFetchError
from seatsense.domain.geo import distance_meters
from seatsense.domain.models import Preferences, ScoredSpot, Spot, StatusObservation
from seatsense.repository.data_repository import DataRepository, RepositoryError, StatusRepository
from seatsense.services.scoring_service import score_spot
from seatsense.utils.clock import utc_now
from seatsense.utils.config import Settings, get_settings
from seatsense.utils.logger import get_logger


logger = get_logger(__name__)


def _validate_coordinate(name: str, value: float, bound: float) -> None:
    if not math.isfinite(value) or not -bound <= value <= bound:
        raise PreferenceValidationError(f"{name} must be between {-bound} and {bound}")


def validate_preferences(preferences: Preferences) -> None:
    if preferences.duration_minutes <= 0:
        raise PreferenceValidationError("duration must be > 0 minutes")
    if preferences.group_size < 1:
        raise PreferenceValidationError("groupSize must be >= 1")
    if (preferences.lat is None) != (preferences.lng is None):
        raise PreferenceValidationError("lat and lng must be provided together")
    if preferences.has_location:
        _validate_coordinate("lat", float(preferences.lat), 90.0)
        _validate_coordinate("lng", float(preferences.lng), 180.0)


def _check_spots(spots: object) -> list[Spot]:
    if not isinstance(spots, (list, tuple)):
        raise UpstreamFetchError("Spot source returned a non-sequence payload")
    for spot in spots:
        if not isinstance(spot, Spot):
            raise UpstreamFetchError(f"Spot source returned malformed item: {spot!r}")
        if not (math.isfinite(spot.lat) and math.isfinite(spot.lng)):
            raise UpstreamFetchError(f"Spot {spot.spot_id} has non-finite coordinates")
    return list(spots)


def _check_statuses(statuses: object) -> Mapping[str, StatusObservation]:
    if not isinstance(statuses, Mapping):
        raise UpstreamFetchError("Status source returned a non-mapping payload")
    for spot_id, status in statuses.items():
        if status is None:
            continue
        if not isinstance(status, StatusObservation) or status.spot_id != spot_id:
            raise UpstreamFetchError(f"Status source returned malformed item for {spot_id}")
        if status.updated_at.tzinfo is None:
            raise UpstreamFetchError(f"Status for {spot_id} has a naive timestamp")
    return statuses


class RankingService:
    """Scores every known spot and returns the best matches first."""

    def __init__(
        self,
        repository: Optional[StatusRepository] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock
        self._config = ScoringConfig.from_settings(self._settings)
        validate_scoring_config(self._config)

    @property
    def scoring_config(self) -> ScoringConfig:
        return self._config

    def _resolve_limit(self, limit: Optional[int]) -> int:
        resolved = self._settings.ranking_default_limit if limit is None else limit
        if resolved < 1:
            raise PreferenceValidationError("limit must be >= 1")
        if resolved > self._settings.ranking_max_limit:
            raise PreferenceValidationError(
                f"limit must be <= {self._settings.ranking_max_limit}"
            )
        return resolved

    def _fetch_snapshot(
        self,
        timeout_seconds: Optional[float],
    ) -> tuple[list[Spot], Mapping[str, StatusObservation]]:
        try:
            spots = _check_spots(
                self._repository.list_spots(timeout_seconds=timeout_seconds)
            )
            statuses = _check_statuses(
                self._repository.latest_status_by_spot(
                    [spot.spot_id for spot in spots],
                    timeout_seconds=timeout_seconds,
                )
            )
        except (RepositoryError, TimeoutError, ConnectionError) as exc:
            raise UpstreamFetchError(f"Spot store unavailable: {exc}") from exc
        return spots, statuses

    def list_spots(self, *, timeout_seconds: Optional[float] = None) -> list[Spot]:
        try:
            return _check_spots(self._repository.list_spots(timeout_seconds=timeout_seconds))
        except (RepositoryError, TimeoutError, ConnectionError) as exc:
            raise UpstreamFetchError(f"Spot store unavailable: {exc}") from exc

    def rank(
        self,
        preferences: Preferences,
        limit: Optional[int] = None,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> list[ScoredSpot]:
        """Return at most ``limit`` spots ordered by descending score.

        Equal scores keep the store's spot order. A store failure raises
        ``UpstreamFetchError`` and nothing is returned.
        """
        validate_preferences(preferences)
        resolved_limit = self._resolve_limit(limit)
        now = self._clock()

        spots, statuses = self._fetch_snapshot(timeout_seconds)

        scored: list[ScoredSpot] = []
        for spot in spots:
            status = statuses.get(spot.spot_id)
            distance = (
                distance_meters(preferences.lat, preferences.lng, spot.lat, spot.lng)
                if preferences.has_location
                else None
            )
            result = score_spot(
                spot,
                status,
                preferences,
                distance_meters=distance,
                now=now,
                config=self._config,
            )
            scored.append(
                ScoredSpot(
                    spot=spot,
                    status=status,
                    score=result.score,
                    distance_meters=distance,
                    match_reason=result.match_reason,
                    breakdown=result.breakdown,
                    warnings=result.warnings,
                    reasons=(result.match_reason,),
                )
            )

        # sorted() is stable with reverse=True, so ties keep fetch order.
        ranked = sorted(scored, key=lambda item: item.score, reverse=True)[:resolved_limit]
        logger.info(
            (
                "Ranking completed | candidates=%s | returned=%s | limit=%s | "
                "has_location=%s | noise_preference=%s | top_score=%s"
            ),
            len(scored),
            len(ranked),
            resolved_limit,
            preferences.has_location,
            None if preferences.noise_preference is None else preferences.noise_preference.value,
            f"{ranked[0].score:.4f}" if ranked else None,
        )
        return ranked
