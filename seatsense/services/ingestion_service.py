"""Validation and persistence of crowd/schedule status observations."""

from __future__ import annotations

import math
from datetime import datetime
from numbers import Real
from typing import Callable, Optional, Sequence, Union

from seatsense.domain.errors import (
    SpotNotFoundError,
    StatusValidationError,
    UpstreamFetchError,
    UpstreamWriteError,
)
from seatsense.domain.models import NoiseLevel, StatusObservation, StatusSource
from seatsense.repository.data_repository import DataRepository, RepositoryError, StatusRepository
from seatsense.utils.clock import utc_now
from seatsense.utils.config import Settings, get_settings
from seatsense.utils.logger import get_logger


logger = get_logger(__name__)


def _normalize_spot_id(spot_id: Optional[str]) -> str:
    if spot_id is None or not isinstance(spot_id, str) or not spot_id.strip():
        raise StatusValidationError("spotId is required")
    return spot_id.strip()


def _normalize_occupancy(occupancy_percent: Optional[float]) -> Optional[float]:
    if occupancy_percent is None:
        return None
    if isinstance(occupancy_percent, bool) or not isinstance(occupancy_percent, Real):
        raise StatusValidationError("occupancyPercent must be a number")
    value = float(occupancy_percent)
    if not math.isfinite(value) or not 0.0 <= value <= 100.0:
        raise StatusValidationError("occupancyPercent must be between 0 and 100")
    return value


def _normalize_noise(noise_level: Union[NoiseLevel, str, None]) -> Optional[NoiseLevel]:
    if noise_level is None:
        return None
    try:
        return NoiseLevel(noise_level)
    except ValueError as exc:
        allowed = ", ".join(level.value for level in NoiseLevel)
        raise StatusValidationError(f"noiseLevel must be one of: {allowed}") from exc


def _normalize_source(source: Union[StatusSource, str]) -> StatusSource:
    try:
        return StatusSource(source)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in StatusSource)
        raise StatusValidationError(f"source must be one of: {allowed}") from exc


class StatusIngestionService:
    """Accepts new observations; prior observations are never modified."""

    def __init__(
        self,
        repository: Optional[StatusRepository] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock

    def _build_observation(
        self,
        spot_id: Optional[str],
        occupancy_percent: Optional[float],
        noise_level: Union[NoiseLevel, str, None],
        source: Union[StatusSource, str],
    ) -> StatusObservation:
        normalized_spot_id = _normalize_spot_id(spot_id)
        if occupancy_percent is None and noise_level is None:
            raise StatusValidationError(
                "At least one of occupancyPercent or noiseLevel is required"
            )
        return StatusObservation(
            spot_id=normalized_spot_id,
            occupancy_percent=_normalize_occupancy(occupancy_percent),
            noise_level=_normalize_noise(noise_level),
            source=_normalize_source(source),
            updated_at=self._clock(),
        )

    def _require_spots(self, spot_ids: Sequence[str]) -> None:
        for spot_id in dict.fromkeys(spot_ids):
            try:
                spot = self._repository.get_spot(spot_id)
            except RepositoryError as exc:
                raise UpstreamFetchError(f"Spot store unavailable: {exc}") from exc
            if spot is None:
                raise SpotNotFoundError(f"spotId {spot_id} not found")

    def _append(self, observations: Sequence[StatusObservation]) -> list[StatusObservation]:
        try:
            return self._repository.append_statuses(observations)
        except RepositoryError as exc:
            raise UpstreamWriteError(f"Failed to store status update: {exc}") from exc

    def submit(
        self,
        spot_id: Optional[str],
        occupancy_percent: Optional[float] = None,
        noise_level: Union[NoiseLevel, str, None] = None,
        source: StatusSource = StatusSource.USER,
    ) -> StatusObservation:
        observation = self._build_observation(spot_id, occupancy_percent, noise_level, source)
        self._require_spots([observation.spot_id])
        persisted = self._append([observation])[0]

        logger.info(
            (
                "Status observation stored | spot_id=%s | observation_id=%s | "
                "occupancy_percent=%s | noise_level=%s | source=%s"
            ),
            persisted.spot_id,
            persisted.observation_id,
            persisted.occupancy_percent,
            None if persisted.noise_level is None else persisted.noise_level.value,
            persisted.source.value,
        )
        return persisted

    def submit_occupancies(
        self,
        occupancy_by_spot: Sequence[tuple[str, float]],
        source: StatusSource = StatusSource.SCHEDULE,
    ) -> list[StatusObservation]:
        """Store one occupancy observation per pair, all or nothing.

        Every pair is validated and every spot checked before the first write.
        """
        observations = [
            self._build_observation(spot_id, occupancy_percent, None, source)
            for spot_id, occupancy_percent in occupancy_by_spot
        ]
        self._require_spots([observation.spot_id for observation in observations])
        persisted = self._append(observations)

        logger.info(
            "Status observations stored | count=%s | source=%s",
            len(persisted),
            _normalize_source(source).value,
        )
        return persisted
