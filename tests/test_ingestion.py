from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from seatsense.domain.errors import (
    SpotNotFoundError,
    StatusValidationError,
    UpstreamFetchError,
    UpstreamWriteError,
)
from seatsense.domain.models import NoiseLevel, Preferences, StatusSource
from seatsense.repository.data_repository import DataRepository, RepositoryError
from seatsense.services.ingestion_service import StatusIngestionService
from seatsense.services.ranking_service import RankingService
from seatsense.utils.config import get_settings


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _build_test_settings(tmp_path, filename: str):
    return replace(get_settings(), database_path=tmp_path / filename)


def _build_services(tmp_path, filename: str = "ingestion.db"):
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_spots()
    ingestion = StatusIngestionService(repository=repository, settings=settings, clock=lambda: NOW)
    return repository, ingestion, settings


class _BrokenRepository:
    def __init__(self, fail_on: str) -> None:
        self.fail_on = fail_on

    def get_spot(self, spot_id: str):
        if self.fail_on == "read":
            raise RepositoryError("read failed")
        return object()

    def append_statuses(self, observations):
        raise RepositoryError("disk full")


def test_submit_persists_observation(tmp_path) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    stored = ingestion.submit(" thompson-library-2f ", occupancy_percent=35, noise_level="Quiet")

    assert stored.observation_id is not None
    assert stored.spot_id == "thompson-library-2f"
    assert stored.occupancy_percent == 35.0
    assert stored.noise_level is NoiseLevel.QUIET
    assert stored.source is StatusSource.USER
    assert stored.updated_at == NOW
    assert repository.count_status_observations("thompson-library-2f") == 1


def test_zero_occupancy_is_kept(tmp_path) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    ingestion.submit("ohio-union-3f", occupancy_percent=0)

    latest = repository.latest_status_by_spot(["ohio-union-3f"])["ohio-union-3f"]
    assert latest.occupancy_percent == 0.0
    assert latest.noise_level is None


def test_noise_only_submission_is_accepted(tmp_path) -> None:
    _, ingestion, _ = _build_services(tmp_path)

    stored = ingestion.submit("18th-ave-library", noise_level=NoiseLevel.LOUD)

    assert stored.occupancy_percent is None
    assert stored.noise_level is NoiseLevel.LOUD


@pytest.mark.parametrize("spot_id", [None, "", "   "])
def test_missing_spot_id_is_rejected(tmp_path, spot_id) -> None:
    _, ingestion, _ = _build_services(tmp_path)

    with pytest.raises(StatusValidationError):
        ingestion.submit(spot_id, occupancy_percent=10)


def test_submission_without_signals_is_rejected(tmp_path) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    with pytest.raises(StatusValidationError):
        ingestion.submit("thompson-library-2f")
    assert repository.count_status_observations() == 0


@pytest.mark.parametrize(
    "occupancy",
    [-0.1, 100.5, 150, float("nan"), float("inf"), True, "40"],
)
def test_invalid_occupancy_is_rejected(tmp_path, occupancy) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    with pytest.raises(StatusValidationError):
        ingestion.submit("thompson-library-2f", occupancy_percent=occupancy)
    assert repository.count_status_observations() == 0


def test_unknown_noise_level_is_rejected(tmp_path) -> None:
    _, ingestion, _ = _build_services(tmp_path)

    with pytest.raises(StatusValidationError):
        ingestion.submit("thompson-library-2f", noise_level="Silent")


def test_unknown_spot_raises_not_found(tmp_path) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    with pytest.raises(SpotNotFoundError):
        ingestion.submit("basement-closet", occupancy_percent=10)
    assert repository.count_status_observations() == 0


def test_submissions_are_append_only(tmp_path) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    first = ingestion.submit("thompson-library-2f", occupancy_percent=90)
    second = ingestion.submit("thompson-library-2f", noise_level="Quiet")

    assert repository.count_status_observations("thompson-library-2f") == 2
    latest = repository.latest_status_by_spot(["thompson-library-2f"])["thompson-library-2f"]
    # same clock reading, so the later insert wins
    assert latest.observation_id == second.observation_id != first.observation_id
    assert latest.occupancy_percent is None


def test_store_read_failure_raises_upstream_fetch_error() -> None:
    ingestion = StatusIngestionService(repository=_BrokenRepository("read"), clock=lambda: NOW)

    with pytest.raises(UpstreamFetchError):
        ingestion.submit("thompson-library-2f", occupancy_percent=10)


def test_store_write_failure_raises_upstream_write_error() -> None:
    ingestion = StatusIngestionService(repository=_BrokenRepository("write"), clock=lambda: NOW)

    with pytest.raises(UpstreamWriteError):
        ingestion.submit("thompson-library-2f", occupancy_percent=10)


def test_next_ranking_reflects_submitted_update(tmp_path) -> None:
    repository, _, settings = _build_services(tmp_path)
    clock_reading = {"now": NOW}
    ingestion = StatusIngestionService(
        repository=repository,
        settings=settings,
        clock=lambda: clock_reading["now"],
    )
    ranking = RankingService(
        repository=repository,
        settings=settings,
        clock=lambda: clock_reading["now"],
    )
    preferences = Preferences(duration_minutes=60, group_size=1)

    ingestion.submit("ohio-union-3f", occupancy_percent=100)
    ingestion.submit("18th-ave-library", occupancy_percent=100)
    ingestion.submit("thompson-library-2f", occupancy_percent=100)
    clock_reading["now"] = NOW + timedelta(minutes=1)
    ingestion.submit("ohio-union-3f", occupancy_percent=0)

    ranked = ranking.rank(preferences, limit=3)

    assert ranked[0].spot.spot_id == "ohio-union-3f"
    assert ranked[0].breakdown.availability == 1.0


def test_batch_submission_stores_every_occupancy(tmp_path) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    stored = ingestion.submit_occupancies(
        [("thompson-library-2f", 20.0), ("ohio-union-3f", 80.0)],
    )

    assert [item.spot_id for item in stored] == ["thompson-library-2f", "ohio-union-3f"]
    assert all(item.source is StatusSource.SCHEDULE for item in stored)
    assert all(item.observation_id is not None for item in stored)
    assert repository.count_status_observations() == 2


@pytest.mark.parametrize(
    "pairs, error",
    [
        ([("thompson-library-2f", 20.0), ("basement-closet", 10.0)], SpotNotFoundError),
        ([("thompson-library-2f", 20.0), ("ohio-union-3f", 120.0)], StatusValidationError),
        ([("thompson-library-2f", 20.0), ("  ", 10.0)], StatusValidationError),
    ],
)
def test_batch_submission_is_all_or_nothing(tmp_path, pairs, error) -> None:
    repository, ingestion, _ = _build_services(tmp_path)

    with pytest.raises(error):
        ingestion.submit_occupancies(pairs)
    assert repository.count_status_observations() == 0
