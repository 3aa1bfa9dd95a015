from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from seatsense.domain.errors import EstimationValidationError, SpotNotFoundError
from seatsense.domain.models import CrowdReport, StatusSource
from seatsense.repository.data_repository import DataRepository
from seatsense.services.estimation_service import OccupancyEstimationService
from seatsense.services.ingestion_service import StatusIngestionService
from seatsense.utils.config import get_settings


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _build_test_settings(tmp_path, filename: str, **overrides):
    return replace(get_settings(), database_path=tmp_path / filename, **overrides)


def _build_service(tmp_path, **overrides) -> tuple[OccupancyEstimationService, DataRepository]:
    settings = _build_test_settings(tmp_path, "estimation.db", **overrides)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_spots()
    ingestion = StatusIngestionService(repository=repository, settings=settings, clock=lambda: NOW)
    return OccupancyEstimationService(ingestion_service=ingestion, settings=settings), repository


def test_mixed_reports_average_their_weights(tmp_path) -> None:
    service, _ = _build_service(tmp_path)

    estimates = service.estimate(
        [
            CrowdReport(spot_id="thompson-library-2f", status="busy"),
            CrowdReport(spot_id="thompson-library-2f", status="empty"),
            CrowdReport(spot_id="ohio-union-3f", status="moderate"),
            CrowdReport(spot_id="18th-ave-library", status="overflowing"),
        ]
    )

    assert [(item.spot_id, item.occupancy_percent, item.report_count) for item in estimates] == [
        ("thompson-library-2f", 60, 2),
        ("ohio-union-3f", 60, 1),
        ("18th-ave-library", 50, 1),
    ]


def test_status_labels_are_case_insensitive(tmp_path) -> None:
    service, _ = _build_service(tmp_path)

    estimates = service.estimate(
        [
            CrowdReport(spot_id="ohio-union-3f", status="  BUSY "),
            CrowdReport(spot_id="ohio-union-3f", status="Busy"),
        ]
    )

    assert estimates[0].occupancy_percent == 100


def test_only_the_newest_reports_within_window_count(tmp_path) -> None:
    service, _ = _build_service(tmp_path, estimation_report_window=2)

    estimates = service.estimate(
        [
            CrowdReport(
                spot_id="ohio-union-3f",
                status="busy",
                reported_at=NOW - timedelta(hours=3),
            ),
            CrowdReport(spot_id="ohio-union-3f", status="empty", reported_at=NOW),
            CrowdReport(
                spot_id="ohio-union-3f",
                status="empty",
                reported_at=NOW - timedelta(minutes=5),
            ),
        ]
    )

    assert estimates[0].occupancy_percent == 20
    assert estimates[0].report_count == 2


def test_window_uses_submission_order_without_timestamps(tmp_path) -> None:
    service, _ = _build_service(tmp_path, estimation_report_window=1)

    estimates = service.estimate(
        [
            CrowdReport(spot_id="ohio-union-3f", status="moderate"),
            CrowdReport(spot_id="ohio-union-3f", status="busy"),
        ]
    )

    assert estimates[0].occupancy_percent == 60


def test_empty_report_list_is_rejected(tmp_path) -> None:
    service, _ = _build_service(tmp_path)

    with pytest.raises(EstimationValidationError):
        service.estimate([])


def test_blank_spot_id_is_rejected(tmp_path) -> None:
    service, _ = _build_service(tmp_path)

    with pytest.raises(EstimationValidationError):
        service.estimate([CrowdReport(spot_id="  ", status="busy")])


def test_publish_appends_schedule_observations(tmp_path) -> None:
    service, repository = _build_service(tmp_path)

    estimates, observations = service.publish(
        [
            CrowdReport(spot_id="thompson-library-2f", status="empty"),
            CrowdReport(spot_id="18th-ave-library", status="busy"),
        ]
    )

    assert [item.occupancy_percent for item in estimates] == [20, 100]
    assert all(item.source is StatusSource.SCHEDULE for item in observations)
    latest = repository.latest_status_by_spot(["thompson-library-2f", "18th-ave-library"])
    assert latest["thompson-library-2f"].occupancy_percent == 20.0
    assert latest["18th-ave-library"].source is StatusSource.SCHEDULE
    assert repository.count_status_observations() == 2


def test_publish_for_unknown_spot_raises_not_found(tmp_path) -> None:
    service, repository = _build_service(tmp_path)

    with pytest.raises(SpotNotFoundError):
        service.publish([CrowdReport(spot_id="rooftop", status="empty")])
    assert repository.count_status_observations() == 0


def test_publish_with_one_unknown_spot_writes_nothing(tmp_path) -> None:
    service, repository = _build_service(tmp_path)

    with pytest.raises(SpotNotFoundError):
        service.publish(
            [
                CrowdReport(spot_id="thompson-library-2f", status="busy"),
                CrowdReport(spot_id="rooftop", status="empty"),
            ]
        )
    assert repository.count_status_observations() == 0
