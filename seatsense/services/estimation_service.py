"""Occupancy estimation from crowd reports.

Turns coarse crowd labels ("empty", "moderate", "busy") into an occupancy
percentage per spot and publishes the result as ``schedule``-sourced status
observations, which the ranking engine then treats like any other signal.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from seatsense.domain.errors import EstimationValidationError
from seatsense.domain.models import CrowdReport, OccupancyEstimate, StatusObservation, StatusSource
from seatsense.services.ingestion_service import StatusIngestionService
from seatsense.utils.config import Settings, get_settings
from seatsense.utils.logger import get_logger


logger = get_logger(__name__)


class OccupancyEstimationService:
    """Aggregates recent crowd reports into per-spot occupancy estimates."""

    def __init__(
        self,
        ingestion_service: StatusIngestionService,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._ingestion_service = ingestion_service
        self._status_weights = {
            label.lower(): weight for label, weight in self._settings.estimation_status_weights
        }

    def _build_report_frame(self, reports: Sequence[CrowdReport]) -> pd.DataFrame:
        if not reports:
            raise EstimationValidationError("At least one crowd report is required")
        for report in reports:
            if not report.spot_id or not report.spot_id.strip():
                raise EstimationValidationError("Every crowd report requires a spotId")

        window = self._settings.estimation_report_window
        frame = pd.DataFrame(
            [
                {
                    "spot_id": report.spot_id.strip(),
                    "status": (report.status or "").strip().lower(),
                    "reported_at": report.reported_at,
                }
                for report in reports
            ]
        )
        if frame["reported_at"].notna().all():
            # Newest first; without timestamps the caller's order is taken as newest first.
            frame = frame.sort_values(by="reported_at", ascending=False, kind="stable")
        return frame.head(window).copy()

    def estimate(self, reports: Sequence[CrowdReport]) -> list[OccupancyEstimate]:
        """Average weighted crowd labels per spot, in first-seen spot order."""
        frame = self._build_report_frame(reports)
        frame["weight"] = (
            frame["status"]
            .map(self._status_weights)
            .fillna(self._settings.estimation_unknown_status_weight)
            .astype(float)
        )
        grouped = frame.groupby("spot_id", sort=False)["weight"].agg(["mean", "count"])
        # half-up rounding, not numpy's round-half-even
        percents = np.clip(np.floor(grouped["mean"].to_numpy() * 100.0 + 0.5), 0, 100)

        return [
            OccupancyEstimate(
                spot_id=str(spot_id),
                occupancy_percent=int(percent),
                report_count=int(count),
            )
            for spot_id, percent, count in zip(grouped.index, percents, grouped["count"])
        ]

    def publish(
        self,
        reports: Sequence[CrowdReport],
    ) -> tuple[list[OccupancyEstimate], list[StatusObservation]]:
        """Estimate occupancy and append one schedule observation per spot.

        Nothing is written unless every estimated spot exists.
        """
        estimates = self.estimate(reports)
        observations = self._ingestion_service.submit_occupancies(
            [(estimate.spot_id, float(estimate.occupancy_percent)) for estimate in estimates],
            source=StatusSource.SCHEDULE,
        )
        logger.info(
            "Occupancy estimates published | reports=%s | spots=%s",
            len(reports),
            len(estimates),
        )
        return estimates, observations
