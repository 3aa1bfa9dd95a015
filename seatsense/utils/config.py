"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


_ENV_PREFIX = "SEATSENSE_"


def _env(name: str, default: str) -> str:
    return os.getenv(f"{_ENV_PREFIX}{name}", default)


def _env_int(name: str, default: int) -> int:
    return int(_env(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(_env(name, str(default)))


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name, "true" if default else "false")
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Tests derive variants with ``dataclasses.replace`` instead of mutating
    the cached instance.
    """

    app_name: str = "SeatSense Study Spot Recommender"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    database_path: Path = Path("data/seatsense.db")
    database_timeout_seconds: float = 5.0
    seed_demo_spots: bool = True

    ranking_default_limit: int = 5
    ranking_max_limit: int = 50

    scoring_availability_weight: float = 0.5
    scoring_distance_weight: float = 0.3
    scoring_noise_weight: float = 0.2
    scoring_staleness_threshold_minutes: float = 30.0
    scoring_comfort_radius_meters: float = 1500.0
    scoring_close_distance_meters: float = 300.0
    scoring_plenty_of_space_threshold: float = 0.7
    scoring_neutral_score: float = 0.5

    estimation_report_window: int = 200
    estimation_unknown_status_weight: float = 0.5
    estimation_status_weights: tuple[tuple[str, float], ...] = (
        ("empty", 0.2),
        ("moderate", 0.6),
        ("busy", 1.0),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from ``SEATSENSE_*`` variables."""
    defaults = Settings()
    return Settings(
        app_name=_env("APP_NAME", defaults.app_name),
        app_version=_env("APP_VERSION", defaults.app_version),
        log_level=_env("LOG_LEVEL", defaults.log_level),
        database_path=Path(_env("DATABASE_PATH", str(defaults.database_path))),
        database_timeout_seconds=_env_float(
            "DATABASE_TIMEOUT_SECONDS",
            defaults.database_timeout_seconds,
        ),
        seed_demo_spots=_env_bool("SEED_DEMO_SPOTS", defaults.seed_demo_spots),
        ranking_default_limit=_env_int("RANKING_DEFAULT_LIMIT", defaults.ranking_default_limit),
        ranking_max_limit=_env_int("RANKING_MAX_LIMIT", defaults.ranking_max_limit),
        scoring_availability_weight=_env_float(
            "SCORING_AVAILABILITY_WEIGHT",
            defaults.scoring_availability_weight,
        ),
        scoring_distance_weight=_env_float(
            "SCORING_DISTANCE_WEIGHT",
            defaults.scoring_distance_weight,
        ),
        scoring_noise_weight=_env_float(
            "SCORING_NOISE_WEIGHT",
            defaults.scoring_noise_weight,
        ),
        scoring_staleness_threshold_minutes=_env_float(
            "SCORING_STALENESS_THRESHOLD_MINUTES",
            defaults.scoring_staleness_threshold_minutes,
        ),
        scoring_comfort_radius_meters=_env_float(
            "SCORING_COMFORT_RADIUS_METERS",
            defaults.scoring_comfort_radius_meters,
        ),
        scoring_close_distance_meters=_env_float(
            "SCORING_CLOSE_DISTANCE_METERS",
            defaults.scoring_close_distance_meters,
        ),
        scoring_plenty_of_space_threshold=_env_float(
            "SCORING_PLENTY_OF_SPACE_THRESHOLD",
            defaults.scoring_plenty_of_space_threshold,
        ),
        scoring_neutral_score=_env_float(
            "SCORING_NEUTRAL_SCORE",
            defaults.scoring_neutral_score,
        ),
        estimation_report_window=_env_int(
            "ESTIMATION_REPORT_WINDOW",
            defaults.estimation_report_window,
        ),
        estimation_unknown_status_weight=_env_float(
            "ESTIMATION_UNKNOWN_STATUS_WEIGHT",
            defaults.estimation_unknown_status_weight,
        ),
    )
