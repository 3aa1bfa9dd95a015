"""Repository layer responsible for all spot and status storage access."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Protocol, Sequence

from seatsense.domain.models import NoiseLevel, Spot, StatusObservation, StatusSource
from seatsense.utils.config import Settings, get_settings
from seatsense.utils.logger import get_logger


logger = get_logger(__name__)

# SQLite caps bound parameters per statement.
_IN_CLAUSE_CHUNK_SIZE = 500

_DEMO_SPOTS = (
    Spot(
        spot_id="thompson-library-2f",
        name="Thompson Library 2F",
        building="Thompson",
        floor="2",
        lat=40.0078,
        lng=-83.0294,
    ),
    Spot(
        spot_id="18th-ave-library",
        name="18th Ave Library",
        building="18th Ave",
        floor=None,
        lat=40.0025,
        lng=-83.0152,
    ),
    Spot(
        spot_id="ohio-union-3f",
        name="Ohio Union 3rd Floor",
        building="Union",
        floor="3",
        lat=39.9993,
        lng=-83.0085,
    ),
)


class RepositoryError(RuntimeError):
    """Raised when the store is unreachable or holds malformed rows."""


class StatusRepository(Protocol):
    """Storage operations the recommendation services depend on."""

    def list_spots(self, *, timeout_seconds: Optional[float] = None) -> list[Spot]:
        ...

    def latest_status_by_spot(
        self,
        spot_ids: Sequence[str],
        *,
        timeout_seconds: Optional[float] = None,
    ) -> dict[str, StatusObservation]:
        ...

    def append_status(self, observation: StatusObservation) -> StatusObservation:
        ...

    def append_statuses(
        self,
        observations: Sequence[StatusObservation],
    ) -> list[StatusObservation]:
        ...

    def get_spot(self, spot_id: str) -> Optional[Spot]:
        ...


def to_storage_timestamp(value: datetime) -> str:
    """Serialize as fixed-width UTC ISO-8601 so text ordering matches time ordering."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_storage_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _spot_from_row(row: sqlite3.Row) -> Spot:
    return Spot(
        spot_id=str(row["id"]),
        name=str(row["name"]),
        building=None if row["building"] is None else str(row["building"]),
        floor=None if row["floor"] is None else str(row["floor"]),
        lat=float(row["lat"]),
        lng=float(row["lng"]),
    )


def _status_from_row(row: sqlite3.Row) -> StatusObservation:
    return StatusObservation(
        observation_id=int(row["id"]),
        spot_id=str(row["spot_id"]),
        occupancy_percent=(
            None if row["occupancy_percent"] is None else float(row["occupancy_percent"])
        ),
        noise_level=None if row["noise_level"] is None else NoiseLevel(row["noise_level"]),
        source=StatusSource(row["source"]),
        updated_at=from_storage_timestamp(str(row["updated_at"])),
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self, timeout_seconds: Optional[float] = None) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=(
                timeout_seconds
                if timeout_seconds is not None
                else self._settings.database_timeout_seconds
            ),
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def _session(self, timeout_seconds: Optional[float] = None) -> Iterator[sqlite3.Connection]:
        connection = self._connect(timeout_seconds)
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._session() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS StudySpots (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        building TEXT,
                        floor TEXT,
                        lat REAL NOT NULL CHECK (lat BETWEEN -90 AND 90),
                        lng REAL NOT NULL CHECK (lng BETWEEN -180 AND 180),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS SpotStatus (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        spot_id TEXT NOT NULL,
                        occupancy_percent REAL
                            CHECK (occupancy_percent IS NULL OR occupancy_percent BETWEEN 0 AND 100),
                        noise_level TEXT
                            CHECK (noise_level IS NULL OR noise_level IN ('Quiet', 'Medium', 'Loud')),
                        source TEXT NOT NULL CHECK (source IN ('user', 'schedule')),
                        updated_at TEXT NOT NULL,
                        FOREIGN KEY (spot_id) REFERENCES StudySpots(id)
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_spot_status_spot_updated
                    ON SpotStatus(spot_id, updated_at);
                    """
                )
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Database initialization failed: {exc}") from exc

    def seed_demo_spots(self) -> int:
        """Insert the demo campus spots only when no spots exist yet."""
        try:
            with self._session() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM StudySpots;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Study spots already present; skipping demo seed")
                    return 0
                cursor.executemany(
                    """
                    INSERT INTO StudySpots (id, name, building, floor, lat, lng)
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    [
                        (spot.spot_id, spot.name, spot.building, spot.floor, spot.lat, spot.lng)
                        for spot in _DEMO_SPOTS
                    ],
                )
            logger.info("Demo seed completed with %s spots", len(_DEMO_SPOTS))
            return len(_DEMO_SPOTS)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Demo spot seeding failed: {exc}") from exc

    def create_spot(self, spot: Spot) -> Spot:
        try:
            with self._session() as conn:
                conn.execute(
                    """
                    INSERT INTO StudySpots (id, name, building, floor, lat, lng)
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    (spot.spot_id, spot.name, spot.building, spot.floor, spot.lat, spot.lng),
                )
        except sqlite3.Error as exc:
            raise RepositoryError(f"Spot insert failed: {exc}") from exc
        return spot

    def get_spot(self, spot_id: str) -> Optional[Spot]:
        try:
            with self._session() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT id, name, building, floor, lat, lng FROM StudySpots WHERE id = ?;",
                    (spot_id,),
                )
                row = cursor.fetchone()
                return None if row is None else _spot_from_row(row)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Spot lookup failed: {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise RepositoryError(f"Malformed spot row for {spot_id}: {exc}") from exc

    def list_spots(self, *, timeout_seconds: Optional[float] = None) -> list[Spot]:
        """Return every spot in insertion order."""
        try:
            with self._session(timeout_seconds) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT id, name, building, floor, lat, lng
                    FROM StudySpots
                    ORDER BY rowid ASC;
                    """
                )
                return [_spot_from_row(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise RepositoryError(f"Spot listing failed: {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise RepositoryError(f"Malformed spot row: {exc}") from exc

    def latest_status_by_spot(
        self,
        spot_ids: Sequence[str],
        *,
        timeout_seconds: Optional[float] = None,
    ) -> dict[str, StatusObservation]:
        """Return the newest observation per spot; equal timestamps resolve to the last insert."""
        unique_ids = list(dict.fromkeys(spot_ids))
        if not unique_ids:
            return {}

        latest: dict[str, StatusObservation] = {}
        try:
            with self._session(timeout_seconds) as conn:
                cursor = conn.cursor()
                for start in range(0, len(unique_ids), _IN_CLAUSE_CHUNK_SIZE):
                    chunk = unique_ids[start:start + _IN_CLAUSE_CHUNK_SIZE]
                    placeholders = ",".join("?" for _ in chunk)
                    cursor.execute(
                        f"""
                        SELECT id, spot_id, occupancy_percent, noise_level, source, updated_at
                        FROM (
                            SELECT
                                s.*,
                                ROW_NUMBER() OVER (
                                    PARTITION BY s.spot_id
                                    ORDER BY s.updated_at DESC, s.id DESC
                                ) AS recency_rank
                            FROM SpotStatus AS s
                            WHERE s.spot_id IN ({placeholders})
                        )
                        WHERE recency_rank = 1;
                        """,
                        tuple(chunk),
                    )
                    for row in cursor.fetchall():
                        observation = _status_from_row(row)
                        latest[observation.spot_id] = observation
        except sqlite3.Error as exc:
            raise RepositoryError(f"Status lookup failed: {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise RepositoryError(f"Malformed status row: {exc}") from exc
        return latest

    def append_status(self, observation: StatusObservation) -> StatusObservation:
        """Insert a new observation; earlier rows are never touched."""
        return self.append_statuses([observation])[0]

    def append_statuses(
        self,
        observations: Sequence[StatusObservation],
    ) -> list[StatusObservation]:
        """Insert observations in one transaction: either all rows land or none do."""
        persisted: list[StatusObservation] = []
        try:
            with self._session() as conn:
                cursor = conn.cursor()
                for observation in observations:
                    cursor.execute(
                        """
                        INSERT INTO SpotStatus (
                            spot_id,
                            occupancy_percent,
                            noise_level,
                            source,
                            updated_at
                        )
                        VALUES (?, ?, ?, ?, ?);
                        """,
                        (
                            observation.spot_id,
                            observation.occupancy_percent,
                            None if observation.noise_level is None else observation.noise_level.value,
                            observation.source.value,
                            to_storage_timestamp(observation.updated_at),
                        ),
                    )
                    persisted.append(replace(observation, observation_id=int(cursor.lastrowid)))
        except sqlite3.Error as exc:
            raise RepositoryError(f"Status insert failed: {exc}") from exc
        return persisted

    def count_status_observations(self, spot_id: Optional[str] = None) -> int:
        """Return persisted observation count for diagnostics and tests."""
        try:
            with self._session() as conn:
                cursor = conn.cursor()
                if spot_id is None:
                    cursor.execute("SELECT COUNT(*) AS count FROM SpotStatus;")
                else:
                    cursor.execute(
                        "SELECT COUNT(*) AS count FROM SpotStatus WHERE spot_id = ?;",
                        (spot_id,),
                    )
                return int(cursor.fetchone()["count"])
        except sqlite3.Error as exc:
            raise RepositoryError(f"Status count failed: {exc}") from exc
