#!/usr/bin/env python3
"""Validate local SeatSense environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from seatsense.domain.models import NoiseLevel, Preferences
from seatsense.repository.data_repository import DataRepository
from seatsense.services.ingestion_service import StatusIngestionService
from seatsense.services.ranking_service import RankingService
from seatsense.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="seatsense-env-")

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("numpy", "numpy"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    from importlib.metadata import PackageNotFoundError, version

    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "seatsense_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo spot seeding
        try:
            seeded = repository.seed_demo_spots()
            if seeded < 1:
                raise RuntimeError(f"expected demo spots, got {seeded}")
            ok, line = _print_result("Demo spot seeding", True, f": {seeded} spots")
        except Exception as exc:
            ok, line = _print_result("Demo spot seeding", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Status ingestion
        try:
            first_spot = repository.list_spots()[0]
            StatusIngestionService(repository=repository, settings=validation_settings).submit(
                spot_id=first_spot.spot_id,
                occupancy_percent=25.0,
                noise_level=NoiseLevel.QUIET,
            )
            ok, line = _print_result("Status ingestion", True)
        except Exception as exc:
            ok, line = _print_result("Status ingestion", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 6: Ranking smoke run
        try:
            ranked = RankingService(repository=repository, settings=validation_settings).rank(
                Preferences(
                    duration_minutes=60,
                    group_size=1,
                    noise_preference=NoiseLevel.QUIET,
                    lat=40.0076,
                    lng=-83.0300,
                )
            )
            if not ranked or not all(0.0 <= item.score <= 1.0 for item in ranked):
                raise RuntimeError("ranking returned no results or out-of-bounds scores")
            ok, line = _print_result(
                "Ranking smoke run",
                True,
                f": top={ranked[0].spot.name} score={ranked[0].score:.4f}",
            )
        except Exception as exc:
            ok, line = _print_result("Ranking smoke run", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" SeatSense Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
