"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path
from typing import Callable, Dict, List

import pytest

# Ensure project root is on path when running tests
_project_root = Path(__file__).resolve().parents[2]
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from bunkerwatch_app.config.grids import HEEL_GRID, TRIM_GRID
from bunkerwatch_app.models import HeelCorrectionRow, MainSoundingRow


def main_row(
    ullage: float,
    volume_at_trim: Callable[[float], float],
    sound: int | None = None,
    lcg: float = 0.0,
    tcg: float = 0.0,
    vcg: float = 0.0,
    iy: float = 0.0,
) -> MainSoundingRow:
    """Main sounding row with every trim column filled from volume_at_trim(trim)."""
    return MainSoundingRow(
        ullage=ullage,
        sound=sound,
        lcg=lcg,
        tcg=tcg,
        vcg=vcg,
        iy=iy,
        volumes={p.column: volume_at_trim(p.value) for p in TRIM_GRID},
    )


def heel_row(ullage: float, correction_at_heel: Callable[[float], float]) -> HeelCorrectionRow:
    return HeelCorrectionRow(
        ullage=ullage,
        corrections={p.column: correction_at_heel(p.value) for p in HEEL_GRID},
    )


class MemoryCalibrationStore:
    """Calibration source backed by plain dicts; returns [] for unknown compartments."""

    def __init__(
        self,
        main: Dict[int, List[MainSoundingRow]] | None = None,
        heel: Dict[int, List[HeelCorrectionRow]] | None = None,
    ) -> None:
        self.main = main or {}
        self.heel = heel or {}

    def get_main_sounding_rows(self, compartment_id: int) -> List[MainSoundingRow]:
        return sorted(self.main.get(compartment_id, []), key=lambda r: r.ullage)

    def get_heel_correction_rows(self, compartment_id: int) -> List[HeelCorrectionRow]:
        return sorted(self.heel.get(compartment_id, []), key=lambda r: r.ullage)


# Compartment ids used across tests
SCENARIO_ID = 1
LINEAR_ID = 2
NO_HEEL_ID = 3
EMPTY_ID = 99


def linear_volume(ullage: float, trim: float) -> float:
    """Plane through the calibrated points: linear interpolation reproduces it exactly."""
    return 1000.0 - 2.0 * ullage + 10.0 * trim


def linear_heel(ullage: float, heel: float) -> float:
    return 0.5 * heel - 0.001 * ullage * heel


@pytest.fixture
def scenario_rows() -> List[MainSoundingRow]:
    """Two-row compartment: ullage 0 -> 0 + 50*trim, ullage 100 -> 500 + 100*trim."""
    return [
        main_row(0.0, lambda t: 50.0 * t, sound=1000, lcg=10.0, tcg=0.0, vcg=1.0, iy=100.0),
        main_row(100.0, lambda t: 500.0 + 100.0 * t, sound=0, lcg=12.0, tcg=0.4, vcg=3.0, iy=300.0),
    ]


@pytest.fixture
def linear_rows() -> List[MainSoundingRow]:
    return [
        main_row(
            u,
            lambda t, u=u: linear_volume(u, t),
            sound=int(2000 - 10 * u),
            lcg=20.0 + 0.01 * u,
            tcg=-0.5 + 0.002 * u,
            vcg=5.0 - 0.02 * u,
            iy=400.0 - u,
        )
        for u in (0.0, 50.0, 100.0, 150.0, 200.0)
    ]


@pytest.fixture
def linear_heel_rows() -> List[HeelCorrectionRow]:
    return [heel_row(u, lambda h, u=u: linear_heel(u, h)) for u in (0.0, 100.0, 200.0)]


@pytest.fixture
def store(scenario_rows, linear_rows, linear_heel_rows) -> MemoryCalibrationStore:
    return MemoryCalibrationStore(
        main={SCENARIO_ID: scenario_rows, LINEAR_ID: linear_rows, NO_HEEL_ID: linear_rows},
        heel={LINEAR_ID: linear_heel_rows},
    )


@pytest.fixture
def temp_db():
    """Create a temporary SQLite database and return its path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = Path(f.name)
    yield path
    try:
        path.unlink(missing_ok=True)
    except OSError:
        pass  # Windows may hold file; ignore cleanup failure


@pytest.fixture
def db_session(temp_db):
    """Provide a database session with initialized schema."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from bunkerwatch_app.repositories.database import Base
    from bunkerwatch_app.repositories.calibration_repository import MainSoundingORM, HeelCorrectionORM  # noqa: F401
    from bunkerwatch_app.repositories.vessel_repository import VesselORM, CompartmentORM  # noqa: F401
    from bunkerwatch_app.repositories.sync_metadata_repository import SyncMetadataORM  # noqa: F401
    from bunkerwatch_app.repositories.sounding_log_repository import SoundingLogORM  # noqa: F401

    engine = create_engine(f"sqlite:///{temp_db}", future=True)
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def package_payload(linear_rows, linear_heel_rows):
    """Data package payload as served by shore, wrapped in its success envelope."""
    from bunkerwatch_app.models import Compartment, Vessel
    from bunkerwatch_app.services.data_package import DataPackage

    package = DataPackage(
        vessel=Vessel(vessel_id=42, vessel_name="MV TEST", imo_number="9876543", package_version="3"),
        compartments=[
            Compartment(compartment_id=LINEAR_ID, vessel_id=42, compartment_name="No.1 HFO P", capacity_m3=1200.0),
            Compartment(compartment_id=NO_HEEL_ID, vessel_id=42, compartment_name="No.1 HFO S"),
        ],
        main_sounding={LINEAR_ID: list(linear_rows), NO_HEEL_ID: list(linear_rows)},
        heel_correction={LINEAR_ID: list(linear_heel_rows)},
    )
    return {"success": True, "data": package.to_payload()}
