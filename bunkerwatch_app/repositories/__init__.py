"""
Repository layer for persistence (SQLite via SQLAlchemy).
"""

from bunkerwatch_app.repositories.database import SessionLocal, Base, init_database
from bunkerwatch_app.repositories.calibration_repository import CalibrationRepository
from bunkerwatch_app.repositories.vessel_repository import VesselRepository
from bunkerwatch_app.repositories.sync_metadata_repository import SyncMetadataRepository
from bunkerwatch_app.repositories.sounding_log_repository import SoundingLogRepository

__all__ = [
    "SessionLocal",
    "Base",
    "init_database",
    "CalibrationRepository",
    "VesselRepository",
    "SyncMetadataRepository",
    "SoundingLogRepository",
]
