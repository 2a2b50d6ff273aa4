"""
Domain models for the bunkerwatch sounding application.

These are pure Python/domain classes, separate from ORM mappings.
"""

from bunkerwatch_app.models.vessel import Vessel, Compartment
from bunkerwatch_app.models.calibration import MainSoundingRow, HeelCorrectionRow
from bunkerwatch_app.models.sounding import (
    SoundingFailure,
    SoundingLog,
    SoundingResult,
    SoundingSuccess,
    SyncStatus,
)

__all__ = [
    "Vessel",
    "Compartment",
    "MainSoundingRow",
    "HeelCorrectionRow",
    "SoundingFailure",
    "SoundingLog",
    "SoundingResult",
    "SoundingSuccess",
    "SyncStatus",
]
