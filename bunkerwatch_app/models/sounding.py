"""
Results of a sounding calculation and the log entries recorded from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from bunkerwatch_app.config.grids import DISPLAY_DECIMALS


@dataclass(slots=True)
class SoundingSuccess:
    base_volume: float
    heel_correction: float
    final_volume: float
    sound: int | None
    ullage: float
    lcg: float
    tcg: float
    vcg: float
    iy: float
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "base_volume": self.base_volume,
            "heel_correction": self.heel_correction,
            "final_volume": self.final_volume,
            "sound": self.sound,
            "ullage": self.ullage,
            "lcg": self.lcg,
            "tcg": self.tcg,
            "vcg": self.vcg,
            "iy": self.iy,
            "warnings": list(self.warnings),
        }

    def to_display_dict(self) -> Dict[str, Any]:
        """Same fields rounded for display; sound and ullage stay as read."""
        out = self.to_dict()
        for key in ("base_volume", "heel_correction", "final_volume", "lcg", "tcg", "vcg", "iy"):
            out[key] = round(out[key], DISPLAY_DECIMALS)
        return out


@dataclass(slots=True)
class SoundingFailure:
    error: str

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.error}


SoundingResult = SoundingSuccess | SoundingFailure


class SyncStatus(Enum):
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


@dataclass(slots=True)
class SoundingLog:
    """A recorded sounding awaiting upload to shore."""
    id: int | None = None
    vessel_id: int | None = None
    compartment_id: int = 0
    ullage: float = 0.0
    trim: float = 0.0
    heel: float | None = None
    base_volume: float = 0.0
    heel_correction: float = 0.0
    final_volume: float = 0.0
    sound: int | None = None
    recorded_at: datetime | None = None
    sync_status: SyncStatus = SyncStatus.PENDING
    synced_at: datetime | None = None
