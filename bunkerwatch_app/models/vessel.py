from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Vessel:
    """Vessel whose calibration package is currently installed."""
    vessel_id: int
    vessel_name: str = ""
    imo_number: str = ""
    package_version: str = ""
    downloaded_at: datetime | None = None


@dataclass(slots=True)
class Compartment:
    """Bunker tank or other sounded compartment of the installed vessel."""
    compartment_id: int
    vessel_id: int | None = None
    compartment_name: str = ""
    capacity_m3: float | None = None
