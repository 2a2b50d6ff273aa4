from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class MainSoundingRow:
    """
    One row of a compartment's main sounding table.

    ullage in cm, sound in mm, lcg/tcg/vcg in metres. `volumes` holds one
    volume (m³) per trim grid column (e.g. "trim_plus_0_5"). CoG, sound and
    iy depend on ullage only, never on trim.
    """
    ullage: float
    sound: int | None = None
    lcg: float = 0.0
    tcg: float = 0.0
    vcg: float = 0.0
    iy: float = 0.0
    volumes: Dict[str, float] = field(default_factory=dict)

    def volume(self, column: str) -> float:
        return self.volumes[column]


@dataclass(slots=True)
class HeelCorrectionRow:
    """One row of a heel correction table: correction (m³) per heel grid column."""
    ullage: float
    corrections: Dict[str, float] = field(default_factory=dict)

    def correction(self, column: str) -> float:
        return self.corrections[column]
