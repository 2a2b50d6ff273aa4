"""
Sounding calculation: ullage + trim (+ optional heel) -> tank volume and CoG.

Base volume comes from the main sounding table (ullage x trim grid); the heel
correction comes from the heel correction table (ullage x heel grid) and is
added to it. Only calculate_sounding is meant to be called from outside.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from sqlalchemy.orm import Session

from bunkerwatch_app.config.grids import HEEL_GRID, TRIM_GRID
from bunkerwatch_app.models import (
    HeelCorrectionRow,
    MainSoundingRow,
    SoundingFailure,
    SoundingLog,
    SoundingResult,
    SoundingSuccess,
)
from bunkerwatch_app.repositories.calibration_repository import CalibrationRepository
from bunkerwatch_app.repositories.sounding_log_repository import SoundingLogRepository
from bunkerwatch_app.repositories.vessel_repository import VesselRepository
from bunkerwatch_app.services.interpolation import (
    AxisExact,
    CalibrationError,
    NoCalibrationData,
    RowExact,
    find_ullage_bounds,
    linear_interpolate,
    resolve_axis,
    round_half_up,
)

_LOG = logging.getLogger(__name__)


class CalibrationSource(Protocol):
    """Read access to installed calibration tables (rows ordered by ullage)."""

    def get_main_sounding_rows(self, compartment_id: int) -> List[MainSoundingRow]: ...

    def get_heel_correction_rows(self, compartment_id: int) -> List[HeelCorrectionRow]: ...


@dataclass(slots=True)
class BaseVolume:
    volume: float
    sound: int | None
    lcg: float
    tcg: float
    vcg: float
    iy: float


def _interpolate_sound(lower: MainSoundingRow, upper: MainSoundingRow, ullage: float) -> int | None:
    if lower.sound is None or upper.sound is None:
        return None
    return round_half_up(
        linear_interpolate(lower.ullage, lower.sound, upper.ullage, upper.sound, ullage)
    )


def calculate_base_volume(
    rows: Sequence[MainSoundingRow],
    ullage: float,
    trim: float,
    compartment_id: int,
) -> BaseVolume:
    """
    Volume and CoG at (ullage, trim) from ullage-ordered main sounding rows.

    Trim is interpolated per row first; the per-row volumes are then
    interpolated along ullage. CoG, sound and iy follow ullage only.
    Raises CalibrationError subclasses unchanged.
    """
    trim_pos = resolve_axis(TRIM_GRID, trim, "Trim", "m")
    if not rows:
        raise NoCalibrationData(compartment_id, "main sounding")
    target_trim = float(trim)
    ullage_pos = find_ullage_bounds([r.ullage for r in rows], ullage)

    def volume_at(row: MainSoundingRow) -> float:
        if isinstance(trim_pos, AxisExact):
            return row.volume(trim_pos.point.column)
        lo, hi = trim_pos.lower, trim_pos.upper
        return linear_interpolate(
            lo.value, row.volume(lo.column),
            hi.value, row.volume(hi.column),
            target_trim,
        )

    if isinstance(ullage_pos, RowExact):
        row = rows[ullage_pos.index]
        return BaseVolume(
            volume=volume_at(row),
            sound=row.sound,
            lcg=row.lcg,
            tcg=row.tcg,
            vcg=row.vcg,
            iy=row.iy,
        )

    lower, upper = rows[ullage_pos.lower], rows[ullage_pos.upper]
    target_ullage = float(ullage)

    def along_ullage(y_lower: float, y_upper: float) -> float:
        return linear_interpolate(lower.ullage, y_lower, upper.ullage, y_upper, target_ullage)

    return BaseVolume(
        volume=along_ullage(volume_at(lower), volume_at(upper)),
        sound=_interpolate_sound(lower, upper, target_ullage),
        lcg=along_ullage(lower.lcg, upper.lcg),
        tcg=along_ullage(lower.tcg, upper.tcg),
        vcg=along_ullage(lower.vcg, upper.vcg),
        iy=along_ullage(lower.iy, upper.iy),
    )


def calculate_heel_correction(
    rows: Sequence[HeelCorrectionRow],
    ullage: float,
    heel: float,
    compartment_id: int,
) -> float:
    """Heel correction (m³) at (ullage, heel); same scheme as the base volume."""
    heel_pos = resolve_axis(HEEL_GRID, heel, "Heel", "°")
    if not rows:
        raise NoCalibrationData(compartment_id, "heel correction")
    target_heel = float(heel)
    ullage_pos = find_ullage_bounds([r.ullage for r in rows], ullage)

    def correction_at(row: HeelCorrectionRow) -> float:
        if isinstance(heel_pos, AxisExact):
            return row.correction(heel_pos.point.column)
        lo, hi = heel_pos.lower, heel_pos.upper
        return linear_interpolate(
            lo.value, row.correction(lo.column),
            hi.value, row.correction(hi.column),
            target_heel,
        )

    if isinstance(ullage_pos, RowExact):
        return correction_at(rows[ullage_pos.index])

    lower, upper = rows[ullage_pos.lower], rows[ullage_pos.upper]
    return linear_interpolate(
        lower.ullage, correction_at(lower),
        upper.ullage, correction_at(upper),
        float(ullage),
    )


def calculate_sounding(
    store: CalibrationSource,
    compartment_id: int,
    ullage: float,
    trim: float,
    heel: float | None = None,
) -> SoundingResult:
    """
    Base volume plus optional heel correction for one tank reading.

    Any base volume failure is returned as SoundingFailure. A heel correction
    failure only adds a warning and leaves the correction at zero.
    """
    try:
        base = calculate_base_volume(
            store.get_main_sounding_rows(compartment_id), ullage, trim, compartment_id
        )
    except CalibrationError as exc:
        _LOG.warning("Sounding failed for compartment %s: %s", compartment_id, exc.message)
        return SoundingFailure(error=exc.message)

    heel_correction = 0.0
    warnings: List[str] = []
    if heel is not None and heel != 0:
        try:
            heel_correction = calculate_heel_correction(
                store.get_heel_correction_rows(compartment_id), ullage, heel, compartment_id
            )
        except CalibrationError as exc:
            _LOG.warning(
                "Heel correction skipped for compartment %s: %s", compartment_id, exc.message
            )
            warnings.append(f"Heel correction not applied: {exc.message}")
            heel_correction = 0.0

    return SoundingSuccess(
        base_volume=base.volume,
        heel_correction=heel_correction,
        final_volume=base.volume + heel_correction,
        sound=base.sound,
        ullage=float(ullage),
        lcg=base.lcg,
        tcg=base.tcg,
        vcg=base.vcg,
        iy=base.iy,
        warnings=warnings,
    )


class SoundingService:
    """Runs sounding calculations against the installed calibration package."""

    def __init__(self, db: Session) -> None:
        self._calibration = CalibrationRepository(db)
        self._logs = SoundingLogRepository(db)
        self._vessels = VesselRepository(db)

    def calculate(
        self,
        compartment_id: int,
        ullage: float,
        trim: float,
        heel: float | None = None,
        record: bool = False,
    ) -> SoundingResult:
        result = calculate_sounding(self._calibration, compartment_id, ullage, trim, heel)
        if record and isinstance(result, SoundingSuccess):
            self._record(compartment_id, trim, heel, result)
        return result

    def _record(
        self,
        compartment_id: int,
        trim: float,
        heel: float | None,
        result: SoundingSuccess,
    ) -> SoundingLog:
        vessel = self._vessels.get_vessel()
        log = SoundingLog(
            vessel_id=vessel.vessel_id if vessel else None,
            compartment_id=compartment_id,
            ullage=result.ullage,
            trim=float(trim),
            heel=float(heel) if heel is not None else None,
            base_volume=result.base_volume,
            heel_correction=result.heel_correction,
            final_volume=result.final_volume,
            sound=result.sound,
        )
        return self._logs.create(log)
