"""
Installation of vessel calibration data packages.

A package holds the vessel record, its compartments and, per compartment,
the main sounding and heel correction tables. Completeness is checked here,
once, so the sounding engine can read rows without re-validating them.
Installing a package replaces everything from the previous one.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Set

from sqlalchemy.orm import Session

from bunkerwatch_app.config.grids import HEEL_COLUMNS, TRIM_COLUMNS
from bunkerwatch_app.models import Compartment, HeelCorrectionRow, MainSoundingRow, SyncStatus, Vessel
from bunkerwatch_app.repositories.calibration_repository import CalibrationRepository
from bunkerwatch_app.repositories.sounding_log_repository import SoundingLogRepository
from bunkerwatch_app.repositories.sync_metadata_repository import SyncMetadataRepository
from bunkerwatch_app.repositories.vessel_repository import VesselRepository
from bunkerwatch_app.services.interpolation import round_half_up

_LOG = logging.getLogger(__name__)


class DataPackageError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


@dataclass(slots=True)
class DataPackage:
    vessel: Vessel
    compartments: List[Compartment] = field(default_factory=list)
    main_sounding: Dict[int, List[MainSoundingRow]] = field(default_factory=dict)
    heel_correction: Dict[int, List[HeelCorrectionRow]] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Package in the JSON shape accepted by parse_data_package."""
        calibration: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
        for compartment_id in sorted(set(self.main_sounding) | set(self.heel_correction)):
            calibration[str(compartment_id)] = {
                "main_sounding": [
                    {
                        "ullage": r.ullage,
                        "sound": r.sound,
                        "lcg": r.lcg,
                        "tcg": r.tcg,
                        "vcg": r.vcg,
                        "iy": r.iy,
                        **{c: r.volume(c) for c in TRIM_COLUMNS},
                    }
                    for r in self.main_sounding.get(compartment_id, [])
                ],
                "heel_correction": [
                    {"ullage": r.ullage, **{c: r.correction(c) for c in HEEL_COLUMNS}}
                    for r in self.heel_correction.get(compartment_id, [])
                ],
            }
        return {
            "vessel_id": self.vessel.vessel_id,
            "vessel_name": self.vessel.vessel_name,
            "imo_number": self.vessel.imo_number,
            "package_version": self.vessel.package_version,
            "compartments": [
                {
                    "compartment_id": c.compartment_id,
                    "vessel_id": c.vessel_id,
                    "compartment_name": c.compartment_name,
                    "capacity": c.capacity_m3,
                }
                for c in self.compartments
            ],
            "calibration_data": calibration,
        }


@dataclass(slots=True)
class DataPackageSummary:
    vessel_name: str
    package_version: str
    compartments: int
    main_rows: int
    heel_rows: int

    @property
    def calibration_rows(self) -> int:
        return self.main_rows + self.heel_rows


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or value is None:
        raise DataPackageError(f"{what} is missing or not numeric")
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise DataPackageError(f"{what} is not numeric: {value!r}") from None
    if not math.isfinite(out):
        raise DataPackageError(f"{what} is not a finite number: {value!r}")
    return out


def _optional_number(value: Any, what: str, default: float | None) -> float | None:
    if value is None or value == "":
        return default
    return _number(value, what)


def _identifier(value: Any, what: str) -> int:
    """Integer id from an int or a digit string ("7"); anything else is rejected."""
    if isinstance(value, bool) or value is None:
        raise DataPackageError(f"{what} is missing or not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise DataPackageError(f"{what} is not an integer: {value!r}")


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DataPackageError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _entries(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DataPackageError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _parse_main_row(raw: Any, compartment_id: int, index: int) -> MainSoundingRow:
    where = f"Compartment {compartment_id}"
    raw = _mapping(raw, f"{where}: main sounding row {index}")
    ullage = _number(raw.get("ullage"), f"{where}: ullage")
    where = f"{where}, ullage {ullage}"
    missing = [c for c in TRIM_COLUMNS if c not in raw]
    if missing:
        raise DataPackageError(f"{where}: missing trim columns {', '.join(missing)}")
    sound = _optional_number(raw.get("sound"), f"{where}: sound", None)
    return MainSoundingRow(
        ullage=ullage,
        sound=round_half_up(sound) if sound is not None else None,
        lcg=_optional_number(raw.get("lcg"), f"{where}: lcg", 0.0),
        tcg=_optional_number(raw.get("tcg"), f"{where}: tcg", 0.0),
        vcg=_optional_number(raw.get("vcg"), f"{where}: vcg", 0.0),
        iy=_optional_number(raw.get("iy"), f"{where}: iy", 0.0),
        volumes={c: _number(raw[c], f"{where}: {c}") for c in TRIM_COLUMNS},
    )


def _parse_heel_row(raw: Any, compartment_id: int, index: int) -> HeelCorrectionRow:
    where = f"Compartment {compartment_id}"
    raw = _mapping(raw, f"{where}: heel correction row {index}")
    ullage = _number(raw.get("ullage"), f"{where}: heel ullage")
    where = f"{where}, heel ullage {ullage}"
    missing = [c for c in HEEL_COLUMNS if c not in raw]
    if missing:
        raise DataPackageError(f"{where}: missing heel columns {', '.join(missing)}")
    return HeelCorrectionRow(
        ullage=ullage,
        corrections={c: _number(raw[c], f"{where}: {c}") for c in HEEL_COLUMNS},
    )


def _sorted_unique(rows: Sequence, compartment_id: int, grid: str) -> List:
    out = sorted(rows, key=lambda r: r.ullage)
    for prev, cur in zip(out, out[1:]):
        if prev.ullage == cur.ullage:
            raise DataPackageError(
                f"Compartment {compartment_id}: duplicate {grid} ullage {cur.ullage}"
            )
    return out


def parse_data_package(payload: Mapping[str, Any]) -> DataPackage:
    """
    Validate a package payload and convert it to domain objects.

    Accepts either the package itself or the {"success": ..., "data": ...}
    envelope it is served in.
    """
    payload = _mapping(payload, "Data package")
    if "data" in payload and "vessel_id" not in payload:
        if payload.get("success") is False:
            raise DataPackageError(payload.get("error") or "Download failed")
        payload = _mapping(payload["data"], "Data package")

    if payload.get("vessel_id") is None:
        raise DataPackageError("Data package has no vessel_id")
    vessel_id = _identifier(payload["vessel_id"], "Data package vessel_id")
    vessel = Vessel(
        vessel_id=vessel_id,
        vessel_name=str(payload.get("vessel_name") or ""),
        imo_number=str(payload.get("imo_number") or ""),
        package_version=str(payload.get("package_version") or ""),
    )

    compartments: List[Compartment] = []
    known_ids: Set[int] = set()
    for index, raw in enumerate(_entries(payload.get("compartments"), "Data package compartments")):
        raw = _mapping(raw, f"Compartment entry {index}")
        if raw.get("compartment_id") is None:
            raise DataPackageError(f"Compartment entry {index} has no compartment_id")
        compartment_id = _identifier(raw["compartment_id"], f"Compartment entry {index}: compartment_id")
        if compartment_id in known_ids:
            raise DataPackageError(f"Compartment {compartment_id} is listed more than once")
        known_ids.add(compartment_id)
        owner = raw.get("vessel_id")
        compartments.append(
            Compartment(
                compartment_id=compartment_id,
                vessel_id=(
                    _identifier(owner, f"Compartment {compartment_id}: vessel_id")
                    if owner is not None
                    else vessel_id
                ),
                compartment_name=str(raw.get("compartment_name") or ""),
                capacity_m3=_optional_number(
                    raw.get("capacity"), f"Compartment {compartment_id}: capacity", None
                ),
            )
        )

    package = DataPackage(vessel=vessel, compartments=compartments)
    calibration = _mapping(payload.get("calibration_data") or {}, "Data package calibration_data")
    for key, data in calibration.items():
        compartment_id = _identifier(key, "Compartment id in calibration data")
        if compartment_id not in known_ids:
            raise DataPackageError(
                f"Calibration data for compartment {compartment_id} which is not in the package"
            )
        data = _mapping(data, f"Calibration data for compartment {compartment_id}")
        main = [
            _parse_main_row(r, compartment_id, i)
            for i, r in enumerate(
                _entries(data.get("main_sounding"), f"Compartment {compartment_id}: main_sounding")
            )
        ]
        heel = [
            _parse_heel_row(r, compartment_id, i)
            for i, r in enumerate(
                _entries(data.get("heel_correction"), f"Compartment {compartment_id}: heel_correction")
            )
        ]
        if main:
            package.main_sounding[compartment_id] = _sorted_unique(main, compartment_id, "main sounding")
        if heel:
            package.heel_correction[compartment_id] = _sorted_unique(heel, compartment_id, "heel correction")

    return package


def load_data_package_file(path: str | Path) -> DataPackage:
    """Read a JSON data package from disk and validate it."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DataPackageError(f"Data package {p.name} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise DataPackageError(f"Data package {p.name} must contain a JSON object")
    return parse_data_package(payload)


class DataPackageService:
    """Installs packages and reports what is currently on board."""

    def __init__(self, db: Session) -> None:
        self._db = db
        self._vessels = VesselRepository(db)
        self._calibration = CalibrationRepository(db)
        self._metadata = SyncMetadataRepository(db)
        self._logs = SoundingLogRepository(db)

    def install(self, package: DataPackage) -> DataPackageSummary:
        """Replace vessel, compartments and calibration tables in one transaction."""
        now = datetime.now(timezone.utc)
        package.vessel.downloaded_at = now
        try:
            self._vessels.set_vessel(package.vessel, commit=False)
            self._vessels.replace_compartments(package.compartments, commit=False)
            self._calibration.replace_all(
                package.main_sounding, package.heel_correction, commit=False
            )
            self._metadata.set("last_download", now.isoformat(), commit=False)
            self._metadata.set("package_version", package.vessel.package_version, commit=False)
            self._metadata.set("vessel_id", str(package.vessel.vessel_id), commit=False)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        summary = DataPackageSummary(
            vessel_name=package.vessel.vessel_name,
            package_version=package.vessel.package_version,
            compartments=len(package.compartments),
            main_rows=sum(len(rows) for rows in package.main_sounding.values()),
            heel_rows=sum(len(rows) for rows in package.heel_correction.values()),
        )
        _LOG.info(
            "Installed data package %s for %s: %d compartments, %d main rows, %d heel rows",
            summary.package_version,
            summary.vessel_name,
            summary.compartments,
            summary.main_rows,
            summary.heel_rows,
        )
        return summary

    def clear(self) -> None:
        """Remove the installed vessel, compartments and calibration tables."""
        try:
            self._vessels.clear(commit=False)
            self._calibration.clear(commit=False)
            self._metadata.set("package_version", "", commit=False)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
        _LOG.info("Cleared installed vessel data")

    def has_vessel_data(self) -> bool:
        if self._vessels.get_vessel() is None:
            return False
        return self._vessels.count_compartments() > 0 and self._calibration.count_main_rows() > 0

    def database_stats(self) -> Dict[str, Any]:
        return {
            "vessel": self._vessels.get_vessel(),
            "compartment_count": self._vessels.count_compartments(),
            "sounding_data_rows": self._calibration.count_main_rows(),
            "heel_data_rows": self._calibration.count_heel_rows(),
            "pending_soundings": self._logs.count_by_status(SyncStatus.PENDING),
            "total_soundings": self._logs.count(),
            "package_version": self._metadata.get("package_version"),
            "last_download": self._metadata.get("last_download"),
        }
