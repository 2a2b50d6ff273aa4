"""
Import compartment calibration tables from Excel or CSV.

Main sounding sheet: Ullage (cm), optional Sound (mm), LCG, TCG, VCG, Iy, and
one volume column per trim grid value. Heel correction sheet: Ullage (cm) and
one correction column per heel grid value. Grid headers are flexible
("trim_plus_0_5", "Trim +0.5", "Trim 0.5 m", "0.5") and are matched to the
grid by numeric value.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from bunkerwatch_app.config.grids import HEEL_GRID, TRIM_GRID, AxisPoint
from bunkerwatch_app.models import HeelCorrectionRow, MainSoundingRow
from bunkerwatch_app.services.interpolation import round_half_up


_ULLAGE_ALIASES = ("ullage", "ullage (cm)", "ullage(cm)", "ullage cm", "ull", "ull (cm)")
_SOUND_ALIASES = ("sound", "sound (mm)", "sound(mm)", "sound mm", "sounding", "sounding (mm)")
_LCG_ALIASES = ("lcg", "lcg (m)", "lcg(m)", "lcg m")
_TCG_ALIASES = ("tcg", "tcg (m)", "tcg(m)", "tcg m")
_VCG_ALIASES = ("vcg", "vcg (m)", "vcg(m)", "vcg m", "kg", "kg (m)")
_IY_ALIASES = ("iy", "iy (m4)", "iy(m4)", "iy m4", "fsm")

# "trim_minus_1_5" / "heel_plus_0_5" / "trim_0_0"
_GRID_KEY_RE = re.compile(r"^(trim|heel)_(minus_|plus_)?(\d+)_(\d+)$")
# "Trim -1.5", "trim +0.5 m", "Heel 1.0 deg", "-1.5", "0.5m"
_GRID_LABEL_RE = re.compile(r"^(trim|heel)?\s*([+-]?\d+(?:\.\d+)?)\s*(m|deg|°)?$")


def _normalize_header(name) -> str:
    key = str(name).lower().replace("\n", " ").replace("\r", " ").replace("\t", " ")
    key = key.replace("−", "-")
    key = re.sub(r"\s+", " ", key).strip()
    return key


def _grid_value(key: str, axis_name: str) -> float | None:
    """Numeric grid value encoded in a header, or None if it is not a grid header."""
    m = _GRID_KEY_RE.match(key)
    if m:
        if m.group(1) != axis_name:
            return None
        value = float(f"{m.group(3)}.{m.group(4)}")
        return -value if m.group(2) == "minus_" else value
    m = _GRID_LABEL_RE.match(key)
    if m:
        if m.group(1) is not None and m.group(1) != axis_name:
            return None
        return float(m.group(2))
    return None


def _normalize_columns(df: pd.DataFrame, grid: Sequence[AxisPoint], axis_name: str) -> pd.DataFrame:
    """Rename known headers to canonical names (ullage, sound, lcg, ..., grid columns)."""
    by_value: Dict[float, str] = {p.value: p.column for p in grid}
    rename = {}
    for c in df.columns:
        key = _normalize_header(c)
        if key in _ULLAGE_ALIASES:
            rename[c] = "ullage"
        elif key in _SOUND_ALIASES:
            rename[c] = "sound"
        elif key in _LCG_ALIASES:
            rename[c] = "lcg"
        elif key in _TCG_ALIASES:
            rename[c] = "tcg"
        elif key in _VCG_ALIASES:
            rename[c] = "vcg"
        elif key in _IY_ALIASES:
            rename[c] = "iy"
        else:
            value = _grid_value(key, axis_name)
            if value is not None and value in by_value:
                rename[c] = by_value[value]
    return df.rename(columns=rename)


def _read_table(file_path: str | Path) -> pd.DataFrame:
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.suffix.lower() in (".xlsx", ".xls"):
        return pd.read_excel(path, engine="openpyxl")
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path)
    raise ValueError(f"Unsupported format: {path.suffix}. Use .xlsx or .csv.")


def _numeric(df: pd.DataFrame, column: str) -> np.ndarray:
    return pd.to_numeric(df[column], errors="coerce").to_numpy(dtype=float)


def _prepare(
    df: pd.DataFrame,
    grid: Sequence[AxisPoint],
    axis_name: str,
) -> Tuple[pd.DataFrame, np.ndarray, Dict[str, np.ndarray]]:
    """Normalize headers, drop rows without ullage, check grid columns are complete."""
    df = _normalize_columns(df, grid, axis_name)
    if "ullage" not in df.columns:
        raise ValueError(f"Missing Ullage column. Found: {list(df.columns)}")
    missing = [p.column for p in grid if p.column not in df.columns]
    if missing:
        raise ValueError(f"Missing {axis_name} columns: {missing}. Found: {list(df.columns)}")

    ullage = _numeric(df, "ullage")
    keep = np.isfinite(ullage)
    df = df.loc[keep].reset_index(drop=True)
    ullage = ullage[keep]
    if ullage.size == 0:
        raise ValueError("No valid numeric rows found in the file.")

    values: Dict[str, np.ndarray] = {}
    for p in grid:
        col = _numeric(df, p.column)
        bad = ~np.isfinite(col)
        if bad.any():
            first = float(ullage[np.argmax(bad)])
            raise ValueError(f"Non-numeric {p.column} value at ullage {first:g} cm")
        values[p.column] = col

    order = np.argsort(ullage, kind="stable")
    sorted_ullage = ullage[order]
    dup = np.diff(sorted_ullage) == 0
    if dup.any():
        raise ValueError(f"Duplicate ullage {float(sorted_ullage[1:][dup][0]):g} cm")

    df = df.iloc[order].reset_index(drop=True)
    values = {k: v[order] for k, v in values.items()}
    return df, sorted_ullage, values


def _optional_column(df: pd.DataFrame, column: str, default: float) -> np.ndarray:
    if column not in df.columns:
        return np.full(len(df), default, dtype=float)
    col = _numeric(df, column)
    return np.where(np.isfinite(col), col, default)


def parse_main_sounding_dataframe(df: pd.DataFrame) -> List[MainSoundingRow]:
    df, ullage, volumes = _prepare(df, TRIM_GRID, "trim")
    sound = _optional_column(df, "sound", np.nan)
    lcg = _optional_column(df, "lcg", 0.0)
    tcg = _optional_column(df, "tcg", 0.0)
    vcg = _optional_column(df, "vcg", 0.0)
    iy = _optional_column(df, "iy", 0.0)

    rows: List[MainSoundingRow] = []
    for i in range(ullage.size):
        rows.append(
            MainSoundingRow(
                ullage=float(ullage[i]),
                sound=round_half_up(float(sound[i])) if np.isfinite(sound[i]) else None,
                lcg=float(lcg[i]),
                tcg=float(tcg[i]),
                vcg=float(vcg[i]),
                iy=float(iy[i]),
                volumes={c: float(v[i]) for c, v in volumes.items()},
            )
        )
    return rows


def parse_heel_correction_dataframe(df: pd.DataFrame) -> List[HeelCorrectionRow]:
    df, ullage, corrections = _prepare(df, HEEL_GRID, "heel")
    return [
        HeelCorrectionRow(
            ullage=float(ullage[i]),
            corrections={c: float(v[i]) for c, v in corrections.items()},
        )
        for i in range(ullage.size)
    ]


def parse_main_sounding_file(file_path: str | Path) -> List[MainSoundingRow]:
    """
    Parse a main sounding table from Excel (.xlsx) or CSV.

    Returns rows sorted by ullage. Raises ValueError if a trim column is
    missing, a volume is not numeric, or an ullage appears twice.
    """
    return parse_main_sounding_dataframe(_read_table(file_path))


def parse_heel_correction_file(file_path: str | Path) -> List[HeelCorrectionRow]:
    """Parse a heel correction table from Excel (.xlsx) or CSV, sorted by ullage."""
    return parse_heel_correction_dataframe(_read_table(file_path))
