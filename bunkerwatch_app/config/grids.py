"""
Fixed calibration grids shared by every vessel and compartment.

Main sounding tables carry one volume column per trim value; heel correction
tables carry one correction column per heel value. Order matters: the axis
resolver walks these tuples pairwise to find bounding columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class AxisPoint:
    """One calibrated axis value and the table column that holds it."""
    value: float
    column: str


# Trim (m), negative = by the head
TRIM_GRID: Tuple[AxisPoint, ...] = (
    AxisPoint(-4.0, "trim_minus_4_0"),
    AxisPoint(-3.0, "trim_minus_3_0"),
    AxisPoint(-2.0, "trim_minus_2_0"),
    AxisPoint(-1.5, "trim_minus_1_5"),
    AxisPoint(-1.0, "trim_minus_1_0"),
    AxisPoint(-0.5, "trim_minus_0_5"),
    AxisPoint(0.0, "trim_0_0"),
    AxisPoint(0.5, "trim_plus_0_5"),
    AxisPoint(1.0, "trim_plus_1_0"),
    AxisPoint(1.5, "trim_plus_1_5"),
    AxisPoint(2.0, "trim_plus_2_0"),
    AxisPoint(3.0, "trim_plus_3_0"),
    AxisPoint(4.0, "trim_plus_4_0"),
)

# Heel (degrees)
HEEL_GRID: Tuple[AxisPoint, ...] = (
    AxisPoint(-3.0, "heel_minus_3_0"),
    AxisPoint(-2.0, "heel_minus_2_0"),
    AxisPoint(-1.5, "heel_minus_1_5"),
    AxisPoint(-1.0, "heel_minus_1_0"),
    AxisPoint(-0.5, "heel_minus_0_5"),
    AxisPoint(0.0, "heel_0_0"),
    AxisPoint(0.5, "heel_plus_0_5"),
    AxisPoint(1.0, "heel_plus_1_0"),
    AxisPoint(1.5, "heel_plus_1_5"),
    AxisPoint(2.0, "heel_plus_2_0"),
    AxisPoint(3.0, "heel_plus_3_0"),
)

TRIM_COLUMNS: Tuple[str, ...] = tuple(p.column for p in TRIM_GRID)
HEEL_COLUMNS: Tuple[str, ...] = tuple(p.column for p in HEEL_GRID)

# Volumes, corrections and CoG are shown to the operator with two decimals
DISPLAY_DECIMALS = 2
