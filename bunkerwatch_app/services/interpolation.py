"""
Interpolation primitives for calibration tables.

Trim and heel are resolved against the fixed grids in config.grids; ullage is
resolved against the ullages actually stored for a compartment. Inputs outside
the calibrated range are rejected, never clamped or extrapolated.
"""

from __future__ import annotations

import math
from bisect import bisect_left
from dataclasses import dataclass
from typing import Sequence

from bunkerwatch_app.config.grids import AxisPoint


class CalibrationError(Exception):
    """Base class for failures that can be shown to the operator as-is."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NoCalibrationData(CalibrationError):
    def __init__(self, compartment_id: int, grid: str = "main sounding") -> None:
        self.compartment_id = compartment_id
        self.grid = grid
        if grid == "heel correction":
            message = f"No heel correction data found for compartment {compartment_id}"
        else:
            message = f"No calibration data found for compartment {compartment_id}"
        super().__init__(message)


class OutOfRange(CalibrationError):
    def __init__(self, axis: str, bound: str, limit: float, attempted: float, unit: str = "") -> None:
        self.axis = axis
        self.bound = bound  # "minimum" or "maximum"
        self.limit = limit
        self.attempted = attempted
        self.unit = unit
        side = "below" if bound == "minimum" else "above"
        super().__init__(
            f"{axis} {attempted}{unit} is {side} {bound} {limit}{unit}"
        )


class InvalidReading(CalibrationError):
    def __init__(self, axis: str, attempted: float) -> None:
        self.axis = axis
        self.attempted = attempted
        super().__init__(f"{axis} must be a finite number, got {attempted}")


@dataclass(frozen=True, slots=True)
class AxisExact:
    point: AxisPoint


@dataclass(frozen=True, slots=True)
class AxisBounds:
    lower: AxisPoint
    upper: AxisPoint


@dataclass(frozen=True, slots=True)
class RowExact:
    index: int


@dataclass(frozen=True, slots=True)
class RowBounds:
    lower: int
    upper: int


def linear_interpolate(x1: float, y1: float, x2: float, y2: float, x: float) -> float:
    """Value at x on the line through (x1, y1), (x2, y2); y1 when x1 == x2."""
    if x1 == x2:
        return y1
    return y1 + (y2 - y1) * ((x - x1) / (x2 - x1))


def round_half_up(value: float) -> int:
    """Nearest integer, halves toward +inf (sound is a discrete gauge reading)."""
    return int(math.floor(value + 0.5))


def _check_finite(target: float, name: str) -> float:
    value = float(target)
    if not math.isfinite(value):
        raise InvalidReading(name, value)
    return value


def resolve_axis(
    axis: Sequence[AxisPoint],
    target: float,
    name: str,
    unit: str = "",
) -> AxisExact | AxisBounds:
    """
    Locate target on an ordered axis: the exact column, or the two columns
    strictly bracketing it. Raises OutOfRange outside the first/last value.
    """
    value = _check_finite(target, name)

    for point in axis:
        if point.value == value:
            return AxisExact(point)

    for lower, upper in zip(axis, axis[1:]):
        if lower.value < value < upper.value:
            return AxisBounds(lower, upper)

    if value < axis[0].value:
        raise OutOfRange(name, "minimum", axis[0].value, value, unit)
    raise OutOfRange(name, "maximum", axis[-1].value, value, unit)


def find_ullage_bounds(ullages: Sequence[float], target: float) -> RowExact | RowBounds:
    """
    Locate target among a compartment's ascending ullages.

    An exact stored value is checked first; otherwise the bounding pair is
    found by binary search with inclusive bounds. Callers must handle the
    empty table before calling.
    """
    value = _check_finite(target, "Ullage")

    idx = bisect_left(ullages, value)
    if idx < len(ullages) and ullages[idx] == value:
        return RowExact(idx)

    if value < ullages[0]:
        raise OutOfRange("Ullage", "minimum", ullages[0], value, "cm")
    if value > ullages[-1]:
        raise OutOfRange("Ullage", "maximum", ullages[-1], value, "cm")

    # ullages[idx - 1] < value < ullages[idx]
    return RowBounds(idx - 1, idx)
