"""Integrity checks run on parsed data before segmentation."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .domain import DataPoint


MIN_DATA_POINTS = 10
MAX_GPS_ACCURACY_M = 50.0
MIN_SATELLITES = 6
MAX_TIME_GAP_S = 2.0
MIN_ALTITUDE_M = -100.0
MAX_ALTITUDE_M = 10000.0
MAX_VELOCITY_DOWN = 150.0  # m/s, well past any real freefall


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)     # any error makes the file unusable
    warnings: List[str] = field(default_factory=list)   # usable, but worth telling the jumper


def validate_points(points: Optional[Sequence[DataPoint]]) -> ValidationResult:
    """
    Check a parsed track for structural problems.

    Errors (is_valid=False, checking stops at the first one):
    - no points
    - fewer than MIN_DATA_POINTS points
    - every timestamp identical

    Warnings (is_valid stays True):
    - poor horizontal accuracy, low satellite count
    - out-of-order timestamps, gaps longer than MAX_TIME_GAP_S (reported once each)
    - altitudes or vertical speeds outside plausible ranges
    """
    result = ValidationResult()

    if not points:
        result.is_valid = False
        result.errors.append("No data points provided")
        return result

    n = len(points)
    if n < MIN_DATA_POINTS:
        result.is_valid = False
        result.errors.append(f"Insufficient data points: {n} (minimum {MIN_DATA_POINTS} required)")
        return result

    if len({p.time for p in points}) == 1:
        result.is_valid = False
        result.errors.append("All timestamps are identical - no time progression detected")
        return result

    poor_acc = sum(1 for p in points if p.horizontal_accuracy > MAX_GPS_ACCURACY_M)
    if poor_acc:
        result.warnings.append(
            f"{poor_acc} data points have poor GPS accuracy (hAcc > {MAX_GPS_ACCURACY_M:g}m)"
        )

    low_sv = sum(1 for p in points if p.num_satellites is not None and p.num_satellites < MIN_SATELLITES)
    if low_sv:
        result.warnings.append(
            f"{low_sv} data points have insufficient satellites (numSV < {MIN_SATELLITES})"
        )

    pairs = list(zip(points, points[1:]))
    if any(b.time < a.time for a, b in pairs):
        result.warnings.append("Timestamps are not monotonically increasing - data may be out of order")

    for a, b in pairs:
        gap = (b.time - a.time).total_seconds()
        if gap > MAX_TIME_GAP_S:
            result.warnings.append(
                f"Large time gap detected: {gap:.1f}s between data points (>{MAX_TIME_GAP_S:g}s threshold)"
            )
            break

    bad_alt = sum(1 for p in points if not MIN_ALTITUDE_M <= p.altitude_msl <= MAX_ALTITUDE_M)
    if bad_alt:
        result.warnings.append(
            f"{bad_alt} data points have altitude outside reasonable range "
            f"({MIN_ALTITUDE_M:g}m to {MAX_ALTITUDE_M:g}m MSL)"
        )

    bad_vel = sum(1 for p in points if abs(p.vel_down) > MAX_VELOCITY_DOWN)
    if bad_vel:
        result.warnings.append(
            f"{bad_vel} data points have implausible velocity (|velD| > {MAX_VELOCITY_DOWN:g}m/s)"
        )

    return result
