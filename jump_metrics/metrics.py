"""Per-phase performance metrics."""

from __future__ import annotations
from datetime import timedelta
from typing import Optional, Sequence

import numpy as np

from .domain import (
    CanopyMetrics,
    DataPoint,
    FreefallMetrics,
    JumpPerformanceMetrics,
    JumpSegment,
    LandingMetrics,
    SegmentType,
)


# Pattern entry heuristic
PATTERN_AGL_THRESHOLD_M = 300.0
PATTERN_EDGE_SAMPLES = 10  # skip this many samples at each end of the canopy segment
PATTERN_WINDOW_SAMPLES = 10
PATTERN_MIN_WINDOW_SAMPLES = 5
PATTERN_TURN_RATE_RAD = 0.05  # ~3 deg of track change per sample

FINAL_APPROACH_WINDOW_S = 10.0


def _series(points: Sequence[DataPoint], attr: str) -> np.ndarray:
    return np.fromiter((getattr(p, attr) for p in points), dtype=float, count=len(points))


def freefall_metrics(segment: Optional[JumpSegment]) -> Optional[FreefallMetrics]:
    if segment is None or len(segment.points) == 0:
        return None

    vel_d = _series(segment.points, "vel_down")
    hspeed = _series(segment.points, "horizontal_speed")
    track = _series(segment.points, "ground_track")

    return FreefallMetrics(
        average_vertical_speed=float(np.mean(vel_d)),
        max_vertical_speed=float(np.max(vel_d)),
        average_horizontal_speed=float(np.mean(hspeed)),
        track_angle_deg=float(np.degrees(np.mean(track))),
        time_in_freefall_s=segment.duration,
    )


def glide_ratio(points: Sequence[DataPoint], start_altitude: float, end_altitude: float) -> float:
    """
    Horizontal distance over altitude lost.

    Distance integrates each sample's horizontal speed over the interval
    since the previous sample. Zero when no altitude was lost.
    """
    if len(points) < 2:
        distance = 0.0
    else:
        hspeed = _series(points[1:], "horizontal_speed")
        dt = np.array(
            [(b.time - a.time).total_seconds() for a, b in zip(points, points[1:])],
            dtype=float,
        )
        distance = float(np.sum(hspeed * dt))

    altitude_lost = start_altitude - end_altitude
    return distance / altitude_lost if altitude_lost > 0 else 0.0


def detect_pattern_altitude(points: Sequence[DataPoint], ground_elevation: float) -> Optional[float]:
    """
    Altitude where the canopy pilot starts turning through the landing pattern.

    Scans for the first sample below PATTERN_AGL_THRESHOLD_M (relative to
    ground_elevation) that begins a window whose mean ground-track change
    exceeds PATTERN_TURN_RATE_RAD per sample. Returns None if there is none.
    """
    n = len(points)
    track = _series(points, "ground_track")
    altitude = _series(points, "altitude_msl")

    for i in range(PATTERN_EDGE_SAMPLES, n - PATTERN_EDGE_SAMPLES):
        if altitude[i] - ground_elevation >= PATTERN_AGL_THRESHOLD_M:
            continue

        window = min(PATTERN_WINDOW_SAMPLES, n - i - 1)
        if window < PATTERN_MIN_WINDOW_SAMPLES:
            continue

        change = np.abs(np.diff(track[i:i + window]))
        change = np.where(change > np.pi, 2 * np.pi - change, change)  # wrap at +/- pi
        if float(np.mean(change)) > PATTERN_TURN_RATE_RAD:
            return float(altitude[i])

    return None


def canopy_metrics(segment: Optional[JumpSegment]) -> Optional[CanopyMetrics]:
    if segment is None or len(segment.points) == 0:
        return None

    points = segment.points
    vel_d = _series(points, "vel_down")
    hspeed = _series(points, "horizontal_speed")
    ground = float(np.min(_series(points, "altitude_msl")))

    return CanopyMetrics(
        deployment_altitude=segment.start_altitude,
        average_descent_rate=float(np.mean(vel_d)),
        glide_ratio=glide_ratio(points, segment.start_altitude, segment.end_altitude),
        max_horizontal_speed=float(np.max(hspeed)),
        total_canopy_time_s=segment.duration,
        pattern_altitude=detect_pattern_altitude(points, ground),
    )


def landing_metrics(segment: Optional[JumpSegment]) -> Optional[LandingMetrics]:
    if segment is None or len(segment.points) == 0:
        return None

    points = segment.points
    approach_from = segment.end_time - timedelta(seconds=FINAL_APPROACH_WINDOW_S)
    approach = [p for p in points if p.time >= approach_from] or list(points)

    return LandingMetrics(
        final_approach_speed=float(np.mean(_series(approach, "horizontal_speed"))),
        touchdown_vertical_speed=points[-1].vel_down,
    )


def _first_of(segments: Sequence[JumpSegment], seg_type: SegmentType) -> Optional[JumpSegment]:
    return next((s for s in segments if s.type == seg_type), None)


def calculate_metrics(segments: Sequence[JumpSegment]) -> JumpPerformanceMetrics:
    """
    Compute freefall, canopy and landing metrics from the first segment of
    each type. Missing or empty phases yield None for that sub-record.
    """
    return JumpPerformanceMetrics(
        freefall=freefall_metrics(_first_of(segments, SegmentType.FREEFALL)),
        canopy=canopy_metrics(_first_of(segments, SegmentType.CANOPY)),
        landing=landing_metrics(_first_of(segments, SegmentType.LANDING)),
    )
