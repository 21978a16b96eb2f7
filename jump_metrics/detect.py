"""Jump phase detection over a filtered, smoothed track."""

from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .domain import (
    DataPoint,
    JumpSegment,
    SegmentationInvariantError,
    SegmentationOptions,
    SegmentType,
)
from .preprocess import Track, find_peak_altitude_index, prepare_track


# Result of one detection step: the segment (if any) and where the cursor goes next
Step = Tuple[Optional[JumpSegment], int]


def make_segment(track: Track, seg_type: SegmentType, start: int, end: int) -> JumpSegment:
    """Build a segment over track.points[start..end] (inclusive), clamped to the data."""
    start = max(0, start)
    end = min(len(track) - 1, end)
    return JumpSegment.from_points(seg_type, track.points[start:end + 1])


def detect_aircraft(track: Track, start: int, peak_idx: int, options: SegmentationOptions) -> Step:
    """
    Walk forward while still in the aircraft: climbing (smoothed velD below
    aircraft_climb_threshold) or altitude still rising toward the peak.

    Only emits a segment when at least one sample past the start qualifies.
    """
    v = track.vel_d_s
    alt = track.altitude
    n = len(track)
    end = -1

    i = start
    while i <= peak_idx and i < n - 1:
        climbing = v[i] < options.aircraft_climb_threshold
        rising = i < peak_idx and alt[i] < alt[i + 1]
        if not (climbing or rising):
            break
        end = i
        i += 1

    if end > start:
        return make_segment(track, SegmentType.AIRCRAFT, start, end), end + 1
    return None, start


def create_exit_segment(
    track: Track,
    exit_idx: int,
    freefall_start: int,
    options: SegmentationOptions,
) -> Optional[JumpSegment]:
    """Short bridge from the end of the climb to freefall onset; never reaches into freefall."""
    if exit_idx >= freefall_start:
        return None
    end = max(exit_idx, min(exit_idx + options.min_phase_confirmation_samples, freefall_start - 1))
    return make_segment(track, SegmentType.EXIT, exit_idx, end)


def is_deployment_transition(vel_d_s: np.ndarray, index: int, options: SegmentationOptions) -> bool:
    """
    True when a sustained deceleration from (near) freefall speed down into the
    canopy band starts at index.

    Args:
        vel_d_s: Smoothed vertical speed
        index: Candidate onset
        options: Thresholds

    Returns:
        Whether the drop over the lookahead window exceeds
        lookahead * deployment_decel_threshold, starting at or above
        min_freefall_vel_d * deployment_velocity_relaxation and ending at or
        below max_canopy_vel_d.
    """
    if index < 0:
        return False

    lookahead = min(options.deployment_lookahead_samples, len(vel_d_s) - index - 1)
    if lookahead < options.deployment_min_lookahead_samples:
        return False

    initial = float(vel_d_s[index])
    final = float(vel_d_s[index + lookahead])

    significant_decel = (initial - final) > lookahead * options.deployment_decel_threshold
    starts_high = initial >= options.min_freefall_vel_d * options.deployment_velocity_relaxation
    ends_low = final <= options.max_canopy_vel_d
    return significant_decel and starts_high and ends_low


def detect_freefall(track: Track, start: int, options: SegmentationOptions) -> Step:
    """
    Find freefall onset, then follow it until deployment shows up or the
    jumper stops looking like a freefaller for min_phase_confirmation_samples.

    A sample stays in freefall while it is at or above min_freefall_vel_d AND
    either still speeding up or above the canopy ceiling. Decelerating samples
    inside the canopy band do not count: that is deployment under way.
    """
    v = track.vel_d_s
    n = len(track)
    confirm = options.min_phase_confirmation_samples
    limit = n - confirm

    onset = -1
    for i in range(start, limit):
        if v[i] >= options.min_freefall_vel_d:
            onset = i
            break

    if onset == -1:
        return None, start  # never reached freefall speed

    end = -1
    misses = 0
    for i in range(onset, limit):
        meets_min = v[i] >= options.min_freefall_vel_d
        still_falling = False
        if i < n - 1:
            still_falling = v[i + 1] - v[i] > 0 or v[i] > options.max_canopy_vel_d

        if meets_min and still_falling:
            end = i
            misses = 0
        elif end > onset:
            misses += 1

            # deployment may have begun a few samples before speed left the freefall band
            lookback = min(options.deployment_lookback_samples, i - onset)
            if any(is_deployment_transition(v, i - back, options) for back in range(lookback + 1)):
                break
            if misses >= confirm:
                break

    if end > onset:
        return make_segment(track, SegmentType.FREEFALL, onset, end), end + 1
    return None, start


def detect_deployment(track: Track, start: int, options: SegmentationOptions) -> Step:
    """
    Look for the deployment deceleration, starting a little before the cursor.

    The onset may precede the cursor, but the emitted segment is clipped to
    begin at the cursor so it never overlaps the previous phase.
    """
    v = track.vel_d_s
    n = len(track)
    confirm = options.min_phase_confirmation_samples

    search_from = max(0, start - options.deployment_lookback_samples)
    for i in range(search_from, n - confirm):
        if is_deployment_transition(v, i, options):
            seg_start = max(i, start)
            seg_end = min(i + confirm * 2, n - 1)
            if seg_end > seg_start:
                return make_segment(track, SegmentType.DEPLOYMENT, seg_start, seg_end), seg_end + 1
            return None, start

    return None, start


def detect_canopy(track: Track, start: int, options: SegmentationOptions) -> Step:
    """Extend while smoothed velD sits inside the canopy band; stop once it falls below the floor."""
    v = track.vel_d_s
    end = -1

    for i in range(start, len(track)):
        if options.min_canopy_vel_d <= v[i] <= options.max_canopy_vel_d:
            end = i
        elif end > start and v[i] < options.min_canopy_vel_d:
            break

    if end > start:
        return make_segment(track, SegmentType.CANOPY, start, end), end + 1
    return None, start


def detect_landing(track: Track, start: int, options: SegmentationOptions) -> Step:
    """First stopped point near the lowest remaining altitude, through to the end of data."""
    n = len(track)
    if start >= n:
        return None, start

    ground = float(np.min(track.altitude[start:]))
    near_ground = np.abs(track.altitude[start:] - ground) < options.landing_altitude_tolerance
    slow_down = track.vel_d[start:] < options.landing_vel_d_threshold
    stopped = track.horizontal_speed[start:] < options.landing_horizontal_threshold

    hits = np.flatnonzero(near_ground & slow_down & stopped)
    if len(hits) == 0:
        return None, start

    landing_start = start + int(hits[0])
    return make_segment(track, SegmentType.LANDING, landing_start, n - 1), n


def _index_of(points: Sequence[DataPoint], anchor: DataPoint) -> int:
    # identity, not equality: two fixes may carry identical values
    for i, p in enumerate(points):
        if p is anchor:
            return i
    return -1


def segment(
    points: Optional[Sequence[DataPoint]],
    options: Optional[SegmentationOptions] = None,
) -> List[JumpSegment]:
    """
    Split one jump into ordered, non-overlapping phases.

    Phases are detected in order (Aircraft, Exit, Freefall, Deployment,
    Canopy, Landing) with a single forward cursor; any of them may be missing.

    Args:
        points: Parsed fixes in time order
        options: Thresholds; defaults when None

    Returns:
        List of JumpSegment in time order. Empty when the input is empty or
        too few fixes pass the accuracy filter.

    Raises:
        SegmentationInvariantError: the freefall segment's first point is not
            part of the filtered track it was cut from.
    """
    options = options or SegmentationOptions()
    track = prepare_track(points, options)
    if track is None:
        return []

    segments: List[JumpSegment] = []
    peak_idx = find_peak_altitude_index(track.altitude)

    aircraft, cursor = detect_aircraft(track, 0, peak_idx, options)
    if aircraft is not None:
        segments.append(aircraft)

    exit_idx = cursor
    freefall, cursor = detect_freefall(track, cursor, options)
    if freefall is not None:
        freefall_start = _index_of(track.points, freefall.points[0])
        if freefall_start == -1:
            raise SegmentationInvariantError(
                "Freefall segment start point was not found in the source data points."
            )
        exit_seg = create_exit_segment(track, exit_idx, freefall_start, options)
        if exit_seg is not None:
            segments.append(exit_seg)
        segments.append(freefall)

    deployment, cursor = detect_deployment(track, cursor, options)
    if deployment is not None:
        segments.append(deployment)

    canopy, cursor = detect_canopy(track, cursor, options)
    if canopy is not None:
        segments.append(canopy)

    landing, cursor = detect_landing(track, cursor, options)
    if landing is not None:
        segments.append(landing)

    logger.debug(
        "Segmented {} points (peak at {}): {}",
        len(track), peak_idx, ", ".join(s.type.value for s in segments) or "no phases",
    )
    return segments
