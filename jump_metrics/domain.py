from __future__ import annotations
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple


# -----------------------------
# Input samples
# -----------------------------
@dataclass(frozen=True)
class DataPoint:
    """One GNSS fix from the logger. Velocities in m/s, velD positive = descending."""
    time: datetime
    latitude: float
    longitude: float
    altitude_msl: float     # meters above mean sea level
    vel_north: float
    vel_east: float
    vel_down: float
    horizontal_accuracy: float  # hAcc in meters; large while the receiver is still acquiring
    vertical_accuracy: float = 0.0
    speed_accuracy: float = 0.0
    num_satellites: Optional[int] = None  # None when the file has no numSV column

    @property
    def horizontal_speed(self) -> float:
        return math.sqrt(self.vel_north * self.vel_north + self.vel_east * self.vel_east)

    @property
    def vertical_speed(self) -> float:
        return abs(self.vel_down)

    @property
    def ground_track(self) -> float:
        """Direction of travel over ground, radians from north."""
        return math.atan2(self.vel_east, self.vel_north)


# -----------------------------
# Configuration
# -----------------------------
@dataclass(frozen=True)
class SegmentationOptions:
    min_freefall_vel_d: float = 10.0    # smoothed velD that counts as freefall; low enough for hop-n-pops (15-25 m/s)
    deployment_decel_threshold: float = 5.0     # velD drop per sample, sustained over the lookahead window

    min_canopy_vel_d: float = 2.0   # canopy descent band (m/s)
    max_canopy_vel_d: float = 15.0

    landing_vel_d_threshold: float = 1.0    # "on the ground"
    landing_horizontal_threshold: float = 2.0   # "stopped"
    landing_altitude_tolerance: float = 10.0    # meters above the lowest remaining altitude

    gps_accuracy_threshold: float = 50.0    # drop fixes with hAcc above this (meters)
    smoothing_window_size: int = 5  # centered moving average over velD, in samples
    min_phase_confirmation_samples: int = 3     # consecutive samples needed to call a transition

    aircraft_climb_threshold: float = -2.0  # smoothed velD below this = climbing in the aircraft

    # Deployment signature heuristics
    deployment_lookback_samples: int = 5
    deployment_velocity_relaxation: float = 0.8     # onset may sit slightly below min_freefall_vel_d
    deployment_lookahead_samples: int = 10
    deployment_min_lookahead_samples: int = 3


# -----------------------------
# Segments
# -----------------------------
class SegmentType(Enum):
    AIRCRAFT = "Aircraft"
    EXIT = "Exit"
    FREEFALL = "Freefall"
    DEPLOYMENT = "Deployment"
    CANOPY = "Canopy"
    LANDING = "Landing"


@dataclass(frozen=True)
class JumpSegment:
    type: SegmentType
    start_time: datetime
    end_time: datetime
    start_altitude: float
    end_altitude: float
    points: Tuple[DataPoint, ...] = ()  # contiguous slice of the filtered track, shared not copied

    @property
    def duration(self) -> float:
        """Seconds between the first and last sample."""
        return (self.end_time - self.start_time).total_seconds()

    @classmethod
    def from_points(cls, seg_type: SegmentType, points: Sequence[DataPoint]) -> "JumpSegment":
        if len(points) == 0:
            raise ValueError("A segment needs at least one data point.")
        first, last = points[0], points[-1]
        return cls(
            type=seg_type,
            start_time=first.time,
            end_time=last.time,
            start_altitude=first.altitude_msl,
            end_altitude=last.altitude_msl,
            points=tuple(points),
        )


class SegmentationInvariantError(RuntimeError):
    """The detector contradicted itself. A bug, not bad data: do not retry."""


# -----------------------------
# Performance metrics
# -----------------------------
@dataclass
class FreefallMetrics:
    average_vertical_speed: float
    max_vertical_speed: float
    average_horizontal_speed: float
    track_angle_deg: float
    time_in_freefall_s: float


@dataclass
class CanopyMetrics:
    deployment_altitude: float
    average_descent_rate: float
    glide_ratio: float
    max_horizontal_speed: float
    total_canopy_time_s: float
    pattern_altitude: Optional[float] = None    # None when no turn onto the pattern was seen


@dataclass
class LandingMetrics:
    final_approach_speed: float
    touchdown_vertical_speed: float
    landing_accuracy: Optional[float] = None    # needs a target coordinate, which this package never has


@dataclass
class JumpPerformanceMetrics:
    # None means "phase not present", never "zero performance"
    freefall: Optional[FreefallMetrics] = None
    canopy: Optional[CanopyMetrics] = None
    landing: Optional[LandingMetrics] = None


# -----------------------------
# Whole jump
# -----------------------------
@dataclass
class JumpMetadata:
    total_data_points: int = 0
    recording_start: Optional[datetime] = None
    recording_end: Optional[datetime] = None
    max_altitude: Optional[float] = None
    min_altitude: Optional[float] = None
    header: Dict[str, str] = field(default_factory=dict)   # FlySight $VAR lines (FIRMWARE_VER, DEVICE_ID, ...)


@dataclass
class Jump:
    jump_id: str
    file_name: Optional[str]
    metadata: JumpMetadata
    segments: List[JumpSegment] = field(default_factory=list)
    metrics: Optional[JumpPerformanceMetrics] = None
    warnings: List[str] = field(default_factory=list)
