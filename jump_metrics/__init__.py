"""
Jump Metrics - Skydive Phase Segmentation

A toolkit for turning a FlySight GPS track of a single skydive into
labeled phases (aircraft, exit, freefall, deployment, canopy, landing)
and per-phase performance metrics such as fall rate, glide ratio and
final approach speed.
"""

from loguru import logger

from .domain import (
    DataPoint,
    SegmentType,
    JumpSegment,
    SegmentationOptions,
    SegmentationInvariantError,
    FreefallMetrics,
    CanopyMetrics,
    LandingMetrics,
    JumpPerformanceMetrics,
    JumpMetadata,
    Jump,
)
from .preprocess import load_track, moving_average, filter_good_points, prepare_track
from .validate import ValidationResult, validate_points
from .detect import segment
from .metrics import calculate_metrics
from .analyze import analyze, process_points

# Library default: silent until the application calls logger.enable("jump_metrics")
logger.disable("jump_metrics")

__all__ = [
    # Domain models
    "DataPoint",
    "SegmentType",
    "JumpSegment",
    "SegmentationOptions",
    "SegmentationInvariantError",
    "FreefallMetrics",
    "CanopyMetrics",
    "LandingMetrics",
    "JumpPerformanceMetrics",
    "JumpMetadata",
    "Jump",
    # Preprocessing
    "load_track",
    "moving_average",
    "filter_good_points",
    "prepare_track",
    # Validation
    "ValidationResult",
    "validate_points",
    # Segmentation
    "segment",
    # Metrics
    "calculate_metrics",
    # Pipeline
    "analyze",
    "process_points",
]

__version__ = "0.1.0"
