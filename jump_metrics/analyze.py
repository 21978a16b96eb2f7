"""Pipeline orchestration for jump analysis."""

from __future__ import annotations
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .domain import DataPoint, Jump, JumpMetadata, JumpPerformanceMetrics, JumpSegment, SegmentationOptions
from .preprocess import CSVSource, load_track
from .validate import validate_points
from .detect import segment
from .metrics import calculate_metrics


def process_points(
    points: Sequence[DataPoint],
    options: Optional[SegmentationOptions] = None,
) -> Tuple[List[JumpSegment], JumpPerformanceMetrics]:
    """Segment already-parsed points and compute metrics. No validation."""
    segments = segment(points, options)
    logger.info("Segmented jump into {} segments", len(segments))
    metrics = calculate_metrics(segments)
    logger.info("Calculated performance metrics")
    return segments, metrics


def build_metadata(points: Sequence[DataPoint], header: Dict[str, str]) -> JumpMetadata:
    meta = JumpMetadata(total_data_points=len(points), header=dict(header))
    if points:
        meta.recording_start = points[0].time
        meta.recording_end = points[-1].time
        meta.max_altitude = max(p.altitude_msl for p in points)
        meta.min_altitude = min(p.altitude_msl for p in points)
    return meta


def analyze(
    csv_source: CSVSource,
    options: Optional[SegmentationOptions] = None,
    file_name: Optional[str] = None,
) -> tuple[Optional[Jump], Optional[str]]:
    """
    Run complete jump analysis pipeline.

    Orchestrates the full analysis workflow:
    1. Load FlySight CSV
    2. Validate data integrity
    3. Segment into phases
    4. Compute per-phase metrics

    Args:
        csv_source: Path or file-like object containing a FlySight track
        options: Segmentation thresholds (defaults when None)
        file_name: Name recorded on the Jump; defaults to the path's name

    Returns:
        Tuple of (jump, error):
        - On success: (Jump, None)
        - On unusable input: (None, error_message)

    Raises:
        SegmentationInvariantError: a detector bug, never reported as bad input.
    """
    if file_name is None and not hasattr(csv_source, "read"):
        file_name = Path(csv_source).name

    try:
        points, header = load_track(csv_source)
    except (OSError, ValueError) as e:
        logger.error("Failed to parse FlySight file {}: {}", file_name, e)
        return None, f"Failed to parse FlySight CSV file: {e}"
    logger.info("Parsed {} data points from {}", len(points), file_name)

    validation = validate_points(points)
    if not validation.is_valid:
        logger.warning("Data validation failed for {}: {}", file_name, "; ".join(validation.errors))
        return None, f"Data validation failed: {'; '.join(validation.errors)}"
    for w in validation.warnings:
        logger.warning("{}: {}", file_name, w)

    segments, metrics = process_points(points, options)

    jump = Jump(
        jump_id=str(uuid.uuid4()),
        file_name=file_name,
        metadata=build_metadata(points, header),
        segments=segments,
        metrics=metrics,
        warnings=list(validation.warnings),
    )
    logger.info("Processed jump {}", jump.jump_id)
    return jump, None
