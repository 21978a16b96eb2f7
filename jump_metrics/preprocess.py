from __future__ import annotations
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import IO, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger

from .domain import DataPoint, SegmentationOptions

# -----------------------------
# Helpers
# -----------------------------

def _normalize_col(c: str) -> str:
    return c.strip().lower().replace(" ", "").replace("_", "")

def _pick_col(df: pd.DataFrame, candidates: list[str]) -> str | None:
    # match by normalized name
    norm_map = {_normalize_col(c): c for c in df.columns}
    for cand in candidates:
        key = _normalize_col(cand)
        if key in norm_map:
            return norm_map[key]
    return None


def moving_average(x: np.ndarray, win: int) -> np.ndarray:
    """Centered moving average, same length as x.

    The window shrinks at the edges: sample i averages
    x[max(0, i - win//2) : min(n, i + win//2 + 1)]. No padding, no wrap-around.
    """
    x = np.asarray(x, dtype=float)
    if win <= 1 or len(x) == 0:
        return x.copy()

    n = len(x)
    half = win // 2
    csum = np.concatenate(([0.0], np.cumsum(x)))

    idx = np.arange(n)
    lo = np.maximum(0, idx - half)
    hi = np.minimum(n, idx + half + 1)
    return (csum[hi] - csum[lo]) / (hi - lo)


def filter_good_points(points: Sequence[DataPoint], threshold: float) -> List[DataPoint]:
    """Keep fixes whose horizontal accuracy is within threshold (meters), in order."""
    return [p for p in points if p.horizontal_accuracy <= threshold]


def find_peak_altitude_index(altitude: np.ndarray) -> int:
    """Index of the first sample at maximum altitude."""
    return int(np.argmax(altitude))


# -----------------------------
# Prepared series
# -----------------------------
@dataclass(frozen=True, eq=False)
class Track:
    """Filtered fixes plus the parallel arrays the detector walks over."""
    points: Tuple[DataPoint, ...]
    vel_d_s: np.ndarray     # smoothed velD
    vel_d: np.ndarray
    altitude: np.ndarray
    horizontal_speed: np.ndarray

    def __len__(self) -> int:
        return len(self.points)


def prepare_track(points: Optional[Sequence[DataPoint]], options: SegmentationOptions) -> Optional[Track]:
    """
    Filter out inaccurate fixes and smooth vertical speed.

    Returns None when fewer than smoothing_window_size fixes survive the
    accuracy filter: there is not enough signal to smooth or classify.
    """
    if not points:
        return None

    good = filter_good_points(points, options.gps_accuracy_threshold)
    if len(good) < options.smoothing_window_size:
        logger.debug(
            "Only {} of {} points pass hAcc <= {} m; nothing to segment",
            len(good), len(points), options.gps_accuracy_threshold,
        )
        return None

    vel_d = np.fromiter((p.vel_down for p in good), dtype=float, count=len(good))
    altitude = np.fromiter((p.altitude_msl for p in good), dtype=float, count=len(good))
    hspeed = np.fromiter((p.horizontal_speed for p in good), dtype=float, count=len(good))

    return Track(
        points=tuple(good),
        vel_d_s=moving_average(vel_d, options.smoothing_window_size),
        vel_d=vel_d,
        altitude=altitude,
        horizontal_speed=hspeed,
    )


# -----------------------------
# FlySight CSV loading
# -----------------------------
CSVSource = Union[str, Path, IO[bytes], IO[str]]

_TIME_COLS = ["time"]
_NUMERIC_COLS: Dict[str, list[str]] = {
    # field name -> accepted column names
    "latitude": ["lat", "latitude"],
    "longitude": ["lon", "longitude"],
    "altitude_msl": ["hMSL", "alt_msl_m"],
    "vel_north": ["velN"],
    "vel_east": ["velE"],
    "vel_down": ["velD"],
    "horizontal_accuracy": ["hAcc"],
    "vertical_accuracy": ["vAcc"],
    "speed_accuracy": ["sAcc"],
    "num_satellites": ["numSV"],
}
_REQUIRED = ["altitude_msl", "vel_north", "vel_east", "vel_down"]


def _read_text(csv_source: CSVSource) -> str:
    if hasattr(csv_source, "read"):
        raw = csv_source.read()
    else:
        raw = Path(csv_source).read_bytes()
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8-sig")
    return raw


def _frame_from_flysight2(lines: list[str]) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    FlySight 2 layout:

        $FLYS,1
        $VAR,FIRMWARE_VER,v2023.09.22
        $COL,GNSS,time,lat,lon,hMSL,velN,velE,velD,hAcc,vAcc,sAcc,numSV
        $UNIT,GNSS,,deg,deg,m,m/s,m/s,m/s,m,m,m,
        $DATA
        $GNSS,2024-05-04T17:03:22.400Z,...
    """
    header: Dict[str, str] = {}
    columns: list[str] | None = None
    rows: list[str] = []

    for line in lines:
        fields = line.split(",")
        tag = fields[0]
        if tag == "$FLYS" and len(fields) > 1:
            header["FORMAT_VERSION"] = fields[1]
        elif tag == "$VAR" and len(fields) > 2:
            header[fields[1]] = ",".join(fields[2:])
        elif tag == "$COL" and len(fields) > 2 and fields[1] == "GNSS":
            columns = fields[2:]
        elif tag == "$GNSS":
            rows.append(",".join(fields[1:]))

    if columns is None:
        raise ValueError("No $COL,GNSS line found in FlySight header.")
    if not rows:
        return pd.DataFrame(columns=columns), header

    df = pd.read_csv(StringIO("\n".join(rows)), header=None, names=columns)
    return df, header


def _frame_from_flysight1(text: str) -> pd.DataFrame:
    df = pd.read_csv(StringIO(text))
    time_col = _pick_col(df, _TIME_COLS)
    if time_col is not None:
        # second line carries units such as "(ISO8601)", "(deg)"
        units = df[time_col].astype(str).str.startswith("(")
        df = df.loc[~units].reset_index(drop=True)
    return df


def load_track(csv_source: CSVSource) -> Tuple[List[DataPoint], Dict[str, str]]:
    """
    Parse a FlySight TRACK.CSV (format 2 with $-tagged records, or the older
    plain CSV with a units row) into DataPoints.

    Rows are returned in file order; ordering problems are for the validator
    to report. Rows with an unparseable time or required value are dropped.

    Returns (points, header) where header holds the $VAR variables plus
    FORMAT_VERSION when present.
    """
    text = _read_text(csv_source)
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        raise ValueError("Empty FlySight file.")

    if lines[0].startswith("$"):
        df, header = _frame_from_flysight2(lines)
    else:
        df, header = _frame_from_flysight1(text), {}

    time_col = _pick_col(df, _TIME_COLS)
    if time_col is None:
        raise ValueError(f"No time column found. Expected 'time'. Found: {list(df.columns)}")

    picked = {name: _pick_col(df, cands) for name, cands in _NUMERIC_COLS.items()}
    missing = [name for name in _REQUIRED if picked[name] is None]
    if missing:
        raise ValueError(f"Missing required columns: {missing}. Found columns: {list(df.columns)}")

    out = pd.DataFrame({"time": pd.to_datetime(df[time_col], utc=True, errors="coerce", format="ISO8601")})
    for name, col in picked.items():
        if col is None and name == "num_satellites":
            out[name] = np.nan  # unknown, not zero
        elif col is None:
            out[name] = 0.0  # optional column absent; hAcc of 0 means the fix is trusted
        else:
            out[name] = pd.to_numeric(df[col], errors="coerce")

    before = len(out)
    out = out.dropna(subset=["time", "latitude", "longitude", *_REQUIRED, "horizontal_accuracy"])
    if len(out) < before:
        logger.warning("Dropped {} unparseable rows", before - len(out))

    out = out.fillna({"vertical_accuracy": 0.0, "speed_accuracy": 0.0})

    points = [
        DataPoint(
            time=row.time.to_pydatetime(),
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            altitude_msl=float(row.altitude_msl),
            vel_north=float(row.vel_north),
            vel_east=float(row.vel_east),
            vel_down=float(row.vel_down),
            horizontal_accuracy=float(row.horizontal_accuracy),
            vertical_accuracy=float(row.vertical_accuracy),
            speed_accuracy=float(row.speed_accuracy),
            num_satellites=None if pd.isna(row.num_satellites) else int(row.num_satellites),
        )
        for row in out.itertuples(index=False)
    ]
    return points, header
