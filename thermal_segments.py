#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
thermal_segments.py
===================
Sustained-climb (thermal) detection on the annotated fix frame.

Scan
----
One pass over the fixes with two states, cruising and climbing:
  - cruising -> climbing when vario > 0.5 m/s
  - while climbing, a non-positive vario looks ahead (up to 20 fixes) for a
    run of vario < -0.5 m/s; 5 of those in a row, or more than 300 fixes since
    the climb started, close the segment at the previous fix
  - a climb still open at the last fix is closed there
  - a closed segment is a candidate when its mean climb (positive fixes only)
    is >= 0.7 * min_climb_rate and it gained more than 30 m

Each candidate gets a climb-weighted centre (weight = max(0.1, vario + 1)),
a radius (furthest fix from that centre) and a 1-5 strength from its peak
climb. Candidates that gained 25 m or less are dropped after that.

Progress is reported as integer percentages through an optional callable
(0, then every 1000 fixes up to 80, then 100), followed by an optional
completion callable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from igc_utils import haversine_km

logger = logging.getLogger(__name__)

# -------------------- parameters --------------------
MIN_FIXES = 50
CLIMB_START_MPS = 0.5
SINK_MPS = -0.5
SINK_LOOKAHEAD = 20
SINK_STREAK_END = 5
MAX_SEGMENT_FIXES = 300
ACCEPT_CLIMB_FRACTION = 0.7
ACCEPT_MIN_GAIN_M = 30
KEEP_MIN_GAIN_M = 25
CENTER_MIN_WEIGHT = 0.1
PROGRESS_EVERY = 1000
PROGRESS_SCAN_PCT = 80

# (min peak climb m/s, strength, label), strongest first
STRENGTH_CLASSES = [
    (5.0, 5, "Excellent"),
    (3.5, 4, "Very Good"),
    (2.5, 3, "Good"),
    (1.5, 2, "Fair"),
    (float("-inf"), 1, "Weak"),
]
STRENGTH_LABELS = {strength: label for _, strength, label in STRENGTH_CLASSES}

ProgressFn = Callable[[int], None]


@dataclass(frozen=True)
class ThermalSegment:
    name: str
    start_idx: int
    end_idx: int
    start_time: datetime
    end_time: datetime
    center_lat: float
    center_lon: float
    avg_climb: float
    max_climb: float
    alt_gain: float
    radius_m: float
    strength: int

    @property
    def duration_s(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def strength_label(self) -> str:
        return STRENGTH_LABELS[self.strength]


def classify_strength(max_climb: float) -> int:
    for threshold, strength, _ in STRENGTH_CLASSES:
        if max_climb >= threshold:
            return strength
    return 1


def thermal_name(max_climb: float, index: int) -> str:
    return f"Thermal_{max_climb:.1f}ms_{index}"


def _sink_streak(vario: np.ndarray, i: int) -> int:
    streak = 0
    for v in vario[i:i + SINK_LOOKAHEAD]:
        if v < SINK_MPS:
            streak += 1
        else:
            break
    return streak


def detect_climb_segments(df: pd.DataFrame, min_climb_rate: float,
                          progress: Optional[ProgressFn] = None) -> List[Tuple[int, int]]:
    """
    Run the cruising/climbing scan. Returns accepted (start_idx, end_idx) pairs,
    inclusive, in track order.
    """
    vario = df["vario"].to_numpy(float)
    alt = df["gps_alt"].to_numpy()
    n = len(vario)

    segments: List[Tuple[int, int]] = []
    in_climb = False
    start = 0
    climb_sum = 0.0
    climb_pts = 0

    def close(end: int) -> None:
        avg = climb_sum / climb_pts if climb_pts else 0.0
        gain = int(alt[end]) - int(alt[start])
        accepted = avg >= min_climb_rate * ACCEPT_CLIMB_FRACTION and gain > ACCEPT_MIN_GAIN_M
        logger.debug("climb %d..%d avg %.2f m/s gain %d m -> %s",
                     start, end, avg, gain, "candidate" if accepted else "rejected")
        if accepted:
            segments.append((start, end))

    for i in range(n):
        vs = vario[i]
        if not in_climb and vs > CLIMB_START_MPS:
            in_climb = True
            start = i
            climb_sum = vs
            climb_pts = 1
        elif in_climb:
            if vs > 0:
                climb_sum += vs
                climb_pts += 1
            elif _sink_streak(vario, i) >= SINK_STREAK_END or (i - start) > MAX_SEGMENT_FIXES:
                close(i - 1)
                in_climb = False
                climb_sum = 0.0
                climb_pts = 0

        if progress is not None and i % PROGRESS_EVERY == 0:
            progress((i * PROGRESS_SCAN_PCT) // n)

    if in_climb:
        close(n - 1)

    return segments


def thermal_center(df: pd.DataFrame, start: int, end: int) -> Optional[Dict[str, float]]:
    """Climb-weighted centre, climb figures, gain and radius of fixes start..end."""
    if start >= end:
        return None
    seg = df.iloc[start:end + 1]
    vs = seg["vario"].to_numpy(float)
    lat = seg["lat"].to_numpy(float)
    lon = seg["lon"].to_numpy(float)

    w = np.maximum(CENTER_MIN_WEIGHT, vs + 1.0)
    lat_c = float(np.average(lat, weights=w))
    lon_c = float(np.average(lon, weights=w))
    radius_m = float(np.max(haversine_km(lat_c, lon_c, lat, lon))) * 1000.0

    alt = seg["gps_alt"].to_numpy()
    return {
        "center_lat": lat_c,
        "center_lon": lon_c,
        "avg_climb": float(vs.mean()),
        "max_climb": float(vs.max()),
        "alt_gain": float(int(alt[-1]) - int(alt[0])),
        "radius_m": radius_m,
    }


def detect_thermals(df: pd.DataFrame,
                    min_climb_rate: float = 1.0,
                    thermal_radius: float = 200.0,
                    progress: Optional[ProgressFn] = None,
                    done: Optional[Callable[[], None]] = None) -> List[ThermalSegment]:
    """
    Thermals of an annotated fix frame, in track order.

    `thermal_radius` is accepted for callers that carry it around but does not
    filter segments; only `min_climb_rate` affects acceptance.
    """
    thermals: List[ThermalSegment] = []

    if len(df) < MIN_FIXES:
        logger.debug("only %d fixes, skipping thermal scan", len(df))
    else:
        if progress is not None:
            progress(0)
        segments = detect_climb_segments(df, min_climb_rate, progress)
        times = df["time"]
        for start, end in segments:
            c = thermal_center(df, start, end)
            if c is None or c["alt_gain"] <= KEEP_MIN_GAIN_M:
                continue
            index = len(thermals) + 1
            thermals.append(ThermalSegment(
                name=thermal_name(c["max_climb"], index),
                start_idx=int(start),
                end_idx=int(end),
                start_time=times.iloc[start].to_pydatetime(),
                end_time=times.iloc[end].to_pydatetime(),
                strength=classify_strength(c["max_climb"]),
                **c,
            ))
        logger.info("thermals found: %d (min climb %.1f m/s, radius %.0f m unused)",
                    len(thermals), min_climb_rate, thermal_radius)

    if progress is not None:
        progress(100)
    if done is not None:
        done()
    return thermals


def thermals_to_dataframe(thermals: List[ThermalSegment]) -> pd.DataFrame:
    columns = ["name", "start_idx", "end_idx", "start_time", "end_time", "duration_s",
               "center_lat", "center_lon", "avg_climb", "max_climb", "alt_gain",
               "radius_m", "strength", "strength_label"]
    rows = []
    for t in thermals:
        row = asdict(t)
        row["duration_s"] = t.duration_s
        row["strength_label"] = t.strength_label
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def thermal_summary(thermals: List[ThermalSegment]) -> Dict[str, object]:
    """Totals over all thermals plus how many fall in each strength class."""
    distribution = {label: 0 for _, _, label in STRENGTH_CLASSES}
    for t in thermals:
        distribution[t.strength_label] += 1
    if not thermals:
        return {"count": 0, "total_gain_m": 0.0, "avg_climb": 0.0,
                "best_climb": 0.0, "distribution": distribution}
    return {
        "count": len(thermals),
        "total_gain_m": float(sum(t.alt_gain for t in thermals)),
        "avg_climb": float(np.mean([t.avg_climb for t in thermals])),
        "best_climb": float(max(t.max_climb for t in thermals)),
        "distribution": distribution,
    }
