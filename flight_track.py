#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
flight_track.py
Load/analyze entry point used by front ends.

    analyzer = IgcAnalyzer()
    if analyzer.load_file("2020-11-08 Lumpy Paterson 108645.igc"):
        thermals = analyzer.analyze(min_climb_rate=2.0, progress=print)
        print(analyzer.flight_info())

One IgcAnalyzer holds at most one FlightTrack. Loading replaces the track,
its statistics and any thermals from a previous analyze(); a failed load
leaves the analyzer empty. Not thread-safe: callers serialise access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from igc_utils import (
    LOCAL_UTC_OFFSET_H, IgcHeader, compute_derived, empty_fix_frame,
    parse_igc_lines, read_igc_lines,
)
from flight_stats import FlightStats, compute_flight_stats
from olc_distance import best_distance_km, maximum_distance_km
from thermal_segments import ThermalSegment, ProgressFn, detect_thermals, thermal_summary

logger = logging.getLogger(__name__)


@dataclass
class FlightTrack:
    header: IgcHeader
    fixes: pd.DataFrame
    stats: FlightStats = field(default_factory=FlightStats)

    def __len__(self) -> int:
        return len(self.fixes)


def build_track(header: IgcHeader, decoded: pd.DataFrame) -> FlightTrack:
    """Kinematics, statistics and distances for a freshly decoded fix frame."""
    fixes = compute_derived(decoded)
    stats = compute_flight_stats(fixes)
    stats = replace(
        stats,
        max_distance_km=maximum_distance_km(fixes),
        olc_distance_km=best_distance_km(fixes, stats.straight_line_km),
    )
    return FlightTrack(header=header, fixes=fixes, stats=stats)


class IgcAnalyzer:
    def __init__(self, utc_offset_h: float = LOCAL_UTC_OFFSET_H):
        self.utc_offset_h = utc_offset_h
        self._track: Optional[FlightTrack] = None
        self._thermals: List[ThermalSegment] = []

    # ---- loading ----
    def clear(self) -> None:
        self._track = None
        self._thermals = []

    def load(self, lines: Iterable[str]) -> bool:
        """Decode raw IGC lines. False (and an empty analyzer) if no usable fixes."""
        self.clear()
        header, decoded = parse_igc_lines(lines, utc_offset_h=self.utc_offset_h)
        if header.flight_date is None:
            logger.warning("load failed: no HFDTE date header")
            return False
        if decoded.empty:
            logger.warning("load failed: no valid B-records")
            return False
        self._track = build_track(header, decoded)
        logger.info("loaded %d fixes (%s, %s)", len(self._track),
                    header.flight_date.isoformat(), header.pilot or "unknown pilot")
        return True

    def load_file(self, path: str | Path) -> bool:
        self.clear()
        try:
            lines = read_igc_lines(path)
        except OSError as e:
            logger.warning("load failed: cannot read %s: %s", path, e)
            return False
        return self.load(lines)

    # ---- analysis ----
    def analyze(self, min_climb_rate: float = 1.0, thermal_radius: float = 200.0,
                progress: Optional[ProgressFn] = None,
                done: Optional[Callable[[], None]] = None) -> List[ThermalSegment]:
        """Detect thermals on the loaded track, replacing any previous result."""
        if self._track is None:
            logger.warning("analyze called with no track loaded")
            self._thermals = []
            return []
        self._thermals = detect_thermals(self._track.fixes, min_climb_rate, thermal_radius,
                                         progress=progress, done=done)
        return list(self._thermals)

    # ---- accessors ----
    def has_track(self) -> bool:
        return self._track is not None

    def has_thermals(self) -> bool:
        return bool(self._thermals)

    @property
    def track(self) -> Optional[FlightTrack]:
        """The loaded track with its own copy of the fix frame."""
        if self._track is None:
            return None
        return replace(self._track, fixes=self._track.fixes.copy())

    @property
    def fixes(self) -> pd.DataFrame:
        if self._track is None:
            return compute_derived(empty_fix_frame())
        return self._track.fixes.copy()

    @property
    def thermals(self) -> List[ThermalSegment]:
        return list(self._thermals)

    @property
    def stats(self) -> FlightStats:
        return self._track.stats if self._track is not None else FlightStats()

    @property
    def header(self) -> IgcHeader:
        return self._track.header if self._track is not None else IgcHeader()

    def thermal_summary(self) -> Dict[str, object]:
        return thermal_summary(self._thermals)

    def flight_info(self) -> Dict[str, object]:
        h, s = self.header, self.stats
        info: Dict[str, object] = {
            "pilot": h.pilot or "Unknown",
            "glider_type": h.glider_type or "Unknown",
            "glider_id": h.glider_id or "Unknown",
            "flight_date": h.flight_date.isoformat() if h.flight_date else None,
            "n_fixes": s.n_fixes,
        }
        if s.n_fixes == 0:
            return info
        info.update({
            "start_time": s.start_time.strftime("%H:%M:%S"),
            "end_time": s.end_time.strftime("%H:%M:%S"),
            "duration_s": s.duration_s,
            "min_alt_m": s.min_alt,
            "max_alt_m": s.max_alt,
            "alt_range_m": s.alt_range,
            "takeoff_alt_m": s.takeoff_alt,
            "max_vario_mps": round(s.max_vario, 1),
            "min_vario_mps": round(s.min_vario, 1),
            "max_ground_speed_kmh": round(s.max_ground_speed * 3.6, 1),
            "avg_ground_speed_kmh": round(s.avg_ground_speed * 3.6, 1),
            "total_distance_km": round(s.total_distance_km, 1),
            "straight_line_km": round(s.straight_line_km, 1),
            "max_distance_km": round(s.max_distance_km, 1),
            "olc_distance_km": round(s.olc_distance_km, 1),
            "olc_points": round(s.olc_points, 1),
            "xc_speed_kmh": round(s.xc_speed_kmh, 1),
            "max_distance_speed_kmh": round(s.max_distance_speed_kmh, 1),
            "olc_speed_kmh": round(s.olc_speed_kmh, 1),
        })
        return info
