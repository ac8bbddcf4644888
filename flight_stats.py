#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
flight_stats.py
Whole-flight summary figures from the annotated fix frame (see igc_utils.compute_derived).

Everything here is a pure reduction: call compute_flight_stats() again whenever the
fix frame changes, nothing is updated incrementally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pandas as pd

from igc_utils import haversine_km

logger = logging.getLogger(__name__)

# -------------------- parameters --------------------
AVG_SPEED_MAX_MPS = 25.0        # samples >= this are ignored for max/mean ground speed
LEG_MAX_GAP_S = 30.0
LEG_MAX_KM = 1.0                # larger single-fix jumps are GPS glitches
TAKEOFF_SCAN_FIXES = 200
TAKEOFF_WINDOW = 20
TAKEOFF_MIN_CLIMBING = 10
TAKEOFF_CLIMB_MPS = 0.3
OLC_POINTS_FACTOR = 1.5


@dataclass
class FlightStats:
    n_fixes: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_s: int = 0
    max_vario: float = 0.0
    min_vario: float = 0.0
    max_ground_speed: float = 0.0       # m/s
    avg_ground_speed: float = 0.0       # m/s
    straight_line_km: float = 0.0
    total_distance_km: float = 0.0
    max_distance_km: float = 0.0
    olc_distance_km: float = 0.0
    takeoff_alt: int = 0
    min_alt: int = 0
    max_alt: int = 0

    @property
    def alt_range(self) -> int:
        return self.max_alt - self.min_alt

    @property
    def olc_points(self) -> float:
        return self.olc_distance_km * OLC_POINTS_FACTOR

    def _kmh(self, distance_km: float) -> float:
        if self.duration_s <= 0:
            return 0.0
        return distance_km / (self.duration_s / 3600.0)

    @property
    def xc_speed_kmh(self) -> float:
        return self._kmh(self.straight_line_km)

    @property
    def max_distance_speed_kmh(self) -> float:
        return self._kmh(self.max_distance_km)

    @property
    def olc_speed_kmh(self) -> float:
        return self._kmh(self.olc_distance_km)


def takeoff_altitude(df: pd.DataFrame) -> int:
    """
    GPS altitude where sustained climbing starts: earliest i among the first 200
    fixes with >= 10 of the 20 fixes from i above 0.3 m/s. Falls back to fix 0.
    """
    if df.empty:
        return 0
    climbing = (df["vario"].to_numpy(float) > TAKEOFF_CLIMB_MPS)
    alts = df["gps_alt"].to_numpy()
    for i in range(min(TAKEOFF_SCAN_FIXES, len(df))):
        if int(climbing[i:i + TAKEOFF_WINDOW].sum()) >= TAKEOFF_MIN_CLIMBING:
            return int(alts[i])
    return int(alts[0])


def total_distance_km(df: pd.DataFrame) -> float:
    """Sum of legs with 0 < dt < 30 s and length < 1 km."""
    if len(df) < 2:
        return 0.0
    lat = df["lat"].to_numpy(float)
    lon = df["lon"].to_numpy(float)
    dts = df["time"].diff().dt.total_seconds().to_numpy(float)[1:]
    legs = haversine_km(lat[:-1], lon[:-1], lat[1:], lon[1:])
    keep = (dts > 0) & (dts < LEG_MAX_GAP_S) & (legs < LEG_MAX_KM)
    return float(legs[keep].sum())


def straight_line_km(df: pd.DataFrame) -> float:
    if len(df) < 2:
        return 0.0
    first, last = df.iloc[0], df.iloc[-1]
    return float(haversine_km(first["lat"], first["lon"], last["lat"], last["lon"]))


def compute_flight_stats(df: pd.DataFrame) -> FlightStats:
    """Reduce an annotated fix frame (needs vario and ground_speed) to FlightStats."""
    if df.empty:
        return FlightStats()

    vario = df["vario"].to_numpy(float)
    gs = df["ground_speed"].to_numpy(float)
    sane = gs[(gs > 0) & (gs < AVG_SPEED_MAX_MPS)]

    start = df["time"].iloc[0]
    end = df["time"].iloc[-1]

    stats = FlightStats(
        n_fixes=int(len(df)),
        start_time=start.to_pydatetime(),
        end_time=end.to_pydatetime(),
        duration_s=int((end - start).total_seconds()) if len(df) >= 2 else 0,
        max_vario=float(vario.max()),
        min_vario=float(vario.min()),
        max_ground_speed=float(sane.max()) if sane.size else 0.0,
        avg_ground_speed=float(sane.mean()) if sane.size else 0.0,
        straight_line_km=straight_line_km(df),
        total_distance_km=total_distance_km(df),
        takeoff_alt=takeoff_altitude(df),
        min_alt=int(df["gps_alt"].min()),
        max_alt=int(df["gps_alt"].max()),
    )
    logger.debug(
        "flight stats: max speed %.1f km/h, avg speed %.1f km/h, total dist %.1f km",
        stats.max_ground_speed * 3.6, stats.avg_ground_speed * 3.6, stats.total_distance_km,
    )
    return stats
