#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
igc_utils.py — self-contained helpers used across the analysis engine.

Provides:
  - parse_b_record(line, day) -> Fix (valid or not)
  - parse_header(line, header) -> True if the line was a recognised header
  - parse_igc_lines(lines) -> (IgcHeader, DataFrame[time, lat, lon, p_alt, gps_alt])
  - read_igc_lines(path) -> list of raw lines
  - haversine_km / initial_bearing_deg (scalars or numpy arrays)
  - compute_derived(df) -> adds dt(s), vario_raw, vario(m/s), ground_speed(m/s), course(deg)

Timestamps are stored as naive local time: the B-record UTC time shifted by
LOCAL_UTC_OFFSET_H. That offset is a deployment constant (+3 h) and every
parser takes it as a keyword so another deployment can substitute its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# Constants
# ------------------------------------------------------------
EARTH_R_KM = 6371.0
LOCAL_UTC_OFFSET_H = 3          # deployment constant, B-record UTC -> local

B_RECORD_MIN_LEN = 35

# Vertical speed
VARIO_MAX_GAP_S = 30.0
VARIO_RAW_MIN, VARIO_RAW_MAX = -35.0, 25.0
VARIO_SMOOTH_WINDOW = 3
VARIO_MIN, VARIO_MAX = -8.0, 7.5

# Ground speed / course
SPEED_MIN_GAP_S = 0.5
SPEED_MAX_GAP_S = 30.0
SPEED_MAX_MPS = 28.0

FIX_COLUMNS = ["time", "lat", "lon", "p_alt", "gps_alt"]

# (short keyword, long keyword, IgcHeader attribute)
HEADER_FIELDS = [
    ("HFPLT", "PILOTINCHARGE:", "pilot"),
    ("HFGTY", "GLIDERTYPE:", "glider_type"),
    ("HFGID", "GLIDERID:", "glider_id"),
]


# ------------------------------------------------------------
# Data model
# ------------------------------------------------------------
@dataclass
class Fix:
    """
    One decoded B-record. vario / ground_speed / course are always 0 here:
    compute_derived() works on the fix frame, and the computed values live in
    its vario, ground_speed and course columns.
    """
    time: Optional[datetime] = None
    lat: float = 0.0
    lon: float = 0.0
    p_alt: int = 0
    gps_alt: int = 0
    vario: float = 0.0
    ground_speed: float = 0.0
    course: float = 0.0
    valid: bool = False


@dataclass
class IgcHeader:
    flight_date: Optional[date] = None
    pilot: str = ""
    glider_type: str = ""
    glider_id: str = ""


# ------------------------------------------------------------
# Field decoding
# ------------------------------------------------------------
def _to_int(s: str) -> int:
    """ASCII digits with an optional leading '-'; anything else is 0."""
    s = s.strip()
    digits = s[1:] if s.startswith("-") else s
    if not (digits.isascii() and digits.isdigit()):
        return 0
    return int(s)


def parse_coordinate(coord: str, is_latitude: bool) -> float:
    """
    Decode DDMMmmmH (latitude, 8 chars) or DDDMMmmmH (longitude, 9 chars).
    Minutes are MMmmm / 1000. Southern/western hemispheres are negative.
    Short fields decode to 0.0.
    """
    n_deg = 2 if is_latitude else 3
    if len(coord) < n_deg + 6:
        return 0.0
    degrees = _to_int(coord[:n_deg])
    minutes = _to_int(coord[n_deg:n_deg + 5]) / 1000.0
    hemisphere = coord[n_deg + 5].upper()

    value = degrees + minutes / 60.0
    if hemisphere in ("S", "W"):
        value = -value
    return value


def parse_igc_time(time_str: str, day: date, utc_offset_h: float = LOCAL_UTC_OFFSET_H) -> datetime:
    """HHMMSS on `day` (UTC) shifted to local time. Bad components become 0."""
    hh = _to_int(time_str[0:2])
    mm = _to_int(time_str[2:4])
    ss = _to_int(time_str[4:6])
    if not 0 <= hh < 24:
        hh = 0
    if not 0 <= mm < 60:
        mm = 0
    if not 0 <= ss < 60:
        ss = 0
    utc = datetime(day.year, day.month, day.day, hh, mm, ss)
    return utc + timedelta(hours=utc_offset_h)


def parse_date_field(text: str) -> Optional[date]:
    """DDMMYY, optionally followed by ',NN' (flight number). None if unusable."""
    s = text.split(",")[0].strip()
    if len(s) < 6:
        return None
    day, month, year = _to_int(s[0:2]), _to_int(s[2:4]), 2000 + _to_int(s[4:6])
    try:
        return date(year, month, day)
    except ValueError:
        return None


# ------------------------------------------------------------
# Record parsers
# ------------------------------------------------------------
def parse_b_record(line: str, day: Optional[date] = None,
                   utc_offset_h: float = LOCAL_UTC_OFFSET_H) -> Fix:
    """
    B HHMMSS DDMMmmmN DDDMMmmmE A PPPPP GGGGG ...
    Returns an invalid Fix for short/foreign lines or impossible coordinates.
    """
    fix = Fix()
    if len(line) < B_RECORD_MIN_LEN or not line.startswith("B"):
        return fix

    lat = parse_coordinate(line[7:15], True)
    lon = parse_coordinate(line[15:24], False)
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return fix

    fix.lat = lat
    fix.lon = lon
    fix.p_alt = _to_int(line[25:30])
    fix.gps_alt = _to_int(line[30:35])
    if day is not None:
        fix.time = parse_igc_time(line[1:7], day, utc_offset_h)
    fix.valid = True
    return fix


def _header_value(line: str, short_key: str, long_key: str) -> str:
    upper = line.upper()
    if long_key in upper:
        return line[upper.index(long_key) + len(long_key):].strip()
    return line[len(short_key):].strip()


def parse_header(line: str, header: IgcHeader) -> bool:
    """
    Fill `header` from an H-record. Accepts both spellings per field
    (HFDTE150723 / HFDTEDATE:150723,01, HFPLT... / HFPLTPILOTINCHARGE:...).
    First non-empty occurrence wins. Returns True if the line was a known header.
    """
    upper = line.upper()
    if upper.startswith("HFDTE"):
        if header.flight_date is None:
            header.flight_date = parse_date_field(_header_value(line, "HFDTE", "DATE:"))
        return True
    for short_key, long_key, attr in HEADER_FIELDS:
        if upper.startswith(short_key):
            if not getattr(header, attr):
                setattr(header, attr, _header_value(line, short_key, long_key))
            return True
    return False


def parse_igc_lines(lines: Iterable[str],
                    utc_offset_h: float = LOCAL_UTC_OFFSET_H) -> Tuple[IgcHeader, pd.DataFrame]:
    """
    Decode a whole track. B-records before the first usable HFDTE are skipped.
    Returns the header and a DataFrame with columns FIX_COLUMNS (empty if no
    valid fixes).
    """
    header = IgcHeader()
    times, lats, lons, p_alts, g_alts = [], [], [], [], []
    dropped = 0

    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if line[0] in ("H", "h"):
            parse_header(line, header)
            continue
        if line.startswith("B") and header.flight_date is not None:
            fix = parse_b_record(line, header.flight_date, utc_offset_h)
            if not fix.valid:
                dropped += 1
                continue
            times.append(fix.time); lats.append(fix.lat); lons.append(fix.lon)
            p_alts.append(fix.p_alt); g_alts.append(fix.gps_alt)

    if dropped:
        logger.debug("dropped %d malformed B-records", dropped)

    if not times:
        return header, empty_fix_frame()

    df = pd.DataFrame({
        "time": pd.to_datetime(times),
        "lat": np.asarray(lats, dtype=float),
        "lon": np.asarray(lons, dtype=float),
        "p_alt": np.asarray(p_alts, dtype=int),
        "gps_alt": np.asarray(g_alts, dtype=int),
    })
    return header, df[FIX_COLUMNS].reset_index(drop=True)


def empty_fix_frame() -> pd.DataFrame:
    return pd.DataFrame({
        "time": pd.Series([], dtype="datetime64[ns]"),
        "lat": pd.Series([], dtype=float),
        "lon": pd.Series([], dtype=float),
        "p_alt": pd.Series([], dtype=int),
        "gps_alt": pd.Series([], dtype=int),
    })


def read_igc_lines(path: str | Path) -> List[str]:
    """Read a track file. Raises OSError if it cannot be opened."""
    path = Path(path)
    with path.open("r", encoding="utf-8", errors="ignore") as f:
        return f.read().splitlines()


# ------------------------------------------------------------
# Distance primitives
# ------------------------------------------------------------
def haversine_km(lat1, lon1, lat2, lon2):
    """Great-circle distance in km. Works on scalars and broadcasting arrays."""
    φ1, λ1, φ2, λ2 = map(np.radians, (lat1, lon1, lat2, lon2))
    dφ, dλ = φ2 - φ1, λ2 - λ1
    a = np.sin(dφ / 2) ** 2 + np.cos(φ1) * np.cos(φ2) * np.sin(dλ / 2) ** 2
    return 2 * EARTH_R_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def initial_bearing_deg(lat1, lon1, lat2, lon2):
    """Forward azimuth (deg in [0,360))."""
    φ1, φ2 = np.radians(lat1), np.radians(lat2)
    dλ = np.radians(np.asarray(lon2) - np.asarray(lon1))
    y = np.sin(dλ) * np.cos(φ2)
    x = np.cos(φ1) * np.sin(φ2) - np.sin(φ1) * np.cos(φ2) * np.cos(dλ)
    θ = np.degrees(np.arctan2(y, x))
    return (θ + 360.0) % 360.0


# ------------------------------------------------------------
# Derived kinematics
# ------------------------------------------------------------
def compute_derived(df: pd.DataFrame) -> pd.DataFrame:
    """
    Returns a copy of `df` with:
      - dt (s): time delta to the previous fix (NaN on the first)
      - vario_raw (m/s): gps_alt delta / dt for 0 < dt < 30 s, clamped [-35, 25]; else 0
      - vario (m/s): centred 3-fix mean of vario_raw, clamped [-8, 7.5]
      - ground_speed (m/s): leg distance / dt for 0.5 < dt < 30 s, clamped [0, 28]; else 0
      - course (deg): forward azimuth of the leg for the same pairs; else 0
    """
    out = df.copy()
    n = len(out)
    if n == 0:
        for col in ("dt", "vario_raw", "vario", "ground_speed", "course"):
            out[col] = pd.Series([], dtype=float)
        return out

    dt = out["time"].diff().dt.total_seconds()
    out["dt"] = dt

    dh = out["gps_alt"].astype(float).diff()
    vario_ok = (dt > 0) & (dt < VARIO_MAX_GAP_S)
    raw = (dh / dt.where(vario_ok)).clip(VARIO_RAW_MIN, VARIO_RAW_MAX)
    out["vario_raw"] = raw.where(vario_ok, 0.0).fillna(0.0)

    smoothed = out["vario_raw"].rolling(window=VARIO_SMOOTH_WINDOW, center=True, min_periods=1).mean()
    out["vario"] = smoothed.clip(VARIO_MIN, VARIO_MAX)

    lat = out["lat"].to_numpy(float)
    lon = out["lon"].to_numpy(float)
    speed = np.zeros(n, dtype=float)
    course = np.zeros(n, dtype=float)
    if n >= 2:
        dts = dt.to_numpy(float)[1:]
        ok = (dts > SPEED_MIN_GAP_S) & (dts < SPEED_MAX_GAP_S)
        leg_m = haversine_km(lat[:-1], lon[:-1], lat[1:], lon[1:]) * 1000.0
        with np.errstate(divide="ignore", invalid="ignore"):
            leg_speed = np.clip(leg_m / dts, 0.0, SPEED_MAX_MPS)
        speed[1:] = np.where(ok, leg_speed, 0.0)
        leg_course = initial_bearing_deg(lat[:-1], lon[:-1], lat[1:], lon[1:])
        course[1:] = np.where(ok, leg_course, 0.0)
    out["ground_speed"] = speed
    out["course"] = course

    return out
