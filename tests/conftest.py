"""
Shared builders for synthetic IGC tracks.

  - b_record: format one B-record line
  - make_track: header + B-records from a list of GPS altitudes
  - make_frame: decoded fix frame (time, lat, lon, p_alt, gps_alt) without going through text
  - make_annotated: fix frame with a given vario column, for scans that skip kinematics
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd
import pytest

T0 = pd.Timestamp("2023-07-15 13:00:00")


def _coord_field(value: float, n_deg: int, pos: str, neg: str) -> str:
    hemi = pos if value >= 0 else neg
    a = abs(value)
    deg = int(a)
    thousandths = int(round((a - deg) * 60000))
    if thousandths >= 60000:
        deg, thousandths = deg + 1, 0
    return f"{deg:0{n_deg}d}{thousandths:05d}{hemi}"


def format_b_record(seconds_of_day: int, lat: float, lon: float, gps_alt: int,
                    p_alt: Optional[int] = None) -> str:
    hh, rem = divmod(int(seconds_of_day), 3600)
    mm, ss = divmod(rem, 60)
    p_alt = gps_alt if p_alt is None else p_alt
    return (f"B{hh:02d}{mm:02d}{ss:02d}"
            f"{_coord_field(lat, 2, 'N', 'S')}{_coord_field(lon, 3, 'E', 'W')}"
            f"A{int(p_alt):05d}{int(gps_alt):05d}")


@pytest.fixture
def b_record():
    return format_b_record


@pytest.fixture
def make_track():
    def _make(alts: Sequence[int], start_s: int = 10 * 3600, step_s: int = 1,
              lat0: float = 45.0, lon0: float = 6.0, dlat: float = 0.0, dlon: float = 0.0,
              date: str = "150723", pilot: str = "Jane Doe"):
        lines = [
            "AXXXABC FLIGHT:1",
            f"HFDTEDATE:{date},01",
            f"HFPLTPILOTINCHARGE:{pilot}",
            "HFGTYGLIDERTYPE:Ozone Rush 6",
            "HFGIDGLIDERID:TR-42",
        ]
        for i, alt in enumerate(alts):
            lines.append(format_b_record(start_s + i * step_s, lat0 + i * dlat, lon0 + i * dlon, alt))
        return lines
    return _make


@pytest.fixture
def make_frame():
    def _make(alts: Sequence[float], seconds: Optional[Sequence[float]] = None,
              lats: Optional[Sequence[float]] = None, lons: Optional[Sequence[float]] = None):
        n = len(alts)
        seconds = np.arange(n, dtype=float) if seconds is None else np.asarray(seconds, dtype=float)
        lats = np.full(n, 45.0) if lats is None else np.asarray(lats, dtype=float)
        lons = np.full(n, 6.0) if lons is None else np.asarray(lons, dtype=float)
        return pd.DataFrame({
            "time": T0 + pd.to_timedelta(seconds, unit="s"),
            "lat": lats,
            "lon": lons,
            "p_alt": np.asarray(alts, dtype=int),
            "gps_alt": np.asarray(alts, dtype=int),
        })
    return _make


@pytest.fixture
def make_annotated(make_frame):
    def _make(vario: Sequence[float], alts: Optional[Sequence[float]] = None,
              ground_speed: Optional[Sequence[float]] = None, **kw):
        vario = np.asarray(vario, dtype=float)
        if alts is None:
            alts = 1000 + np.round(np.cumsum(np.r_[0.0, vario[1:]]))
        df = make_frame(alts, **kw)
        df["vario"] = vario
        df["ground_speed"] = np.zeros(len(vario)) if ground_speed is None else np.asarray(ground_speed, float)
        return df
    return _make
