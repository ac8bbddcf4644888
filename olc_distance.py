#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
olc_distance.py
---------------
Cross-country distance figures for one track.

  - maximum_distance_km(df): furthest fix from the first fix
  - best_distance_km(df):    OLC-style start -> i -> j -> k -> end chain

Best distance is a bounded heuristic, not an optimal-route solver. Turnpoint
candidates are taken on a stride of max(1, N // 500) fixes and consecutive
turnpoints must be at least 100 fixes apart:

    i = 0, s, 2s, ...
    j = i + 100, i + 100 + s, ...
    k = j + 100, j + 100 + s, ...

so j always sits on the grid 100 + m*s and k on 200 + m*s. For a fixed j the
prefix (start -> i -> j) and suffix (j -> k -> end) are independent, which
lets the whole candidate set be scored with two distance matrices instead of
a triple loop. The result is the same maximum the nested scan would find.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

from igc_utils import haversine_km
from flight_stats import straight_line_km

logger = logging.getLogger(__name__)

OLC_MIN_FIXES = 100
OLC_MIN_SEPARATION = 100
OLC_TARGET_SAMPLES = 500


def maximum_distance_km(df: pd.DataFrame) -> float:
    if df.empty:
        return 0.0
    lat = df["lat"].to_numpy(float)
    lon = df["lon"].to_numpy(float)
    return float(np.max(haversine_km(lat[0], lon[0], lat, lon)))


def olc_stride(n_fixes: int) -> int:
    return max(1, n_fixes // OLC_TARGET_SAMPLES)


def best_distance_km(df: pd.DataFrame, straight_km: Optional[float] = None) -> float:
    """
    Longest start -> i -> j -> k -> end chain over the strided turnpoint grid.
    Never less than the straight-line distance; tracks under 100 fixes return it as is.
    """
    if straight_km is None:
        straight_km = straight_line_km(df)
    n = len(df)
    if n < OLC_MIN_FIXES:
        return straight_km

    step = olc_stride(n)
    sep = OLC_MIN_SEPARATION
    lat = df["lat"].to_numpy(float)
    lon = df["lon"].to_numpy(float)

    I = np.arange(0, n, step)
    J = np.arange(sep, n, step)
    K = np.arange(2 * sep, n, step)
    if J.size == 0 or K.size == 0:
        return straight_km

    d_start = haversine_km(lat[0], lon[0], lat[I], lon[I])
    d_end = haversine_km(lat[K], lon[K], lat[-1], lon[-1])
    d_ij = haversine_km(lat[I][:, None], lon[I][:, None], lat[J][None, :], lon[J][None, :])
    d_jk = haversine_km(lat[J][:, None], lon[J][:, None], lat[K][None, :], lon[K][None, :])

    prefix = np.where(I[:, None] + sep <= J[None, :], d_start[:, None] + d_ij, -np.inf).max(axis=0)
    suffix = np.where(J[:, None] + sep <= K[None, :], d_jk + d_end[None, :], -np.inf).max(axis=1)

    chains = prefix + suffix
    best = float(chains.max())
    logger.debug("best distance: %d fixes, stride %d, %d x %d x %d candidates, best %.2f km",
                 n, step, I.size, J.size, K.size, best)
    if not np.isfinite(best):
        return straight_km
    return max(straight_km, best)
