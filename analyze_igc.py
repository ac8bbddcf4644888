#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
analyze_igc.py

Load one IGC track, print flight statistics and the detected thermals.

USAGE (examples):
  python analyze_igc.py "2020-11-08 Lumpy Paterson 108645.igc"
  python analyze_igc.py flight.igc --min-climb 1.5 --thermals-csv outputs/thermals.csv
  python analyze_igc.py flight.igc --tuning config/tuning_params.csv --verbose

Tuning keys (CSV or JSON, see tuning_loader.py): MIN_CLIMB_RATE,
THERMAL_RADIUS_M, UTC_OFFSET_H. Command-line flags win over the tuning file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from flight_track import IgcAnalyzer
from igc_utils import LOCAL_UTC_OFFSET_H
from thermal_segments import ThermalSegment, thermals_to_dataframe
from tuning_loader import DEFAULT_TUNING_PATH, apply_overrides, load_tuning

logger = logging.getLogger("analyze_igc")

DEFAULTS = {
    "MIN_CLIMB_RATE": 2.0,      # m/s
    "THERMAL_RADIUS_M": 200.0,  # m
    "UTC_OFFSET_H": LOCAL_UTC_OFFSET_H,
}

HEADERS = [
    ("name",         20),
    ("start",         9),
    ("duration_s",   11),
    ("avg_climb",    10),
    ("max_climb",    10),
    ("gain_m",        8),
    ("radius_m",      9),
    ("quality",      10),
]


def parse_args(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(description="Flight statistics and thermal detection for one IGC track.")
    ap.add_argument("igc", help="Path to IGC file")
    ap.add_argument("--min-climb", type=float, default=None, help="Minimum climb rate (m/s)")
    ap.add_argument("--thermal-radius", type=float, default=None, help="Thermal radius (m), informational")
    ap.add_argument("--tuning", default=DEFAULT_TUNING_PATH, help="Tuning CSV/JSON. Default: %(default)s")
    ap.add_argument("--thermals-csv", default=None, help="Write detected thermals to this CSV")
    ap.add_argument("--log-file", default=None, help="Also write the log to this file")
    ap.add_argument("--verbose", action="store_true", help="Verbose logging")
    return ap.parse_args(argv)


def setup_logging(verbose: bool, log_file: Optional[str]) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format="%(asctime)s %(levelname)s %(message)s",
                        handlers=handlers, force=True)


def fmt_cell(col: str, t: ThermalSegment) -> str:
    if col == "name":
        return t.name
    if col == "start":
        return t.start_time.strftime("%H:%M:%S")
    if col == "duration_s":
        return f"{t.duration_s:.0f}"
    if col == "avg_climb":
        return f"{t.avg_climb:.2f}"
    if col == "max_climb":
        return f"{t.max_climb:.2f}"
    if col == "gain_m":
        return f"{t.alt_gain:.0f}"
    if col == "radius_m":
        return f"{t.radius_m:.0f}"
    return t.strength_label


def print_thermal_table(thermals: List[ThermalSegment]) -> None:
    print("".join(col.ljust(w) for col, w in HEADERS))
    print("-" * sum(w for _, w in HEADERS))
    for t in thermals:
        print("".join(fmt_cell(col, t).ljust(w) for col, w in HEADERS))


def coerce_settings(settings: dict) -> dict:
    """Make every DEFAULTS key a float; unusable values fall back to the default."""
    for key, default in DEFAULTS.items():
        try:
            settings[key] = float(settings[key])
        except (TypeError, ValueError):
            logger.warning("tuning: %s=%r is not a number, using %s", key, settings[key], default)
            settings[key] = float(default)
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    settings = dict(DEFAULTS)
    apply_overrides(settings, load_tuning(args.tuning), allowed=set(DEFAULTS))
    if args.min_climb is not None:
        settings["MIN_CLIMB_RATE"] = args.min_climb
    if args.thermal_radius is not None:
        settings["THERMAL_RADIUS_M"] = args.thermal_radius
    coerce_settings(settings)
    print(f"[analyze_igc] min_climb={settings['MIN_CLIMB_RATE']} "
          f"thermal_radius={settings['THERMAL_RADIUS_M']} utc_offset_h={settings['UTC_OFFSET_H']}")

    analyzer = IgcAnalyzer(utc_offset_h=settings["UTC_OFFSET_H"])
    if not analyzer.load_file(args.igc):
        print(f"[analyze_igc] Could not load a track from {args.igc}")
        return 1

    print(f"[analyze_igc] Flight information ({args.igc})")
    for key, value in analyzer.flight_info().items():
        print(f"  {key:<24}{value}")

    def on_progress(pct: int) -> None:
        logger.debug("thermal scan %d%%", pct)

    thermals = analyzer.analyze(settings["MIN_CLIMB_RATE"],
                                settings["THERMAL_RADIUS_M"],
                                progress=on_progress)

    summary = analyzer.thermal_summary()
    print(f"[analyze_igc] Thermals found: {summary['count']}")
    if thermals:
        print(f"  total gain in thermals  {summary['total_gain_m']:.0f} m")
        print(f"  average climb           {summary['avg_climb']:.2f} m/s")
        print(f"  best climb              {summary['best_climb']:.2f} m/s")
        for label, count in summary["distribution"].items():
            print(f"  {label:<24}{count}")
        print_thermal_table(thermals)

    if args.thermals_csv:
        out = Path(args.thermals_csv)
        out.parent.mkdir(parents=True, exist_ok=True)
        thermals_to_dataframe(thermals).to_csv(out, index=False)
        print(f"[analyze_igc] Wrote thermals CSV: {out} ({len(thermals)} rows)")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
