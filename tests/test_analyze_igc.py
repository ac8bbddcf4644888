"""
Command-line smoke tests for analyze_igc.main.
"""

import pandas as pd
import pytest

import analyze_igc

CLIMB = [1000] * 50 + [1000 + 2 * k for k in range(1, 101)] + [1200] * 50


@pytest.fixture
def igc_file(tmp_path, make_track):
    p = tmp_path / "flight.igc"
    p.write_text("\n".join(make_track(CLIMB)) + "\n", encoding="utf-8")
    return p


@pytest.fixture
def no_tuning(tmp_path):
    return str(tmp_path / "no_tuning.csv")


def test_main_prints_stats_and_thermals(igc_file, no_tuning, capsys):
    rc = analyze_igc.main([str(igc_file), "--min-climb", "1.0", "--tuning", no_tuning])
    out = capsys.readouterr().out
    assert rc == 0
    assert "min_climb=1.0" in out
    assert "Jane Doe" in out
    assert "Thermals found: 1" in out
    assert "Thermal_2.0ms_1" in out
    assert "Fair" in out


def test_main_writes_thermals_csv(igc_file, no_tuning, tmp_path):
    out_csv = tmp_path / "out" / "thermals.csv"
    rc = analyze_igc.main([str(igc_file), "--min-climb", "1.0", "--tuning", no_tuning,
                           "--thermals-csv", str(out_csv)])
    assert rc == 0
    df = pd.read_csv(out_csv)
    assert len(df) == 1
    assert df["name"].iloc[0] == "Thermal_2.0ms_1"
    assert df["alt_gain"].iloc[0] == 200


def test_tuning_file_sets_defaults_and_flags_win(igc_file, tmp_path, capsys):
    tuning = tmp_path / "tuning.csv"
    tuning.write_text("MIN_CLIMB_RATE,3.0\nTHERMAL_RADIUS_M,150\nUNRELATED,1\n", encoding="utf-8")

    analyze_igc.main([str(igc_file), "--tuning", str(tuning)])
    out = capsys.readouterr().out
    assert "min_climb=3.0 thermal_radius=150.0" in out
    assert "Thermals found: 0" in out

    analyze_igc.main([str(igc_file), "--tuning", str(tuning), "--min-climb", "1.0"])
    out = capsys.readouterr().out
    assert "min_climb=1.0" in out
    assert "Thermals found: 1" in out


def test_main_unreadable_file(tmp_path, no_tuning, capsys):
    rc = analyze_igc.main([str(tmp_path / "missing.igc"), "--tuning", no_tuning])
    assert rc == 1
    assert "Could not load" in capsys.readouterr().out


def test_non_numeric_tuning_values_fall_back_to_defaults(igc_file, tmp_path, capsys):
    tuning = tmp_path / "tuning.csv"
    tuning.write_text("UTC_OFFSET_H,three\nMIN_CLIMB_RATE,fast\nTHERMAL_RADIUS_M,wide\n",
                      encoding="utf-8")
    rc = analyze_igc.main([str(igc_file), "--tuning", str(tuning)])
    out = capsys.readouterr().out
    assert rc == 0
    assert "min_climb=2.0 thermal_radius=200.0 utc_offset_h=3.0" in out
    assert f"{'start_time':<24}13:00:00" in out


def test_coerce_settings():
    settings = analyze_igc.coerce_settings({"MIN_CLIMB_RATE": "1.5", "THERMAL_RADIUS_M": None,
                                            "UTC_OFFSET_H": 2})
    assert settings == {"MIN_CLIMB_RATE": 1.5, "THERMAL_RADIUS_M": 200.0, "UTC_OFFSET_H": 2.0}
