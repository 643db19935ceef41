from __future__ import annotations

from datetime import date, timedelta

import pandas as pd
import pytest

from core.services.metric_store import MetricStore
from scripts import run_daily


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    from core.config import get_settings

    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.delenv("THRESHOLDS_FILE", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _write_csv(path, rows):
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(rows).to_csv(path, index=False)


def _seed(data_dir, day: date):
    _write_csv(
        data_dir / "ref" / "athlete_roster.csv",
        [
            {
                "athlete_id": "ATH_001",
                "display_name": "Player A",
                "position": "G",
                "role_tier": "Starter",
                "gps_id": "GPS_001",
                "force_plate_id": "FP_001",
                "wearable_id": "WR_001",
            },
            {
                "athlete_id": "ATH_002",
                "display_name": "Player B",
                "position": "F",
                "role_tier": "Bench",
                "gps_id": "GPS_002",
                "force_plate_id": "FP_002",
                "wearable_id": "WR_002",
            },
        ],
    )
    _write_csv(
        data_dir / "raw" / "wellness" / "wellness.csv",
        [
            {"athlete_id": "ATH_001", "date": day.isoformat(), "sleep_hours": 8.0, "soreness_0_10": 2, "fatigue_0_10": 2, "mood_0_10": 8},
            {"athlete_id": "ATH_002", "date": day.isoformat(), "sleep_hours": 8.0, "soreness_0_10": 1, "fatigue_0_10": 1, "mood_0_10": 9},
        ],
    )
    loads = []
    for i in range(21):
        d = day - timedelta(days=20 - i)
        loads.append({"athlete_id": "GPS_001", "date": d.isoformat(), "player_load": 100.0 if i < 14 else 250.0})
        loads.append({"athlete_id": "GPS_002", "date": d.isoformat(), "distance_m": 8000, "accel_hi_count": 20, "decel_hi_count": 20, "hid_m": 400})
    _write_csv(data_dir / "raw" / "gps" / "gps.csv", loads)


def test_remap_device_ids():
    roster = pd.DataFrame([{"athlete_id": "ATH_001", "gps_id": "GPS_001"}])
    frame = pd.DataFrame([{"athlete_id": "GPS_001"}, {"athlete_id": "GPS_999"}])
    out = run_daily.remap_device_ids(frame, roster, run_daily.Domain.LOAD)
    assert list(out["athlete_id"]) == ["ATH_001", "GPS_999"]
    assert list(frame["athlete_id"]) == ["GPS_001", "GPS_999"]


def test_remap_device_ids_leaves_blank_ids_for_validation():
    roster = pd.DataFrame([{"athlete_id": "ATH_001", "gps_id": "GPS_001"}])
    frame = pd.DataFrame(
        [
            {"athlete_id": "GPS_001", "date": "2026-02-21", "player_load": 300},
            {"athlete_id": None, "date": "2026-02-21", "player_load": 250},
        ]
    )
    out = run_daily.remap_device_ids(frame, roster, run_daily.Domain.LOAD)
    assert out["athlete_id"].iloc[0] == "ATH_001"
    assert pd.isna(out["athlete_id"].iloc[1])

    store = MetricStore()
    assert store.add_frame(run_daily.Domain.LOAD, out) == 1
    assert store.athlete_ids() == ["ATH_001"]
    assert len(store.skipped) == 1


def test_main_writes_watchlist(tmp_path, capsys):
    day = date(2026, 2, 21)
    _seed(tmp_path, day)

    assert run_daily.main(["--data-dir", str(tmp_path)]) == 0

    out_lines = capsys.readouterr().out.splitlines()
    assert "date=2026-02-21 green=1 yellow=0 red=1" in out_lines

    board = pd.read_csv(tmp_path / "gold_export" / "watchlist_daily.csv")
    assert list(board["athlete_id"]) == ["ATH_001", "ATH_002"]
    assert list(board["status"]) == ["RED", "GREEN"]
    assert board.iloc[0]["display_name"] == "Player A"
    assert "acwr:high_risk" in board.iloc[0]["flags"]


def test_main_explicit_date_without_data_marks_everyone_red(tmp_path, capsys):
    _seed(tmp_path, date(2026, 2, 21))
    assert run_daily.main(["--data-dir", str(tmp_path), "--date", "2026-03-01"]) == 0
    assert "date=2026-03-01 green=0 yellow=0 red=2" in capsys.readouterr().out.splitlines()


def test_main_without_wellness_fails(tmp_path):
    assert run_daily.main(["--data-dir", str(tmp_path)]) == 1


def test_main_with_bad_threshold_file_fails(tmp_path, monkeypatch):
    _seed(tmp_path, date(2026, 2, 21))
    bad = tmp_path / "thresholds.json"
    bad.write_text("{not json", encoding="utf-8")
    monkeypatch.setenv("THRESHOLDS_FILE", str(bad))
    from core.config import get_settings

    get_settings.cache_clear()
    assert run_daily.main(["--data-dir", str(tmp_path)]) == 1
