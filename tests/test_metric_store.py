"""Tests for the per-domain (athlete_id, date) record index."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pandas as pd

from core.models import Domain
from core.services.metric_store import MetricStore

DAY = date(2026, 2, 21)


def test_add_row_indexes_by_athlete_and_date():
    store = MetricStore()
    rec = store.add_row("wellness", {"athlete_id": "ATH_001", "date": DAY, "sleep_hours": 7.2, "mood_0_10": 6})
    assert rec is not None
    assert store.get(Domain.WELLNESS, "ATH_001", DAY) == rec
    assert store.get(Domain.LOAD, "ATH_001", DAY) is None
    assert rec.get("sleep_hours") == 7.2
    assert rec.get("fatigue_0_10") is None


def test_malformed_row_skipped_and_recorded():
    store = MetricStore()
    assert store.add_row(Domain.WELLNESS, {"athlete_id": "ATH_001", "date": DAY, "sleep_hours": "abc"}) is None
    assert len(store) == 0
    assert len(store.skipped) == 1
    assert store.skipped[0].domain == "wellness"
    assert store.skipped[0].athlete_id == "ATH_001"
    assert any("sleep_hours" in e for e in store.skipped[0].errors)


def test_unknown_domain_skipped():
    store = MetricStore()
    assert store.add_row("gps_raw", {"athlete_id": "ATH_001", "date": DAY}) is None
    assert store.skipped[0].domain == "gps_raw"


def test_bad_row_does_not_stop_batch():
    store = MetricStore()
    rows = [
        {"athlete_id": "ATH_001", "date": DAY, "player_load": 300},
        {"athlete_id": "ATH_002", "date": "not-a-date", "player_load": 250},
        {"athlete_id": "ATH_003", "date": DAY, "player_load": 280},
    ]
    assert store.add_rows(Domain.LOAD, rows) == 2
    assert store.athlete_ids() == ["ATH_001", "ATH_003"]


def test_duplicate_key_keeps_last_record():
    store = MetricStore()
    store.add_row(Domain.LOAD, {"athlete_id": "ATH_001", "date": DAY, "player_load": 100})
    store.add_row(Domain.LOAD, {"athlete_id": "ATH_001", "date": DAY, "player_load": 150})
    assert len(store) == 1
    assert store.get(Domain.LOAD, "ATH_001", DAY).get("player_load") == 150
    assert len(store.records(Domain.LOAD, "ATH_001", end=DAY)) == 1


def test_records_never_return_future_dates():
    store = MetricStore()
    for offset in (-2, -1, 0, 1, 2):
        store.add_row(Domain.LOAD, {"athlete_id": "ATH_001", "date": DAY + timedelta(days=offset), "player_load": 100 + offset})
    recs = store.records(Domain.LOAD, "ATH_001", end=DAY)
    assert [r.date for r in recs] == [DAY - timedelta(days=2), DAY - timedelta(days=1), DAY]
    assert store.series(Domain.LOAD, "ATH_001", "player_load", end=DAY, start=DAY - timedelta(days=1)) == {
        DAY - timedelta(days=1): 99.0,
        DAY: 100.0,
    }


def test_records_sorted_even_when_loaded_out_of_order():
    store = MetricStore()
    for offset in (3, 0, 5, 1):
        store.add_row(Domain.WELLNESS, {"athlete_id": "ATH_001", "date": DAY - timedelta(days=offset), "sleep_hours": 7})
    dates = [r.date for r in store.records(Domain.WELLNESS, "ATH_001", end=DAY)]
    assert dates == sorted(dates)
    assert store.first_date(Domain.WELLNESS, "ATH_001") == DAY - timedelta(days=5)
    assert store.first_date(Domain.WELLNESS, "ATH_001", end=DAY - timedelta(days=6)) is None


def test_add_frame_handles_nan_and_timestamps():
    frame = pd.DataFrame([
        {"athlete_id": "ATH_001", "date": pd.Timestamp("2026-02-20"), "sleep_hours": 7.0, "mood_0_10": float("nan")},
        {"athlete_id": "ATH_001", "date": datetime(2026, 2, 21), "sleep_hours": 6.1, "mood_0_10": 5},
    ])
    store = MetricStore()
    assert store.add_frame(Domain.WELLNESS, frame) == 2
    assert store.get(Domain.WELLNESS, "ATH_001", date(2026, 2, 20)).get("mood_0_10") is None
    assert store.get(Domain.WELLNESS, "ATH_001", DAY).get("sleep_hours") == 6.1


def test_add_frame_empty():
    assert MetricStore().add_frame(Domain.LOAD, pd.DataFrame()) == 0


def test_add_mixed_rows():
    store = MetricStore()
    accepted = store.add_mixed([
        {"domain": "wellness", "athlete_id": "ATH_001", "date": "2026-02-21", "sleep_hours": 8},
        {"domain": "force_plate", "athlete_id": "ATH_001", "date": "2026-02-16", "jump_height_cm": 33.0},
        {"athlete_id": "ATH_001", "date": "2026-02-21"},
    ])
    assert accepted == 2
    assert len(store.skipped) == 1


def test_athlete_ids_limited_to_records_on_or_before_end():
    store = MetricStore()
    store.add_row(Domain.WELLNESS, {"athlete_id": "ATH_001", "date": DAY, "sleep_hours": 8})
    store.add_row(Domain.WELLNESS, {"athlete_id": "ATH_002", "date": DAY + timedelta(days=5), "sleep_hours": 8})
    store.add_row(Domain.LOAD, {"athlete_id": "ATH_003", "date": DAY - timedelta(days=2), "player_load": 100})
    assert store.athlete_ids() == ["ATH_001", "ATH_002", "ATH_003"]
    assert store.athlete_ids(end=DAY) == ["ATH_001", "ATH_003"]
    assert store.athlete_ids(end=DAY - timedelta(days=3)) == []


def test_last_date_ignores_later_records():
    store = MetricStore()
    for offset in (-6, -2, 3):
        store.add_row(Domain.WELLNESS, {"athlete_id": "ATH_001", "date": DAY + timedelta(days=offset), "sleep_hours": 8})
    assert store.last_date(Domain.WELLNESS, "ATH_001", DAY) == DAY - timedelta(days=2)
    assert store.last_date(Domain.WELLNESS, "ATH_001", DAY - timedelta(days=7)) is None
    assert store.last_date(Domain.WELLNESS, "ATH_009", DAY) is None
