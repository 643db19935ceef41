from __future__ import annotations

import sys

from fastapi.testclient import TestClient


def _reset_runtime_caches():
    from api.deps import get_threshold_config
    from core.config import get_settings

    get_settings.cache_clear()
    get_threshold_config.cache_clear()


def _purge_api_modules() -> None:
    for name in ["api.main", "api.routes"]:
        sys.modules.pop(name, None)


def _client(monkeypatch, **env) -> TestClient:
    monkeypatch.setenv("APP_ENV", "dev")
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    _reset_runtime_caches()
    _purge_api_modules()
    from api.main import create_app

    return TestClient(create_app())


def _wellness(athlete_id, day, sleep=8.0, soreness=2, fatigue=2, mood=8):
    return {
        "domain": "wellness",
        "athlete_id": athlete_id,
        "date": day,
        "sleep_hours": sleep,
        "soreness_0_10": soreness,
        "fatigue_0_10": fatigue,
        "mood_0_10": mood,
    }


def test_health_echoes_request_id(monkeypatch):
    client = _client(monkeypatch)
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-ID"] == "req-123"


def test_request_id_generated_when_missing(monkeypatch):
    client = _client(monkeypatch)
    resp = client.get("/health")
    assert resp.headers.get("X-Request-ID")


def test_thresholds_endpoint_lists_defaults(monkeypatch):
    client = _client(monkeypatch)
    body = client.get("/v1/thresholds").json()
    assert body["rules"]["acwr"] == {"caution": 1.3, "high_risk": 1.5, "direction": "higher_is_worse"}
    assert body["rules"]["readiness_z"]["high_risk"] is None
    assert body["chronic_window"] == 21
    assert body["red_below"] == 60


def test_thresholds_endpoint_honours_env_override(monkeypatch):
    client = _client(monkeypatch, READINESS_RED_BELOW="55")
    assert client.get("/v1/thresholds").json()["red_below"] == 55


def test_evaluate_returns_statuses_and_counts(monkeypatch):
    client = _client(monkeypatch)
    day = "2026-02-21"
    records = [
        _wellness("ATH_001", day),
        _wellness("ATH_002", day, sleep=5.5, soreness=8, fatigue=8, mood=3),
        {"domain": "wellness", "athlete_id": "ATH_003", "date": day, "sleep_hours": "lots"},
        {"domain": "gps", "athlete_id": "ATH_001", "date": day, "player_load": 300},
    ]
    resp = client.post("/v1/readiness/evaluate", json={"date": day, "records": records})
    assert resp.status_code == 200
    body = resp.json()
    assert body["skipped_records"] == 2
    assert body["counts"] == {"GREEN": 1, "YELLOW": 0, "RED": 1}

    by_id = {s["athlete_id"]: s for s in body["statuses"]}
    assert by_id["ATH_001"]["status"] == "GREEN"
    assert by_id["ATH_001"]["composite_score"] == 86
    assert by_id["ATH_002"]["composite_score"] == 37
    assert by_id["ATH_002"]["resolution_reason"] == "high_risk_flag"
    assert by_id["ATH_002"]["active_flags"][0]["metric"] == "sleep_hours"


def test_evaluate_explicit_athletes_marks_missing_data_red(monkeypatch):
    client = _client(monkeypatch)
    day = "2026-02-21"
    resp = client.post(
        "/v1/readiness/evaluate",
        json={"date": day, "athletes": ["ATH_001", "ATH_009"], "records": [_wellness("ATH_001", day)]},
    )
    statuses = resp.json()["statuses"]
    assert [s["athlete_id"] for s in statuses] == ["ATH_001", "ATH_009"]
    assert statuses[1]["composite_score"] == "UNAVAILABLE"
    assert statuses[1]["status"] == "RED"
    assert statuses[1]["resolution_reason"] == "score_unavailable"


def test_evaluate_rejects_missing_date(monkeypatch):
    client = _client(monkeypatch)
    resp = client.post("/v1/readiness/evaluate", json={"records": []})
    assert resp.status_code == 422


def test_evaluate_ignores_athletes_with_only_later_records(monkeypatch):
    client = _client(monkeypatch)
    records = [_wellness("ATH_001", "2026-02-21"), _wellness("ATH_002", "2026-02-26")]
    body = client.post("/v1/readiness/evaluate", json={"date": "2026-02-21", "records": records}).json()
    assert [s["athlete_id"] for s in body["statuses"]] == ["ATH_001"]
    assert body["counts"] == {"GREEN": 1, "YELLOW": 0, "RED": 0}
