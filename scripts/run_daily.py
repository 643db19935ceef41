"""One-shot daily evaluation over CSV exports.

Reads the per-domain CSV exports under ``<data-dir>/raw/<domain>/`` and the
roster at ``<data-dir>/ref/athlete_roster.csv``, evaluates every rostered
athlete for the target date and writes the watchlist board to
``<data-dir>/gold_export/watchlist_daily.csv``.

Run with:  python3 -m scripts.run_daily --data-dir . [--date YYYY-MM-DD]
"""

from __future__ import annotations

import argparse
import datetime as dt
import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from core.config import ConfigError, get_settings, load_threshold_config
from core.logging_config import log_context, setup_logging
from core.models import Domain
from core.services.daily_status import build_watchlist, run_daily, status_counts
from core.services.metric_store import MetricStore
from core.services.roster import load_roster

logger = logging.getLogger(__name__)

RAW_DIRS: dict[Domain, str] = {
    Domain.WELLNESS: "wellness",
    Domain.LOAD: "gps",
    Domain.FORCE_PLATE: "force_plate",
    Domain.WEARABLE: "wearables",
}

# Roster columns holding each device system's own athlete id.
DEVICE_ID_COLUMNS: dict[Domain, str] = {
    Domain.LOAD: "gps_id",
    Domain.FORCE_PLATE: "force_plate_id",
    Domain.WEARABLE: "wearable_id",
}


def read_domain_frames(raw_dir: Path) -> pd.DataFrame:
    files = sorted(raw_dir.glob("*.csv")) if raw_dir.is_dir() else []
    if not files:
        return pd.DataFrame()
    return pd.concat([pd.read_csv(f) for f in files], ignore_index=True)


def remap_device_ids(frame: pd.DataFrame, roster_frame: pd.DataFrame, domain: Domain) -> pd.DataFrame:
    """Rewrite device-system ids (GPS_001, FP_001, ...) to roster athlete ids."""
    column = DEVICE_ID_COLUMNS.get(domain)
    if frame.empty or column is None or column not in roster_frame.columns:
        return frame
    mapping = dict(zip(roster_frame[column].astype(str), roster_frame["athlete_id"].astype(str)))
    out = frame.copy()
    ids = out["athlete_id"]
    # blank ids stay null so the store rejects the row
    out["athlete_id"] = ids.where(ids.isna(), ids.astype(str).map(lambda v: mapping.get(v, v)))
    return out


def load_store(data_dir: Path, roster_frame: pd.DataFrame) -> MetricStore:
    store = MetricStore()
    for domain, sub in RAW_DIRS.items():
        frame = remap_device_ids(read_domain_frames(data_dir / "raw" / sub), roster_frame, domain)
        accepted = store.add_frame(domain, frame)
        logger.info("domain_loaded", extra=log_context(domain=domain.value, rows=len(frame), accepted=accepted))
    return store


def latest_wellness_date(store: MetricStore) -> Optional[dt.date]:
    dates = [rec.date for a in store.athlete_ids() for rec in store.records(Domain.WELLNESS, a, end=dt.date.max)]
    return max(dates) if dates else None


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Evaluate daily athlete availability from CSV exports.")
    parser.add_argument("--data-dir", default=".", type=Path)
    parser.add_argument("--date", type=dt.date.fromisoformat, default=None, help="target date (default: latest wellness date)")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        config = load_threshold_config(settings)
    except ConfigError as exc:
        logger.error("threshold_config_invalid", extra=log_context(error=str(exc)))
        return 1

    roster_path = args.data_dir / "ref" / "athlete_roster.csv"
    roster_frame = pd.read_csv(roster_path, dtype=str) if roster_path.is_file() else pd.DataFrame(columns=["athlete_id"])
    roster = load_roster(roster_frame)
    store = load_store(args.data_dir, roster_frame)

    day = args.date or latest_wellness_date(store)
    if day is None:
        logger.error("no_wellness_data", extra=log_context(data_dir=str(args.data_dir)))
        return 1

    athlete_ids = list(roster) or None
    statuses = run_daily(store, day, config, athlete_ids=athlete_ids, max_workers=settings.eval_max_workers)

    out_dir = args.data_dir / "gold_export"
    out_dir.mkdir(parents=True, exist_ok=True)
    build_watchlist(statuses, roster).to_csv(out_dir / "watchlist_daily.csv", index=False)

    counts = status_counts(statuses)
    print(f"date={day.isoformat()} " + " ".join(f"{k.lower()}={v}" for k, v in counts.items()))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
