"""Per-athlete daily evaluation and the board handed to exporters.

Pipeline for one athlete-day: raw records -> derived metrics -> flags and
composite score -> resolved status. Athletes are independent of each other,
so a batch run fans out over a thread pool with no shared mutable state;
the store and the threshold config are only read.
"""

from __future__ import annotations

import datetime as dt
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Mapping, Optional, Sequence, Union

import pandas as pd

from core.config import ThresholdConfig
from core.logging_config import log_context
from core.models import (
    UNAVAILABLE,
    Athlete,
    DailyStatus,
    Domain,
    ReadinessScore,
    Status,
    Unavailable,
    UnavailableReason,
)
from core.services import rolling
from core.services.metric_store import MetricStore
from core.services.readiness import score_record
from core.services.status import resolve_status
from core.services.thresholds import classify_metrics

logger = logging.getLogger(__name__)

# Same-day wellness fields classified directly against their thresholds.
RAW_WELLNESS_METRICS = ("sleep_hours", "soreness_0_10", "fatigue_0_10", "pain_knee_0_10")

WATCHLIST_COLUMNS = [
    "athlete_id",
    "display_name",
    "position",
    "status",
    "composite_score",
    "resolution_reason",
    "flags",
    "unknown",
]

_STATUS_ORDER = {Status.RED.value: 0, Status.YELLOW.value: 1, Status.GREEN.value: 2}


def readiness_z_score(
    store: MetricStore,
    athlete_id: str,
    day: dt.date,
    config: ThresholdConfig,
) -> Union[float, Unavailable]:
    """Today's composite against the athlete's own trailing composite baseline."""
    series: dict[dt.date, float] = {}
    for rec in store.records(Domain.WELLNESS, athlete_id, end=day, start=day - dt.timedelta(days=config.baseline_window)):
        score = score_record(rec, config)
        if isinstance(score, ReadinessScore):
            series[rec.date] = float(score.value)
    return rolling.baseline_z_score("readiness_z", series, day, config)


def derive_metrics(
    store: MetricStore,
    athlete_id: str,
    day: dt.date,
    config: ThresholdConfig,
) -> dict[str, Union[float, Unavailable]]:
    """Every raw and derived metric the classifier looks at, for one athlete-day."""
    wellness = store.get(Domain.WELLNESS, athlete_id, day)
    acwr = rolling.acwr(store, athlete_id, day, config)
    metrics: dict[str, Union[float, Unavailable]] = {"acwr": acwr}
    if isinstance(acwr, Unavailable) and acwr.reason is UnavailableReason.INSUFFICIENT_HISTORY:
        metrics["accum_ratio"] = rolling.accumulation_ratio(store, athlete_id, day, config)
    metrics["load_z"] = rolling.load_z_score(store, athlete_id, day, config)

    for name in RAW_WELLNESS_METRICS:
        value = wellness.get(name) if wellness else None
        metrics[name] = (
            float(value) if value is not None else Unavailable(name, UnavailableReason.MISSING_INPUT, "not reported")
        )
    pain = store.series(
        Domain.WELLNESS, athlete_id, "pain_knee_0_10", end=day, start=day - dt.timedelta(days=config.baseline_window)
    )
    metrics["pain_knee_rise"] = rolling.baseline_rise("pain_knee_rise", pain, day, config)
    metrics["readiness_z"] = readiness_z_score(store, athlete_id, day, config)
    metrics["days_since_wellness"] = rolling.days_since_last(
        store, athlete_id, day, Domain.WELLNESS, "days_since_wellness"
    )

    metrics["jump_height_delta_pct"] = rolling.baseline_delta_pct(
        store, athlete_id, day, "jump_height_cm", config, metric="jump_height_delta_pct"
    )
    metrics["rsi_delta_pct"] = rolling.baseline_delta_pct(store, athlete_id, day, "rsi_mod", config, metric="rsi_delta_pct")
    metrics["asymmetry_pct"] = rolling.latest_asymmetry_pct(store, athlete_id, day, config)
    return metrics


def evaluate_athlete(store: MetricStore, athlete_id: str, day: dt.date, config: ThresholdConfig) -> DailyStatus:
    """Resolve one athlete's DailyStatus from records dated on or before ``day``."""
    score = score_record(store.get(Domain.WELLNESS, athlete_id, day), config)
    metrics = derive_metrics(store, athlete_id, day, config)
    flags, unknown = classify_metrics(metrics, config)
    if isinstance(score, Unavailable):
        unknown["readiness"] = score

    resolution = resolve_status(score, flags, config)
    status = DailyStatus(
        athlete_id=athlete_id,
        date=day,
        status=resolution.status,
        composite_score=score.value if isinstance(score, ReadinessScore) else UNAVAILABLE,
        active_flags=tuple(flags),
        resolution_reason=resolution.reason,
        unknown_metrics={m: u.reason.value for m, u in unknown.items()},
        metrics={m: None if isinstance(v, Unavailable) else round(v, 2) for m, v in metrics.items()},
    )
    logger.debug(
        "athlete_evaluated",
        extra=log_context(
            athlete_id=athlete_id,
            date=day,
            status=status.status.value,
            reason=status.resolution_reason.value,
            unknown=sorted(status.unknown_metrics),
        ),
    )
    return status


def run_daily(
    store: MetricStore,
    day: dt.date,
    config: ThresholdConfig,
    athlete_ids: Optional[Sequence[str]] = None,
    max_workers: int = 4,
) -> list[DailyStatus]:
    """Evaluate every athlete for ``day``; output follows the input order.

    Defaults to every athlete with at least one record dated on or before ``day``.
    """
    ids = list(athlete_ids) if athlete_ids is not None else store.athlete_ids(end=day)
    if not ids:
        return []
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        statuses = list(pool.map(lambda a: evaluate_athlete(store, a, day, config), ids))

    counts = status_counts(statuses)
    logger.info(
        "daily_run_complete",
        extra=log_context(date=day, athletes=len(statuses), skipped_records=len(store.skipped), **counts),
    )
    return statuses


def status_counts(statuses: Iterable[DailyStatus]) -> dict[str, int]:
    counts = {s.value: 0 for s in Status}
    for st in statuses:
        counts[st.status.value] += 1
    return counts


def build_watchlist(statuses: Iterable[DailyStatus], roster: Mapping[str, Athlete] | None = None) -> pd.DataFrame:
    """One row per athlete, RED first, then lowest composite first.

    Unavailable composites sort ahead of numeric ones within a status.
    """
    roster = roster or {}
    rows = []
    for st in statuses:
        athlete = roster.get(st.athlete_id)
        rows.append(
            {
                "athlete_id": st.athlete_id,
                "display_name": athlete.display_name if athlete else st.athlete_id,
                "position": athlete.position if athlete else "",
                "status": st.status.value,
                "composite_score": st.composite_score,
                "resolution_reason": st.resolution_reason.value,
                "flags": ", ".join(f"{f.metric}:{f.level.value}" for f in st.active_flags),
                "unknown": ", ".join(sorted(st.unknown_metrics)),
            }
        )
    if not rows:
        return pd.DataFrame(columns=WATCHLIST_COLUMNS)

    df = pd.DataFrame(rows, columns=WATCHLIST_COLUMNS)
    df["_status_rank"] = df["status"].map(_STATUS_ORDER)
    df["_score_rank"] = df["composite_score"].map(lambda v: -1 if v == UNAVAILABLE else v)
    df = df.sort_values(["_status_rank", "_score_rank", "athlete_id"], kind="mergesort")
    return df.drop(columns=["_status_rank", "_score_rank"]).reset_index(drop=True)
