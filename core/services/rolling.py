"""Rolling-window workload and baseline metrics.

Acute:Chronic Workload Ratio (rolling-average form) with the simpler
accumulation ratio as its short-history fallback, personal-baseline z-scores
and rises, days since the last survey, and test-to-baseline deltas for
periodic jump tests. Every window is trailing and date-inclusive, and
nothing dated after the target day is read.

Reference: Gabbett (2016) ACWR; Gathercole et al. (2015) CMJ fatigue
monitoring.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from statistics import mean, stdev
from typing import Mapping, Optional, Union

from core.config import ThresholdConfig
from core.models import Domain, RollingBaseline, Unavailable, UnavailableReason
from core.services.metric_store import MetricStore

LOAD_METRIC = "player_load"


@dataclass(frozen=True)
class LoadWindow:
    """Acute and chronic load for one athlete-day."""
    acute: float
    chronic: float
    days_of_history: int

    @property
    def acwr(self) -> float:
        return self.acute / self.chronic


def _insufficient(metric: str, detail: str) -> Unavailable:
    return Unavailable(metric, UnavailableReason.INSUFFICIENT_HISTORY, detail)


def window_start(day: dt.date, days: int) -> dt.date:
    """First date of a trailing, date-inclusive window of ``days`` days."""
    return day - dt.timedelta(days=days - 1)


def daily_load_series(store: MetricStore, athlete_id: str, day: dt.date, config: ThresholdConfig) -> dict[dt.date, float]:
    """Daily load up to ``day``.

    When missing days count as zero, every day from the athlete's first load
    record to ``day`` is present (rest days as 0.0).
    """
    observed = store.series(Domain.LOAD, athlete_id, LOAD_METRIC, end=day)
    if not config.missing_load_as_zero or not observed:
        return observed
    first = min(observed)
    span = (day - first).days + 1
    return {first + dt.timedelta(days=i): observed.get(first + dt.timedelta(days=i), 0.0) for i in range(span)}


def trailing_mean(series: Mapping[dt.date, float], day: dt.date, days: int) -> Optional[float]:
    start = window_start(day, days)
    values = [v for d, v in series.items() if start <= d <= day]
    if not values:
        return None
    return mean(values)


def acute_chronic_load(
    store: MetricStore,
    athlete_id: str,
    day: dt.date,
    config: ThresholdConfig,
) -> Union[LoadWindow, Unavailable]:
    """Acute (``acute_window``) and chronic (``chronic_window``) mean daily load.

    Needs at least ``chronic_window`` days of history; exactly that many is enough.
    """
    series = daily_load_series(store, athlete_id, day, config)
    history = len(series)
    if history < config.chronic_window:
        return _insufficient("acwr", f"{history} of {config.chronic_window} days of load history")

    acute = trailing_mean(series, day, config.acute_window)
    chronic = trailing_mean(series, day, config.chronic_window)
    if acute is None or chronic is None:
        return _insufficient("acwr", "no load observed in window")
    if chronic == 0:
        return _insufficient("acwr", "chronic load is zero")
    return LoadWindow(acute=acute, chronic=chronic, days_of_history=history)


def acwr(store: MetricStore, athlete_id: str, day: dt.date, config: ThresholdConfig) -> Union[float, Unavailable]:
    window = acute_chronic_load(store, athlete_id, day, config)
    if isinstance(window, Unavailable):
        return window
    return window.acwr


def accumulation_ratio(
    store: MetricStore,
    athlete_id: str,
    day: dt.date,
    config: ThresholdConfig,
) -> Union[float, Unavailable]:
    """Mean recorded load over the acute window against the chronic window.

    Fallback for athletes without the history ACWR needs: rest days are not
    filled in, and some load before the acute window is enough.
    """
    series = store.series(Domain.LOAD, athlete_id, LOAD_METRIC, end=day, start=window_start(day, config.chronic_window))
    acute_start = window_start(day, config.acute_window)
    acute = [v for d, v in series.items() if d >= acute_start]
    if not acute or len(acute) == len(series):
        return _insufficient("accum_ratio", "needs load both inside and before the acute window")
    chronic = mean(series.values())
    if chronic == 0:
        return _insufficient("accum_ratio", "chronic load is zero")
    return mean(acute) / chronic


def rolling_baseline(metric: str, series: Mapping[dt.date, float], day: dt.date, window: int) -> RollingBaseline:
    """Mean / sample sd over the ``window`` days *before* ``day``."""
    start = day - dt.timedelta(days=window)
    values = tuple(v for d, v in sorted(series.items()) if start <= d < day)
    avg = mean(values) if values else 0.0
    sd = stdev(values) if len(values) > 1 else 0.0
    return RollingBaseline(metric=metric, window=window, values=values, mean=avg, std=sd)


def baseline_z_score(
    metric: str,
    series: Mapping[dt.date, float],
    day: dt.date,
    config: ThresholdConfig,
) -> Union[float, Unavailable]:
    """(today - trailing mean) / trailing sd against the athlete's own baseline."""
    today = series.get(day)
    if today is None:
        return Unavailable(metric, UnavailableReason.MISSING_INPUT, "no value on target date")
    baseline = rolling_baseline(metric, series, day, config.baseline_window)
    if baseline.observations < config.baseline_min_observations:
        return _insufficient(
            metric, f"{baseline.observations} of {config.baseline_min_observations} baseline observations"
        )
    if baseline.std == 0:
        return _insufficient(metric, "baseline has zero variance")
    return (today - baseline.mean) / baseline.std


def load_z_score(store: MetricStore, athlete_id: str, day: dt.date, config: ThresholdConfig) -> Union[float, Unavailable]:
    return baseline_z_score("load_z", daily_load_series(store, athlete_id, day, config), day, config)


def baseline_rise(
    metric: str,
    series: Mapping[dt.date, float],
    day: dt.date,
    config: ThresholdConfig,
) -> Union[float, Unavailable]:
    """Points today's value sits above the athlete's trailing mean."""
    today = series.get(day)
    if today is None:
        return Unavailable(metric, UnavailableReason.MISSING_INPUT, "no value on target date")
    baseline = rolling_baseline(metric, series, day, config.baseline_window)
    if baseline.observations < config.baseline_min_observations:
        return _insufficient(
            metric, f"{baseline.observations} of {config.baseline_min_observations} baseline observations"
        )
    return today - baseline.mean


def days_since_last(
    store: MetricStore,
    athlete_id: str,
    day: dt.date,
    domain: Domain,
    metric: str,
) -> Union[float, Unavailable]:
    last = store.last_date(domain, athlete_id, day)
    if last is None:
        return Unavailable(metric, UnavailableReason.MISSING_INPUT, f"no {domain.value} record on or before target date")
    return float((day - last).days)


def baseline_delta_pct(
    store: MetricStore,
    athlete_id: str,
    day: dt.date,
    field: str,
    config: ThresholdConfig,
    metric: str | None = None,
) -> Union[float, Unavailable]:
    """Percent change of the latest test from the first test in the observation window.

    The baseline is the earliest test, not a moving average, so it only moves
    when the observation window slides past it.
    """
    metric = metric or f"{field}_delta_pct"
    start = window_start(day, config.test_observation_window) if config.test_observation_window else None
    tests = store.series(Domain.FORCE_PLATE, athlete_id, field, end=day, start=start)
    if not tests:
        return _insufficient(metric, "no tests in observation window")

    latest_day = max(tests)
    if (day - latest_day).days > config.test_max_age_days:
        return _insufficient(metric, f"latest test is {(day - latest_day).days} days old")

    baseline = tests[min(tests)]
    if baseline == 0:
        return _insufficient(metric, "baseline test is zero")
    return (tests[latest_day] - baseline) / baseline * 100.0


def latest_asymmetry_pct(
    store: MetricStore,
    athlete_id: str,
    day: dt.date,
    config: ThresholdConfig,
) -> Union[float, Unavailable]:
    """Most recent force-plate asymmetry, else same-day wearable symmetry."""
    start = day - dt.timedelta(days=config.test_max_age_days)
    tests = store.series(Domain.FORCE_PLATE, athlete_id, "asymmetry_pct", end=day, start=start)
    if tests:
        return tests[max(tests)]

    wearable = store.get(Domain.WEARABLE, athlete_id, day)
    symmetry = wearable.get("symmetry_proxy") if wearable else None
    if symmetry is not None:
        return (1.0 - float(symmetry)) * 100.0
    return _insufficient("asymmetry_pct", "no recent asymmetry measurement")
