"""Composite 0-100 readiness from the morning wellness survey.

Sleep carries 30 points (hours against the sleep target), inverse soreness
and inverse fatigue 25 each, and mood 20. Each component is clamped to its
weight before summing and the total is rounded half up.
"""

from __future__ import annotations

import math
from typing import Optional, Union

from core.config import ThresholdConfig
from core.models import DailyMetricRecord, ReadinessScore, Unavailable, UnavailableReason

READINESS_INPUTS = ("sleep_hours", "soreness_0_10", "fatigue_0_10", "mood_0_10")

# Points available per component; sums to 100.
WEIGHTS: dict[str, float] = {"sleep": 30.0, "soreness": 25.0, "fatigue": 25.0, "mood": 20.0}


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def readiness_components(
    sleep_hours: float,
    soreness: float,
    fatigue: float,
    mood: float,
    sleep_target: float = 8.0,
) -> dict[str, float]:
    """Per-component points, each clamped to [0, weight] before summing."""
    raw = {
        "sleep": sleep_hours / sleep_target * WEIGHTS["sleep"],
        # soreness and fatigue inverted
        "soreness": (10 - soreness) / 10 * WEIGHTS["soreness"],
        "fatigue": (10 - fatigue) / 10 * WEIGHTS["fatigue"],
        "mood": mood / 10 * WEIGHTS["mood"],
    }
    return {k: _clamp(v, 0.0, WEIGHTS[k]) for k, v in raw.items()}


def readiness_score(
    sleep_hours: Optional[float],
    soreness: Optional[float],
    fatigue: Optional[float],
    mood: Optional[float],
    sleep_target: float = 8.0,
) -> Union[ReadinessScore, Unavailable]:
    """Composite 0-100 readiness from same-day subjective inputs.

    Any missing input makes the whole score unavailable rather than a
    partial sum that would understate risk.
    """
    inputs = dict(zip(READINESS_INPUTS, (sleep_hours, soreness, fatigue, mood)))
    missing = [name for name, v in inputs.items() if v is None]
    if missing:
        return Unavailable("readiness", UnavailableReason.MISSING_INPUT, f"missing {', '.join(missing)}")

    components = readiness_components(sleep_hours, soreness, fatigue, mood, sleep_target)
    total = round_half_up(sum(components.values()))
    return ReadinessScore(
        value=int(_clamp(total, 0, 100)),
        components={k: round(v, 1) for k, v in components.items()},
    )


def score_record(record: Optional[DailyMetricRecord], config: ThresholdConfig) -> Union[ReadinessScore, Unavailable]:
    """Score one wellness record (or its absence) under the run's config."""
    if record is None:
        return Unavailable("readiness", UnavailableReason.MISSING_INPUT, "no wellness record")
    return readiness_score(
        record.get("sleep_hours"),
        record.get("soreness_0_10"),
        record.get("fatigue_0_10"),
        record.get("mood_0_10"),
        sleep_target=config.sleep_target_hours,
    )
