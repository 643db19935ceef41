"""Daily status resolution: GREEN / YELLOW / RED with a recorded reason.

Rules are evaluated in strict precedence; the first that fires wins:

1. composite unavailable, or any HIGH_RISK flag      -> RED
2. composite below ``red_below``                      -> RED
3. composite below ``yellow_below``, or any CAUTION   -> YELLOW
4. otherwise                                          -> GREEN

A single high-severity signal forces RED regardless of the composite, so the
resolver errs toward over-flagging. Status is recomputed fresh each day.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from core.config import ThresholdConfig
from core.models import FlagLevel, ReadinessScore, ResolutionReason, RiskFlag, Status, Unavailable


@dataclass(frozen=True)
class Resolution:
    status: Status
    reason: ResolutionReason


def resolve_status(
    score: Union[ReadinessScore, Unavailable],
    flags: Iterable[RiskFlag],
    config: ThresholdConfig,
) -> Resolution:
    levels = {f.level for f in flags}

    if isinstance(score, Unavailable):
        return Resolution(Status.RED, ResolutionReason.SCORE_UNAVAILABLE)
    if FlagLevel.HIGH_RISK in levels:
        return Resolution(Status.RED, ResolutionReason.HIGH_RISK_FLAG)
    if score.value < config.red_below:
        return Resolution(Status.RED, ResolutionReason.SCORE_BELOW_RED)
    if score.value < config.yellow_below:
        return Resolution(Status.YELLOW, ResolutionReason.SCORE_BELOW_YELLOW)
    if FlagLevel.CAUTION in levels:
        return Resolution(Status.YELLOW, ResolutionReason.CAUTION_FLAG)
    return Resolution(Status.GREEN, ResolutionReason.ALL_CLEAR)
