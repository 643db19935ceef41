"""Direction-aware three-level threshold classification."""

from __future__ import annotations

from typing import Mapping, Optional, Union

from core.config import Direction, ThresholdConfig, ThresholdRule
from core.models import FlagLevel, RiskFlag, Unavailable


def _crosses(value: float, boundary: Optional[float], direction: Direction) -> bool:
    # Boundaries are inclusive of the adverse side.
    if boundary is None:
        return False
    if direction is Direction.LOWER_IS_WORSE:
        return value <= boundary
    return value >= boundary


def classify_value(value: float, rule: Optional[ThresholdRule]) -> FlagLevel:
    """Map a metric value to NORMAL / CAUTION / HIGH_RISK.

    A metric without a rule is always NORMAL.
    """
    if rule is None:
        return FlagLevel.NORMAL
    if _crosses(value, rule.high_risk, rule.direction):
        return FlagLevel.HIGH_RISK
    if _crosses(value, rule.caution, rule.direction):
        return FlagLevel.CAUTION
    return FlagLevel.NORMAL


def classify_metric(metric: str, value: float, config: ThresholdConfig) -> RiskFlag:
    return RiskFlag(metric=metric, level=classify_value(value, config.rule_for(metric)), value=float(value))


def classify_metrics(
    values: Mapping[str, Union[float, Unavailable]],
    config: ThresholdConfig,
) -> tuple[list[RiskFlag], dict[str, Unavailable]]:
    """Classify every computable metric.

    Returns ``(flags, unknown)``. Only CAUTION / HIGH_RISK flags are kept,
    ordered by severity then configured metric order. Unavailable metrics are
    never classified; they come back in ``unknown`` keyed by metric name.
    """
    flags: list[RiskFlag] = []
    unknown: dict[str, Unavailable] = {}
    for metric, value in values.items():
        if isinstance(value, Unavailable):
            unknown[metric] = value
            continue
        flag = classify_metric(metric, value, config)
        if flag.level is not FlagLevel.NORMAL:
            flags.append(flag)
    flags.sort(key=lambda f: (-f.level.severity, config.metric_rank(f.metric), f.metric))
    return flags, unknown
