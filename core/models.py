"""Domain types shared by the monitoring services.

Everything here is immutable: records are produced by ingestion and only
read by the scoring core, derived values are recomputed every run.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


class Domain(str, Enum):
    WELLNESS = "wellness"
    LOAD = "load"
    FORCE_PLATE = "force_plate"
    WEARABLE = "wearable"


class FlagLevel(str, Enum):
    NORMAL = "normal"
    CAUTION = "caution"
    HIGH_RISK = "high_risk"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {FlagLevel.NORMAL: 0, FlagLevel.CAUTION: 1, FlagLevel.HIGH_RISK: 2}


class Status(str, Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class UnavailableReason(str, Enum):
    INSUFFICIENT_HISTORY = "insufficient_history"
    MISSING_INPUT = "missing_input"


class ResolutionReason(str, Enum):
    SCORE_UNAVAILABLE = "score_unavailable"
    HIGH_RISK_FLAG = "high_risk_flag"
    SCORE_BELOW_RED = "score_below_red"
    SCORE_BELOW_YELLOW = "score_below_yellow"
    CAUTION_FLAG = "caution_flag"
    ALL_CLEAR = "all_clear"


@dataclass(frozen=True)
class Unavailable:
    """A metric that could not be computed for the day, and why."""

    metric: str
    reason: UnavailableReason
    detail: str = ""


# The composite score itself is reported as this sentinel when not computable.
UNAVAILABLE = "UNAVAILABLE"


@dataclass(frozen=True)
class Athlete:
    athlete_id: str
    display_name: str
    position: str = ""
    role_tier: str = ""


@dataclass(frozen=True)
class DailyMetricRecord:
    athlete_id: str
    date: dt.date
    domain: Domain
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str) -> Optional[float]:
        return self.fields.get(name)


@dataclass(frozen=True)
class RollingBaseline:
    """Trailing mean / sd for one athlete metric, plus the values behind it."""

    metric: str
    window: int
    values: tuple[float, ...]
    mean: float
    std: float

    @property
    def observations(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class RiskFlag:
    metric: str
    level: FlagLevel
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"metric": self.metric, "level": self.level.value, "value": round(self.value, 2)}


@dataclass(frozen=True)
class ReadinessScore:
    value: int
    components: Mapping[str, float]


@dataclass(frozen=True)
class DailyStatus:
    athlete_id: str
    date: dt.date
    status: Status
    composite_score: Union[int, str]
    active_flags: tuple[RiskFlag, ...]
    resolution_reason: ResolutionReason
    unknown_metrics: Mapping[str, str] = field(default_factory=dict)
    metrics: Mapping[str, Optional[float]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "athlete_id": self.athlete_id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "composite_score": self.composite_score,
            "active_flags": [f.to_dict() for f in self.active_flags],
            "resolution_reason": self.resolution_reason.value,
            "unknown_metrics": dict(self.unknown_metrics),
            "metrics": dict(self.metrics),
        }
