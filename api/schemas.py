from __future__ import annotations

from datetime import date as dt_date
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class EvaluateRequest(BaseModel):
    date: dt_date
    athletes: Optional[list[str]] = None
    # Rows are validated individually by the metric store so one bad row
    # cannot reject the whole batch.
    records: list[dict[str, Any]] = Field(default_factory=list)


class RiskFlagOut(BaseModel):
    metric: str
    level: str
    value: float


class DailyStatusOut(BaseModel):
    athlete_id: str
    date: dt_date
    status: str
    composite_score: Union[int, str]
    active_flags: list[RiskFlagOut]
    resolution_reason: str
    unknown_metrics: dict[str, str]
    metrics: dict[str, Optional[float]]


class EvaluateResponse(BaseModel):
    date: dt_date
    counts: dict[str, int]
    statuses: list[DailyStatusOut]
    skipped_records: int


class ThresholdRuleOut(BaseModel):
    caution: float
    high_risk: Optional[float] = None
    direction: str


class ThresholdsResponse(BaseModel):
    rules: dict[str, ThresholdRuleOut]
    acute_window: int
    chronic_window: int
    baseline_window: int
    baseline_min_observations: int
    red_below: float
    yellow_below: float
    sleep_target_hours: float


class SimpleStatusResponse(BaseModel):
    status: str
