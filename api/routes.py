from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from api.deps import get_threshold_config
from api.schemas import EvaluateRequest, EvaluateResponse, SimpleStatusResponse, ThresholdRuleOut, ThresholdsResponse
from core.config import ThresholdConfig, get_settings
from core.services.daily_status import run_daily, status_counts
from core.services.metric_store import MetricStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=SimpleStatusResponse, tags=["system"])
def health():
    return SimpleStatusResponse(status="ok")


@router.get("/v1/thresholds", response_model=ThresholdsResponse, tags=["readiness"])
def thresholds(config: Annotated[ThresholdConfig, Depends(get_threshold_config)]):
    return ThresholdsResponse(
        rules={
            metric: ThresholdRuleOut(caution=r.caution, high_risk=r.high_risk, direction=r.direction.value)
            for metric, r in config.rules.items()
        },
        acute_window=config.acute_window,
        chronic_window=config.chronic_window,
        baseline_window=config.baseline_window,
        baseline_min_observations=config.baseline_min_observations,
        red_below=config.red_below,
        yellow_below=config.yellow_below,
        sleep_target_hours=config.sleep_target_hours,
    )


@router.post("/v1/readiness/evaluate", response_model=EvaluateResponse, tags=["readiness"])
def evaluate(payload: EvaluateRequest, config: Annotated[ThresholdConfig, Depends(get_threshold_config)]):
    store = MetricStore()
    store.add_mixed(payload.records)
    statuses = run_daily(
        store,
        payload.date,
        config,
        athlete_ids=payload.athletes,
        max_workers=get_settings().eval_max_workers,
    )
    return EvaluateResponse(
        date=payload.date,
        counts=status_counts(statuses),
        statuses=[s.to_dict() for s in statuses],
        skipped_records=len(store.skipped),
    )
