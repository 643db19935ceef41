"""Application configuration with environment-specific profiles.

Supports dev, staging, and production environments via APP_ENV.
All values can be overridden by environment variables.

Threshold configuration is resolved once per run by
``load_threshold_config`` and passed explicitly into every computation.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError


class ConfigError(RuntimeError):
    """Structural configuration failure. Halts the whole run."""


class Direction(str, Enum):
    HIGHER_IS_WORSE = "higher_is_worse"
    LOWER_IS_WORSE = "lower_is_worse"


@dataclass(frozen=True)
class ThresholdRule:
    """Caution / high-risk boundaries for a single metric."""

    caution: float
    high_risk: Optional[float]
    direction: Direction

    def __post_init__(self) -> None:
        if self.high_risk is None:
            return
        if self.direction is Direction.HIGHER_IS_WORSE and self.high_risk < self.caution:
            raise ConfigError(f"high_risk {self.high_risk} must be >= caution {self.caution} when higher is worse")
        if self.direction is Direction.LOWER_IS_WORSE and self.high_risk > self.caution:
            raise ConfigError(f"high_risk {self.high_risk} must be <= caution {self.caution} when lower is worse")


# Research-derived starting points (Gabbett 2016, Milewski 2014, Gathercole 2015,
# Bishop 2018). Order here is the order flags are reported in.
DEFAULT_RULES: dict[str, ThresholdRule] = {
    "acwr": ThresholdRule(1.3, 1.5, Direction.HIGHER_IS_WORSE),
    # only derived while acwr lacks history
    "accum_ratio": ThresholdRule(1.2, 1.4, Direction.HIGHER_IS_WORSE),
    "load_z": ThresholdRule(1.5, 2.0, Direction.HIGHER_IS_WORSE),
    "sleep_hours": ThresholdRule(6.5, 6.0, Direction.LOWER_IS_WORSE),
    "soreness_0_10": ThresholdRule(7, 9, Direction.HIGHER_IS_WORSE),
    "fatigue_0_10": ThresholdRule(7, 9, Direction.HIGHER_IS_WORSE),
    "pain_knee_0_10": ThresholdRule(3, 5, Direction.HIGHER_IS_WORSE),
    "pain_knee_rise": ThresholdRule(2, None, Direction.HIGHER_IS_WORSE),
    "readiness_z": ThresholdRule(-1.0, None, Direction.LOWER_IS_WORSE),
    # more than 3 days without a wellness survey
    "days_since_wellness": ThresholdRule(4, None, Direction.HIGHER_IS_WORSE),
    "jump_height_delta_pct": ThresholdRule(-8.0, -12.0, Direction.LOWER_IS_WORSE),
    "asymmetry_pct": ThresholdRule(10, 15, Direction.HIGHER_IS_WORSE),
}

REQUIRED_METRICS: frozenset[str] = frozenset({"acwr", "sleep_hours", "jump_height_delta_pct", "asymmetry_pct"})


@dataclass(frozen=True)
class ThresholdConfig:
    """Immutable thresholds, window lengths and score cut-offs for one run."""

    rules: Mapping[str, ThresholdRule] = field(default_factory=lambda: dict(DEFAULT_RULES))
    acute_window: int = 7
    chronic_window: int = 21
    baseline_window: int = 28
    baseline_min_observations: int = 7
    missing_load_as_zero: bool = True
    test_observation_window: Optional[int] = None
    test_max_age_days: int = 7
    sleep_target_hours: float = 8.0
    red_below: float = 60
    yellow_below: float = 80

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))
        if self.acute_window < 1 or self.chronic_window < self.acute_window:
            raise ConfigError("chronic_window must be >= acute_window >= 1")
        if self.baseline_min_observations < 2:
            raise ConfigError("baseline_min_observations must be at least 2")
        if self.sleep_target_hours <= 0:
            raise ConfigError("sleep_target_hours must be positive")
        if self.red_below > self.yellow_below:
            raise ConfigError("red_below must not exceed yellow_below")

    def rule_for(self, metric: str) -> Optional[ThresholdRule]:
        return self.rules.get(metric)

    def metric_rank(self, metric: str) -> int:
        order = list(self.rules)
        return order.index(metric) if metric in self.rules else len(order)


class _RuleFile(BaseModel):
    caution: float
    high_risk: Optional[float] = None
    direction: Direction


class _ThresholdFile(BaseModel):
    rules: dict[str, _RuleFile] = Field(default_factory=dict)
    replace_rules: bool = False
    acute_window: Optional[int] = Field(default=None, ge=1)
    chronic_window: Optional[int] = Field(default=None, ge=1)
    baseline_window: Optional[int] = Field(default=None, ge=2)
    baseline_min_observations: Optional[int] = Field(default=None, ge=2)
    missing_load_as_zero: Optional[bool] = None
    test_observation_window: Optional[int] = Field(default=None, ge=1)
    test_max_age_days: Optional[int] = Field(default=None, ge=0)
    sleep_target_hours: Optional[float] = Field(default=None, gt=0)
    red_below: Optional[float] = None
    yellow_below: Optional[float] = None


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    app_env: str = "dev"
    log_level: str = "INFO"
    thresholds_file: Optional[str] = None
    eval_max_workers: int = 4
    request_id_header_name: str = "X-Request-ID"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "eval_max_workers": 2,
    },
    "staging": {
        "log_level": "INFO",
        "eval_max_workers": 4,
    },
    "production": {
        "log_level": "WARNING",
        "eval_max_workers": 8,
    },
}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        thresholds_file=os.getenv("THRESHOLDS_FILE") or None,
        eval_max_workers=int(os.getenv("EVAL_MAX_WORKERS", str(profile.get("eval_max_workers", 4)))),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID"),
    )


def _read_threshold_file(path: str) -> _ThresholdFile:
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"thresholds file not found: {path}")
    try:
        return _ThresholdFile.model_validate(json.loads(p.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"invalid thresholds file {path}: {exc}") from exc


def load_threshold_config(settings: Settings | None = None) -> ThresholdConfig:
    """Resolve the run's ThresholdConfig.

    Resolution order (later wins):
    1. Built-in defaults
    2. JSON file named by THRESHOLDS_FILE (rules replace defaults by metric name,
       or all of them when "replace_rules" is true)
    3. Window / score env vars (ACUTE_WINDOW, CHRONIC_WINDOW, BASELINE_WINDOW,
       READINESS_RED_BELOW, READINESS_YELLOW_BELOW, SLEEP_TARGET_HOURS)
    """
    settings = settings or get_settings()
    rules: dict[str, ThresholdRule] = dict(DEFAULT_RULES)
    overrides: dict[str, object] = {}

    if settings.thresholds_file:
        parsed = _read_threshold_file(settings.thresholds_file)
        if parsed.replace_rules:
            rules = {}
        for metric, r in parsed.rules.items():
            rules[metric] = ThresholdRule(r.caution, r.high_risk, r.direction)
        overrides = parsed.model_dump(exclude={"rules", "replace_rules"}, exclude_none=True)

    missing = sorted(REQUIRED_METRICS - set(rules))
    if missing:
        raise ConfigError(f"missing required threshold keys: {', '.join(missing)}")

    env_ints = {"acute_window": "ACUTE_WINDOW", "chronic_window": "CHRONIC_WINDOW", "baseline_window": "BASELINE_WINDOW"}
    env_floats = {
        "red_below": "READINESS_RED_BELOW",
        "yellow_below": "READINESS_YELLOW_BELOW",
        "sleep_target_hours": "SLEEP_TARGET_HOURS",
    }
    try:
        for key, var in env_ints.items():
            if os.getenv(var):
                overrides[key] = int(os.environ[var])
        for key, var in env_floats.items():
            if os.getenv(var):
                overrides[key] = float(os.environ[var])
    except ValueError as exc:
        raise ConfigError(f"invalid numeric threshold override: {exc}") from exc

    return ThresholdConfig(rules=rules, **overrides)
