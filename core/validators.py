"""Pydantic validation models for every record entering the metric store."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.models import Domain


class _RecordBase(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    athlete_id: str = Field(min_length=1, max_length=64)
    date: dt.date

    @field_validator("athlete_id", mode="before")
    @classmethod
    def normalize_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v.strip() if isinstance(v, str) else v


class WellnessRecordInput(_RecordBase):
    # 0-10 scales are not upper-bounded here; the scorer clamps them.
    sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)
    soreness_0_10: Optional[float] = Field(default=None, ge=0)
    fatigue_0_10: Optional[float] = Field(default=None, ge=0)
    mood_0_10: Optional[float] = Field(default=None, ge=0)
    stress_0_10: Optional[float] = Field(default=None, ge=0)
    pain_knee_0_10: Optional[float] = Field(default=None, ge=0)


class LoadRecordInput(_RecordBase):
    session_type: Optional[str] = Field(default=None, max_length=32)
    minutes: Optional[float] = Field(default=None, ge=0)
    player_load: Optional[float] = Field(default=None, ge=0)
    distance_m: Optional[float] = Field(default=None, ge=0)
    hid_m: Optional[float] = Field(default=None, ge=0)
    accel_hi_count: Optional[float] = Field(default=None, ge=0)
    decel_hi_count: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _derive_player_load(self):
        if self.player_load is None:
            if self.distance_m is None:
                raise ValueError("load record needs player_load or distance_m")
            self.player_load = round(
                self.distance_m / 100
                + (self.accel_hi_count or 0) * 1.5
                + (self.decel_hi_count or 0) * 1.5
                + (self.hid_m or 0) / 40,
                1,
            )
        return self


class ForcePlateRecordInput(_RecordBase):
    test_type: str = Field(default="CMJ", max_length=16)
    jump_height_cm: Optional[float] = Field(default=None, gt=0, le=150)
    takeoff_velocity_m_s: Optional[float] = Field(default=None, gt=0)
    rsi_mod: Optional[float] = Field(default=None, gt=0)
    asymmetry_pct: Optional[float] = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def _has_measurement(self):
        if self.jump_height_cm is None and self.rsi_mod is None and self.asymmetry_pct is None:
            raise ValueError("force plate record has no measurement")
        return self


class WearableRecordInput(_RecordBase):
    steps: Optional[int] = Field(default=None, ge=0)
    active_minutes: Optional[float] = Field(default=None, ge=0)
    load_proxy: Optional[float] = Field(default=None, ge=0)
    symmetry_proxy: Optional[float] = Field(default=None, ge=0, le=1)
    impact_proxy: Optional[float] = Field(default=None, ge=0)


DOMAIN_MODELS: dict[Domain, type[_RecordBase]] = {
    Domain.WELLNESS: WellnessRecordInput,
    Domain.LOAD: LoadRecordInput,
    Domain.FORCE_PLATE: ForcePlateRecordInput,
    Domain.WEARABLE: WearableRecordInput,
}


class AthleteInput(BaseModel):
    athlete_id: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=120)
    position: str = Field(default="", max_length=8)
    role_tier: str = Field(default="", max_length=20)

    @field_validator("role_tier")
    @classmethod
    def valid_role_tier(cls, v):
        allowed = {"", "Starter", "Rotation", "Bench"}
        if v not in allowed:
            raise ValueError(f"role_tier must be one of {allowed}")
        return v
