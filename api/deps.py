from __future__ import annotations

from functools import lru_cache

from core.config import ThresholdConfig, load_threshold_config


@lru_cache(maxsize=1)
def get_threshold_config() -> ThresholdConfig:
    """Resolved once per process; a bad thresholds file fails the first request loudly."""
    return load_threshold_config()
