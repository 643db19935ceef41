from __future__ import annotations

import logging
from typing import Any, Iterable

import pandas as pd
from pydantic import ValidationError

from core.logging_config import log_context
from core.models import Athlete
from core.validators import AthleteInput

logger = logging.getLogger(__name__)


def load_roster(rows: Iterable[dict[str, Any]] | pd.DataFrame) -> dict[str, Athlete]:
    """Build the athlete reference map, skipping rows that fail validation."""
    if isinstance(rows, pd.DataFrame):
        rows = rows.fillna("").to_dict("records")
    roster: dict[str, Athlete] = {}
    for row in rows:
        try:
            parsed = AthleteInput.model_validate(row)
        except ValidationError as exc:
            logger.warning("roster_row_skipped", extra=log_context(row=row, errors=len(exc.errors())))
            continue
        roster[parsed.athlete_id] = Athlete(**parsed.model_dump())
    return roster
