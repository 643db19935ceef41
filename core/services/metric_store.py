"""Per-domain record index keyed by (athlete_id, date).

Replaces wide-table joins: each domain keeps its own mapping, so a lookup
for one athlete-day can never fan out into duplicated rows. Rows are
validated on the way in; anything that fails validation is logged and
skipped without interrupting the rest of the load.
"""

from __future__ import annotations

import datetime as dt
import logging
from bisect import bisect_right
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import pandas as pd
from pydantic import ValidationError

from core.logging_config import log_context
from core.models import DailyMetricRecord, Domain
from core.validators import DOMAIN_MODELS

logger = logging.getLogger(__name__)


@dataclass
class SkippedRecord:
    """A row rejected as malformed."""

    domain: str
    athlete_id: Any
    date: Any
    errors: list[str] = field(default_factory=list)


def _clean_value(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, (list, tuple, dict)) and pd.isna(value):
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def _error_summary(exc: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in e['loc']) or 'record'}: {e['msg']}" for e in exc.errors()]


class MetricStore:
    """Read-only (after load) source of time-ordered per-athlete daily records."""

    def __init__(self) -> None:
        self._records: dict[Domain, dict[tuple[str, dt.date], DailyMetricRecord]] = {d: {} for d in Domain}
        self._dates: dict[Domain, dict[str, list[dt.date]]] = {d: defaultdict(list) for d in Domain}
        self.skipped: list[SkippedRecord] = []

    # -- loading ----------------------------------------------------------

    def add_row(self, domain: Domain | str, row: dict[str, Any]) -> Optional[DailyMetricRecord]:
        """Validate and index one row. Returns None when the row was skipped."""
        clean = {k: _clean_value(v) for k, v in row.items()}
        try:
            dom = Domain(domain)
        except ValueError:
            self._skip(str(domain), clean, [f"domain: unknown domain {domain!r}"])
            return None

        model = DOMAIN_MODELS[dom]
        try:
            parsed = model.model_validate(clean)
        except ValidationError as exc:
            self._skip(dom.value, clean, _error_summary(exc))
            return None

        fields = parsed.model_dump(exclude={"athlete_id", "date"}, exclude_none=True)
        record = DailyMetricRecord(athlete_id=parsed.athlete_id, date=parsed.date, domain=dom, fields=fields)
        self._put(record)
        return record

    def add_rows(self, domain: Domain | str, rows: Iterable[dict[str, Any]]) -> int:
        """Add many rows of one domain; returns how many were accepted."""
        return sum(1 for row in rows if self.add_row(domain, row) is not None)

    def add_frame(self, domain: Domain | str, frame: pd.DataFrame) -> int:
        """Add every row of a parsed DataFrame (e.g. a CSV export) for one domain."""
        if frame.empty:
            return 0
        return self.add_rows(domain, frame.to_dict("records"))

    def add_mixed(self, rows: Iterable[dict[str, Any]]) -> int:
        """Add rows that each carry their own ``domain`` key."""
        accepted = 0
        for row in rows:
            payload = {k: v for k, v in row.items() if k != "domain"}
            if self.add_row(row.get("domain", ""), payload) is not None:
                accepted += 1
        return accepted

    def _put(self, record: DailyMetricRecord) -> None:
        key = (record.athlete_id, record.date)
        index = self._records[record.domain]
        if key in index:
            logger.warning(
                "duplicate_record_replaced",
                extra=log_context(athlete_id=record.athlete_id, date=record.date, domain=record.domain.value),
            )
        else:
            dates = self._dates[record.domain][record.athlete_id]
            dates.append(record.date)
            dates.sort()
        index[key] = record

    def _skip(self, domain: str, row: dict[str, Any], errors: list[str]) -> None:
        skipped = SkippedRecord(domain=domain, athlete_id=row.get("athlete_id"), date=row.get("date"), errors=errors)
        self.skipped.append(skipped)
        logger.warning(
            "malformed_record_skipped",
            extra=log_context(athlete_id=skipped.athlete_id, date=skipped.date, domain=domain, errors=errors),
        )

    # -- reading ----------------------------------------------------------

    def get(self, domain: Domain, athlete_id: str, day: dt.date) -> Optional[DailyMetricRecord]:
        return self._records[domain].get((athlete_id, day))

    def athlete_ids(self, end: dt.date | None = None) -> list[str]:
        """Athletes with at least one record, on or before ``end`` when given."""
        ids: set[str] = set()
        for by_athlete in self._dates.values():
            ids.update(a for a, dates in by_athlete.items() if dates and (end is None or dates[0] <= end))
        return sorted(ids)

    def first_date(self, domain: Domain, athlete_id: str, end: dt.date | None = None) -> Optional[dt.date]:
        dates = self._dates[domain].get(athlete_id) or []
        if not dates or (end is not None and dates[0] > end):
            return None
        return dates[0]

    def last_date(self, domain: Domain, athlete_id: str, end: dt.date) -> Optional[dt.date]:
        """Most recent record date on or before ``end``."""
        dates = self._dates[domain].get(athlete_id) or []
        i = bisect_right(dates, end)
        return dates[i - 1] if i else None

    def records(
        self,
        domain: Domain,
        athlete_id: str,
        end: dt.date,
        start: dt.date | None = None,
    ) -> list[DailyMetricRecord]:
        """Records for one athlete with ``start <= date <= end``, oldest first.

        Nothing dated after ``end`` is ever returned.
        """
        dates = self._dates[domain].get(athlete_id) or []
        index = self._records[domain]
        return [index[(athlete_id, d)] for d in dates if d <= end and (start is None or d >= start)]

    def series(
        self,
        domain: Domain,
        athlete_id: str,
        metric: str,
        end: dt.date,
        start: dt.date | None = None,
    ) -> dict[dt.date, float]:
        """Date -> value for one field, skipping days where it is absent."""
        out: dict[dt.date, float] = {}
        for rec in self.records(domain, athlete_id, end, start):
            value = rec.get(metric)
            if value is not None:
                out[rec.date] = float(value)
        return out

    def __len__(self) -> int:
        return sum(len(index) for index in self._records.values())
