from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional

import pandas as pd
import structlog

from ..errors import InvalidQueryError
from ..ingestion.models import ensure_utc
from ..ingestion.storage import RecordStore

logger = structlog.get_logger()


def parse_timestamp(value: Optional[str], name: str) -> dt.datetime:
    """Parse a query-string timestamp into an aware UTC datetime.

    Accepts ISO-8601 and the other date-time spellings pandas understands
    (``2025-03-01``, ``2025-03-01T10:00:00Z``, ``3/1/2025 10:00:00 AM``).
    Values without an offset are taken as UTC. Relative keywords such as
    ``now`` or ``today`` are rejected: a bound must start with a digit.
    """
    if value is None or not value.strip():
        raise InvalidQueryError(f"'{name}' is required.")
    if not value.strip()[0].isdigit():
        raise InvalidQueryError(f"'{name}' is not a valid timestamp: {value!r}")
    try:
        ts = pd.Timestamp(value.strip())
    except (ValueError, TypeError, OverflowError) as e:
        raise InvalidQueryError(f"'{name}' is not a valid timestamp: {value!r}") from e
    if pd.isna(ts):
        raise InvalidQueryError(f"'{name}' is not a valid timestamp: {value!r}")
    return ensure_utc(ts.to_pydatetime())


@dataclass(frozen=True)
class LogReport:
    found: bool
    body: str = ""
    count: int = 0


class LogQueryService:
    def __init__(self, records: RecordStore) -> None:
        self.records = records

    def query(self, start: dt.datetime, end: dt.datetime) -> LogReport:
        start, end = ensure_utc(start), ensure_utc(end)
        if start > end:
            # An inverted range is valid and simply matches nothing
            logger.info("logs_query_empty", start=start.isoformat(), end=end.isoformat())
            return LogReport(found=False)

        records = self.records.query_range(start, end)
        if not records:
            logger.info("logs_query_empty", start=start.isoformat(), end=end.isoformat())
            return LogReport(found=False)

        # Stores already sort, but the report guarantees newest first regardless
        ordered = sorted(records, key=lambda r: ensure_utc(r.timestamp), reverse=True)
        body = "\n".join(r.to_log_line() for r in ordered)
        logger.info("logs_query_completed", start=start.isoformat(), end=end.isoformat(), count=len(ordered))
        return LogReport(found=True, body=body, count=len(ordered))

    def query_strings(self, start: Optional[str], end: Optional[str]) -> LogReport:
        return self.query(parse_timestamp(start, "from"), parse_timestamp(end, "to"))
