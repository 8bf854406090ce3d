from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass
from typing import Any, Dict

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def ensure_utc(value: dt.datetime) -> dt.datetime:
    """Return ``value`` as a timezone-aware UTC datetime (naive means UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


@dataclass(frozen=True)
class IngestionRecord:
    """Status entry written once per ingestion cycle.

    ``id`` doubles as the payload store key. Records are never updated; a
    successful record always has a payload under the same id and a failed
    one never does.
    """

    partition_key: str
    id: str
    timestamp: dt.datetime
    fetch_succeeded: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "partitionKey": self.partition_key,
            "id": self.id,
            "timestamp": ensure_utc(self.timestamp).isoformat(),
            "fetchSucceeded": self.fetch_succeeded,
        }

    def to_log_line(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for the record store."""


class IngestionRecordRow(Base):
    """Table row backing `IngestionRecord`.

    Composite primary key: (partition_key, row_key). ``timestamp`` is stored
    in UTC and indexed for range queries.
    """

    __tablename__ = "weather_info"

    partition_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    row_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    fetch_succeeded: Mapped[bool] = mapped_column(Boolean, nullable=False)

    @classmethod
    def from_record(cls, record: IngestionRecord) -> "IngestionRecordRow":
        return cls(
            partition_key=record.partition_key,
            row_key=record.id,
            timestamp=ensure_utc(record.timestamp),
            fetch_succeeded=record.fetch_succeeded,
        )

    def to_record(self) -> IngestionRecord:
        return IngestionRecord(
            partition_key=self.partition_key,
            id=self.row_key,
            timestamp=ensure_utc(self.timestamp),
            fetch_succeeded=bool(self.fetch_succeeded),
        )


def create_tables(engine) -> None:
    """Create the record table if it does not exist.

    Parameters
    ----------
    engine : sqlalchemy.Engine
        SQLAlchemy engine for the target database.
    """
    Base.metadata.create_all(bind=engine)
