from __future__ import annotations

import datetime as dt
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import PayloadNotFoundError, StorageUnavailableError
from .models import IngestionRecord, IngestionRecordRow, ensure_utc

logger = structlog.get_logger()

# Blob names are generated ids; anything that could escape the container is rejected
_BLOB_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


class RecordStore(Protocol):
    """Append-only, time-ordered store of ingestion records."""

    def write(self, record: IngestionRecord) -> None:
        ...

    def query_range(self, start: dt.datetime, end: dt.datetime) -> List[IngestionRecord]:
        """Return records with ``start <= timestamp <= end``, newest first."""
        ...


class PayloadStore(Protocol):
    """Keyed blob store for raw payload text."""

    def write(self, payload_id: str, text: str) -> None:
        ...

    def exists(self, payload_id: str) -> bool:
        ...

    def read(self, payload_id: str) -> str:
        ...


class SqlRecordStore:
    """`RecordStore` backed by a single SQLAlchemy table.

    Every record of this service lives in one partition; queries are always
    scoped to it.
    """

    name = "record store"

    def __init__(self, engine, partition_key: str = "WeatherInfo") -> None:
        self.engine = engine
        self.partition_key = partition_key

    def write(self, record: IngestionRecord) -> None:
        try:
            with Session(self.engine) as session:
                session.add(IngestionRecordRow.from_record(record))
                session.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(self.name, "write", str(e)) from e

    def query_range(self, start: dt.datetime, end: dt.datetime) -> List[IngestionRecord]:
        stmt = (
            select(IngestionRecordRow)
            .where(IngestionRecordRow.partition_key == self.partition_key)
            .where(IngestionRecordRow.timestamp >= ensure_utc(start))
            .where(IngestionRecordRow.timestamp <= ensure_utc(end))
            .order_by(IngestionRecordRow.timestamp.desc())
        )
        try:
            with Session(self.engine) as session:
                rows = session.execute(stmt).scalars().all()
                return [r.to_record() for r in rows]
        except SQLAlchemyError as e:
            raise StorageUnavailableError(self.name, "query", str(e)) from e

    def latest_timestamp(self) -> Optional[dt.datetime]:
        stmt = select(func.max(IngestionRecordRow.timestamp)).where(
            IngestionRecordRow.partition_key == self.partition_key
        )
        try:
            with Session(self.engine) as session:
                latest = session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(self.name, "query", str(e)) from e
        return ensure_utc(latest) if latest is not None else None


class FilesystemPayloadStore:
    """`PayloadStore` keeping one UTF-8 file per payload id in a directory.

    Notes:
    - The container directory is created if missing.
    - Writes land in a hidden temp file first and are moved into place with
      ``os.replace``, so readers never observe a partial payload.
    - Ids that are not plain blob names never exist.
    """

    name = "payload store"

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(self.name, "init", str(e)) from e

    def _path(self, payload_id: str) -> Optional[Path]:
        if not payload_id or not _BLOB_NAME.match(payload_id):
            return None
        return self.root / payload_id

    def write(self, payload_id: str, text: str) -> None:
        path = self._path(payload_id)
        if path is None:
            raise ValueError(f"invalid payload id: {payload_id!r}")
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=self.root)
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                    f.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageUnavailableError(self.name, "write", str(e)) from e

    def exists(self, payload_id: str) -> bool:
        path = self._path(payload_id)
        if path is None:
            return False
        try:
            return path.is_file()
        except OSError as e:
            raise StorageUnavailableError(self.name, "exists", str(e)) from e

    def read(self, payload_id: str) -> str:
        path = self._path(payload_id)
        if path is None:
            raise PayloadNotFoundError(payload_id)
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError:
            raise PayloadNotFoundError(payload_id) from None
        except OSError as e:
            raise StorageUnavailableError(self.name, "read", str(e)) from e
