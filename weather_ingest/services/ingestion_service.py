from __future__ import annotations

import datetime as dt
import threading
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ..errors import StorageUnavailableError
from ..ingestion.client import FetchResult, WeatherSource
from ..ingestion.models import IngestionRecord, ensure_utc
from ..ingestion.storage import PayloadStore, RecordStore

logger = structlog.get_logger()


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class IngestionOutcome:
    record: IngestionRecord
    payload: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.record.fetch_succeeded

    @property
    def message(self) -> str:
        """Payload text on success, the error description otherwise."""
        return self.payload if self.succeeded else (self.error or "")


def describe_fetch_failure(result: FetchResult) -> str:
    info = result.status_info or (str(result.status_code) if result.status_code is not None else "unknown")
    return f"Failed to fetch weather data. FetchStatus code: {info}"


class IngestionPipeline:
    """Runs one fetch-and-store cycle per `ingest()` call.

    The record write always happens and always precedes the payload write,
    which only happens for a successful fetch. Cycles are serialised by an
    in-process lock; inside it, timestamps are clamped so they never go
    backwards, even if the wall clock does.
    """

    def __init__(
        self,
        source: WeatherSource,
        records: RecordStore,
        payloads: PayloadStore,
        partition_key: str = "WeatherInfo",
        clock: Callable[[], dt.datetime] = _utcnow,
    ) -> None:
        self.source = source
        self.records = records
        self.payloads = payloads
        self.partition_key = partition_key
        self._clock = clock
        self._lock = threading.Lock()
        self._last_timestamp: Optional[dt.datetime] = None
        self._seeded = False

    def _seed_last_timestamp(self) -> None:
        # Stores that can report their newest entry keep ordering across restarts
        latest = getattr(self.records, "latest_timestamp", None)
        if callable(latest):
            self._last_timestamp = latest()
        self._seeded = True

    def _next_timestamp(self) -> dt.datetime:
        now = ensure_utc(self._clock())
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    def wait_idle(self, timeout: float = -1) -> bool:
        """Block until no cycle is running; False if ``timeout`` expired first."""
        if not self._lock.acquire(timeout=timeout):
            return False
        self._lock.release()
        return True

    def ingest(self) -> IngestionOutcome:
        with self._lock:
            if not self._seeded:
                self._seed_last_timestamp()

            logger.info("weather_fetch_started")
            result = self.source.fetch()

            record = IngestionRecord(
                partition_key=self.partition_key,
                id=str(uuid.uuid4()),
                timestamp=self._next_timestamp(),
                fetch_succeeded=result.success,
            )

            record_written = False
            try:
                self.records.write(record)
                record_written = True
                if result.success:
                    self.payloads.write(record.id, result.body)
            except StorageUnavailableError as e:
                logger.error(
                    "ingestion_store_failed",
                    log_entry_id=record.id,
                    store=e.store,
                    operation=e.operation,
                    error=e.detail,
                    record_written=record_written,
                )
                raise

        if result.success:
            logger.info("ingestion_completed", log_entry_id=record.id, payload_bytes=len(result.body.encode("utf-8")))
            logger.debug("weather_payload", log_entry_id=record.id, payload=result.body)
            return IngestionOutcome(record=record, payload=result.body)

        error = describe_fetch_failure(result)
        logger.error("weather_fetch_failed", log_entry_id=record.id, status_code=result.status_code, error=error)
        return IngestionOutcome(record=record, error=error)
