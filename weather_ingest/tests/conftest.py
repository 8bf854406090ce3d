# Ensure repo root is on sys.path for absolute imports like `weather_ingest.services.*`
import os
import sys
import threading
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from weather_ingest.errors import PayloadNotFoundError  # noqa: E402
from weather_ingest.ingestion.client import FetchResult  # noqa: E402
from weather_ingest.ingestion.models import create_tables  # noqa: E402
from weather_ingest.ingestion.storage import FilesystemPayloadStore, SqlRecordStore  # noqa: E402

SAMPLE_PAYLOAD = '{"coord":{"lon":-0.1257,"lat":51.5085},"weather":[{"id":804,"main":"Clouds"}],"name":"London","cod":200}'


class StaticWeatherSource:
    """In-memory `WeatherSource` replaying canned results (last one repeats)."""

    def __init__(self, *results: FetchResult) -> None:
        self.results = list(results) or [ok_result()]
        self.calls = 0
        self.closed = False

    def fetch(self) -> FetchResult:
        idx = min(self.calls, len(self.results) - 1)
        self.calls += 1
        return self.results[idx]

    def close(self) -> None:
        self.closed = True


class InMemoryRecordStore:
    def __init__(self, events: Optional[List[str]] = None) -> None:
        self.items = []
        self.events = events if events is not None else []
        self._lock = threading.Lock()

    def write(self, record) -> None:
        with self._lock:
            self.events.append(f"record:{record.id}")
            self.items.append(record)

    def query_range(self, start, end):
        hits = [r for r in self.items if start <= r.timestamp <= end]
        return sorted(hits, key=lambda r: r.timestamp, reverse=True)


class InMemoryPayloadStore:
    def __init__(self, events: Optional[List[str]] = None) -> None:
        self.blobs: Dict[str, str] = {}
        self.events = events if events is not None else []
        self.reads = 0

    def write(self, payload_id: str, text: str) -> None:
        self.events.append(f"payload:{payload_id}")
        self.blobs[payload_id] = text

    def exists(self, payload_id: str) -> bool:
        return payload_id in self.blobs

    def read(self, payload_id: str) -> str:
        self.reads += 1
        try:
            return self.blobs[payload_id]
        except KeyError:
            raise PayloadNotFoundError(payload_id) from None


def ok_result(body: str = SAMPLE_PAYLOAD) -> FetchResult:
    return FetchResult(body=body, success=True, status_code=200, status_info="200 OK")


def failed_result(code: int = 401, reason: str = "Unauthorized") -> FetchResult:
    return FetchResult(body="", success=False, status_code=code, status_info=f"{code} {reason}")


@pytest.fixture
def sqlite_engine(tmp_path):
    # Temporary sqlite file avoids in-memory connection scoping issues
    engine = create_engine(f"sqlite:///{tmp_path / 'records.db'}", future=True)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def record_store(sqlite_engine):
    return SqlRecordStore(sqlite_engine, partition_key="WeatherInfo")


@pytest.fixture
def payload_store(tmp_path):
    return FilesystemPayloadStore(tmp_path / "weatherdata")
