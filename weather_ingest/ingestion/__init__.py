"""Ingestion subpackage.

Weather source client, record/payload schema and the store adapters the
services write to and read from.
"""

from .client import FetchResult, OpenWeatherMapClient, WeatherSource
from .models import IngestionRecord, create_tables
from .storage import FilesystemPayloadStore, PayloadStore, RecordStore, SqlRecordStore

__all__ = [
    "FetchResult",
    "OpenWeatherMapClient",
    "WeatherSource",
    "IngestionRecord",
    "create_tables",
    "FilesystemPayloadStore",
    "PayloadStore",
    "RecordStore",
    "SqlRecordStore",
]
