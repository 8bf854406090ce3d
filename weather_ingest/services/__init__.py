from .ingestion_service import IngestionOutcome, IngestionPipeline
from .log_query_service import LogQueryService, LogReport, parse_timestamp
from .payload_service import PayloadRetrievalService
from .scheduler import IngestionScheduler

__all__ = [
    "IngestionOutcome",
    "IngestionPipeline",
    "LogQueryService",
    "LogReport",
    "parse_timestamp",
    "PayloadRetrievalService",
    "IngestionScheduler",
]
