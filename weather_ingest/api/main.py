from typing import Optional

import asyncio
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import create_engine

from ..config import AppSettings
from ..errors import InvalidQueryError, PayloadNotFoundError, StorageUnavailableError
from ..ingestion.client import OpenWeatherMapClient, WeatherSource
from ..ingestion.models import create_tables
from ..ingestion.storage import FilesystemPayloadStore, PayloadStore, RecordStore, SqlRecordStore
from ..logging import init_logging
from ..services.ingestion_service import IngestionPipeline
from ..services.log_query_service import LogQueryService
from ..services.payload_service import PayloadRetrievalService
from ..services.scheduler import IngestionScheduler
from . import middleware
from .routes import health, ingest, logs, payload

logger = structlog.get_logger()


def build_source(settings: AppSettings) -> OpenWeatherMapClient:
    return OpenWeatherMapClient(
        base_url=settings.weather_base_url,
        city=settings.weather_city,
        api_key=settings.weather_api_key,
        timeout_connect=settings.weather_timeout_connect,
        timeout_read=settings.weather_timeout_read,
    )


def build_record_store(settings: AppSettings) -> SqlRecordStore:
    engine = create_engine(settings.database_url, future=True)
    create_tables(engine)
    return SqlRecordStore(engine, partition_key=settings.partition_key)


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    source: Optional[WeatherSource] = None,
    records: Optional[RecordStore] = None,
    payloads: Optional[PayloadStore] = None,
) -> FastAPI:
    settings = settings or AppSettings()
    init_logging(settings.log_level, settings.app_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.scheduler_enabled:
            app.state.scheduler.start()
        try:
            yield
        finally:
            await app.state.scheduler.stop()
            # A cycle already running in a worker thread outlives the cancelled task
            if not await asyncio.to_thread(app.state.pipeline.wait_idle, settings.shutdown_grace_seconds):
                logger.warning("ingestion_still_running_at_shutdown")
            close = getattr(app.state.source, "close", None)
            if callable(close):
                close()
            logger.info("app_shutdown")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Service health and uptime"},
            {"name": "ingest", "description": "Fetch and store a weather snapshot"},
            {"name": "logs", "description": "Query ingestion history and payloads"},
        ],
    )

    app.add_middleware(middleware.RequestIDMiddleware)
    app.add_exception_handler(HTTPException, middleware.http_exception_handler)
    app.add_exception_handler(RequestValidationError, middleware.validation_exception_handler)
    app.add_exception_handler(InvalidQueryError, middleware.invalid_query_handler)
    app.add_exception_handler(PayloadNotFoundError, middleware.payload_not_found_handler)
    app.add_exception_handler(StorageUnavailableError, middleware.storage_unavailable_handler)
    app.add_exception_handler(Exception, middleware.generic_exception_handler)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(ingest.router, prefix="/api", tags=["ingest"])
    app.include_router(logs.router, prefix="/api", tags=["logs"])
    app.include_router(payload.router, prefix="/api", tags=["logs"])

    app.state.settings = settings
    app.state.start_time = time.time()
    # Stores and services are built eagerly so tests without lifespan still work
    app.state.source = source if source is not None else build_source(settings)
    app.state.records = records if records is not None else build_record_store(settings)
    app.state.payloads = payloads if payloads is not None else FilesystemPayloadStore(settings.payload_dir)
    app.state.pipeline = IngestionPipeline(
        app.state.source,
        app.state.records,
        app.state.payloads,
        partition_key=settings.partition_key,
    )
    app.state.log_query_service = LogQueryService(app.state.records)
    app.state.payload_service = PayloadRetrievalService(app.state.payloads)
    app.state.scheduler = IngestionScheduler(
        app.state.pipeline,
        interval_seconds=settings.fetch_interval_seconds,
        run_on_startup=settings.run_on_startup,
    )

    return app


def main() -> None:
    import uvicorn

    s = AppSettings()
    uvicorn.run(create_app(s), host=s.host, port=s.port)


if __name__ == "__main__":
    main()
