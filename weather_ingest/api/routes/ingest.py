from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

import structlog

router = APIRouter()
logger = structlog.get_logger()

LOG_ENTRY_HEADER = "x-log-entry-id"


@router.api_route(
    "/ingest",
    methods=["GET", "POST"],
    response_class=PlainTextResponse,
    summary="Run one ingestion cycle now",
    responses={
        200: {"description": "Raw weather payload that was stored", "content": {"text/plain": {}}},
        502: {"description": "Upstream fetch failed; the failure was recorded", "content": {"text/plain": {}}},
        503: {"description": "Record or payload store unavailable"},
    },
)
def ingest(request: Request) -> PlainTextResponse:
    pipeline = request.app.state.pipeline
    logger.info("ingest_requested")
    outcome = pipeline.ingest()
    return PlainTextResponse(
        content=outcome.message,
        status_code=200 if outcome.succeeded else 502,
        headers={LOG_ENTRY_HEADER: outcome.record.id},
    )
