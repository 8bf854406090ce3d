from typing import Optional

from fastapi import APIRouter, Query, Request, Response

router = APIRouter()


def _lookup_id(request: Request, *candidates: Optional[str]) -> Optional[str]:
    for value in candidates:
        if value:
            return value
    # Query keys are matched case-insensitively (logEntryid, logentryid, ...)
    for key, value in request.query_params.multi_items():
        if key.lower() == "logentryid" and value:
            return value
    return None


@router.get(
    "/payload",
    summary="Raw payload of one ingestion",
    response_class=Response,
    responses={
        200: {"description": "Payload exactly as fetched", "content": {"application/json": {}}},
        400: {"description": "logEntryId missing"},
        404: {"description": "No payload stored for this id"},
        503: {"description": "Payload store unavailable"},
    },
)
def get_payload(
    request: Request,
    log_entry_id: Optional[str] = Query(None, alias="logEntryId"),
    payload_id: Optional[str] = Query(None, alias="id", description="Alias of logEntryId"),
) -> Response:
    service = request.app.state.payload_service
    body = service.retrieve(_lookup_id(request, log_entry_id, payload_id))
    return Response(content=body, media_type="application/json; charset=utf-8")
