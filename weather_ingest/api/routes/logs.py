from typing import Optional

from fastapi import APIRouter, Query, Request, Response

router = APIRouter()


@router.get(
    "/logs",
    summary="Ingestion status history",
    response_class=Response,
    responses={
        200: {
            "description": "Line-delimited JSON, newest first",
            "content": {
                "application/json": {
                    "example": '{"partitionKey":"WeatherInfo","id":"9b1d...","timestamp":"2025-03-01T10:01:00+00:00","fetchSucceeded":true}'
                }
            },
        },
        204: {"description": "No records in range"},
        400: {"description": "Missing or malformed range"},
        503: {"description": "Record store unavailable"},
    },
)
def get_logs(
    request: Request,
    start: Optional[str] = Query(None, alias="from", description="Inclusive lower bound (ISO-8601)"),
    end: Optional[str] = Query(None, alias="to", description="Inclusive upper bound (ISO-8601)"),
) -> Response:
    service = request.app.state.log_query_service
    report = service.query_strings(start, end)
    if not report.found:
        return Response(status_code=204)
    return Response(content=report.body, media_type="application/json; charset=utf-8")
