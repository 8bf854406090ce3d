from __future__ import annotations

import time
import uuid

import structlog
from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import InvalidQueryError, PayloadNotFoundError, StorageUnavailableError
from ..schemas.errors import ErrorDetail, ErrorResponse

logger = structlog.get_logger()


class RequestIDMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        request_id = uuid.uuid4().hex
        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id

        start = time.perf_counter()
        status = {"code": 0}

        async def send_wrapper(message):
            if message.get("type") == "http.response.start":
                status["code"] = message.get("status", 0)
                headers = message.setdefault("headers", [])
                headers.append((b"x-request-id", request_id.encode()))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            dur_ms = int((time.perf_counter() - start) * 1000)
            logger.info(
                "request_completed",
                method=scope.get("method", ""),
                path=scope.get("path", ""),
                status=status["code"],
                duration_ms=dur_ms,
                request_id=request_id,
            )


def _error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    req_id = getattr(getattr(request, "state", None), "request_id", None) or ""
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, request_id=req_id))
    # Header added by RequestIDMiddleware; avoid duplicates here
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = "service_unavailable" if exc.status_code == 503 else "http_error"
    return _error(request, exc.status_code, code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(request, 400, "bad_request", str(exc.errors()))


async def invalid_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
    return _error(request, 400, "bad_request", str(exc))


async def payload_not_found_handler(request: Request, exc: PayloadNotFoundError) -> JSONResponse:
    return _error(request, 404, "not_found", str(exc))


async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    logger.error("storage_unavailable", store=exc.store, operation=exc.operation, error=exc.detail)
    return _error(request, 503, "storage_unavailable", str(exc))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=str(exc))
    return _error(request, 500, "internal_error", str(exc))
