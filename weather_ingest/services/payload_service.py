from __future__ import annotations

from typing import Optional

import structlog

from ..errors import InvalidQueryError, PayloadNotFoundError
from ..ingestion.storage import PayloadStore

logger = structlog.get_logger()


class PayloadRetrievalService:
    """Looks up the raw payload stored for a log entry id.

    An id that was never ingested and an id whose fetch failed are both
    reported as not found.
    """

    def __init__(self, payloads: PayloadStore) -> None:
        self.payloads = payloads

    def retrieve(self, payload_id: Optional[str]) -> str:
        if payload_id is None or not payload_id.strip():
            raise InvalidQueryError("logEntryId is required.")

        if not self.payloads.exists(payload_id):
            logger.info("payload_not_found", log_entry_id=payload_id)
            raise PayloadNotFoundError(payload_id)

        body = self.payloads.read(payload_id)
        logger.info("payload_retrieved", log_entry_id=payload_id, length=len(body))
        return body
