"""Error kinds raised by the ingestion core.

Upstream fetch failures are deliberately absent: the weather client reports
them as an unsuccessful ``FetchResult`` and the pipeline records them.
"""

from __future__ import annotations


class WeatherIngestError(Exception):
    """Base class for all service errors."""


class StorageUnavailableError(WeatherIngestError):
    """A record or payload store could not complete an operation."""

    def __init__(self, store: str, operation: str, detail: str = "") -> None:
        self.store = store
        self.operation = operation
        self.detail = detail
        message = f"{store} {operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidQueryError(WeatherIngestError, ValueError):
    """Caller supplied missing or malformed query parameters."""


class PayloadNotFoundError(WeatherIngestError, KeyError):
    """No payload is stored under the requested id."""

    def __init__(self, payload_id: str) -> None:
        self.payload_id = payload_id
        super().__init__(payload_id)

    def __str__(self) -> str:
        return "Log entry not found."
