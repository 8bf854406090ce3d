from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from .ingestion_service import IngestionOutcome, IngestionPipeline

logger = structlog.get_logger()


class IngestionScheduler:
    """Fires `IngestionPipeline.ingest` on a fixed period from the event loop.

    Each cycle runs in a worker thread so blocking store and network calls do
    not stall request handling. A failed cycle is logged and the loop moves on
    to the next tick.
    """

    def __init__(self, pipeline: IngestionPipeline, interval_seconds: float = 60.0, run_on_startup: bool = True) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.pipeline = pipeline
        self.interval_seconds = float(interval_seconds)
        self.run_on_startup = run_on_startup
        self.cycles = 0
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("scheduler_started", interval_s=self.interval_seconds, run_on_startup=self.run_on_startup)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("scheduler_stopped", cycles=self.cycles)

    async def run_once(self) -> Optional[IngestionOutcome]:
        try:
            outcome = await asyncio.to_thread(self.pipeline.ingest)
        except Exception as e:
            logger.exception("scheduled_ingestion_failed", error=str(e))
            return None
        finally:
            self.cycles += 1
        return outcome

    async def _loop(self) -> None:
        try:
            if self.run_on_startup:
                await self.run_once()
            while True:
                await asyncio.sleep(self.interval_seconds)
                await self.run_once()
        except asyncio.CancelledError:
            logger.debug("scheduler_cancelled")
            raise
