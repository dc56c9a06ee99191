"""
In-process periodic trigger for the finalization engine.

Started from the application lifespan when FINALIZATION_INTERVAL_SECONDS > 0.
A failed run is logged and left for the next tick; the engine has already
rolled the batch back.
"""

import asyncio
import logging
from typing import Optional

from ledger_backend.app.db.session import DatabaseSessionManager
from ledger_backend.app.domain.ledger.finalization import FinalizationEngine, FinalizationResult

logger = logging.getLogger(__name__)


class FinalizationScheduler:

    def __init__(self, db_manager: DatabaseSessionManager, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.db_manager = db_manager
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[FinalizationResult]:
        try:
            async with self.db_manager.session() as db:
                return await FinalizationEngine.run(db)
        except Exception:
            # Engine already logged the traceback; keep the loop alive
            logger.warning("Scheduled finalization failed; retrying in %ss", self.interval_seconds)
            return None

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        logger.info("Starting finalization scheduler (every %ss)", self.interval_seconds)
        self._task = asyncio.create_task(self._loop(), name="ledger-finalization")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Finalization scheduler stopped")
