"""Background task running the auto-validation sweep on an interval."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from . import config
from .db import get_session_factory
from .services.auto_validation import SweepReport, validate_expired_matches
from .time_utils import utcnow

logger = logging.getLogger(__name__)


class AutoValidationScheduler:
    def __init__(self, session_factory=None, interval_seconds: float | None = None):
        self._session_factory = session_factory
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else config.AUTO_VALIDATION_INTERVAL_SECONDS
        )
        self._task: asyncio.Task | None = None
        self.last_run_at: datetime | None = None
        self.last_report: SweepReport | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def session_factory(self):
        return self._session_factory or get_session_factory()

    async def run_now(self, now: datetime | None = None) -> SweepReport:
        report = await validate_expired_matches(self.session_factory, now=now)
        self.last_run_at = now or utcnow()
        self.last_report = report
        return report

    async def _loop(self) -> None:
        logger.info(
            "Auto-validation scheduler started (every %.0fs)", self.interval_seconds
        )
        while True:
            try:
                await self.run_now()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Auto-validation sweep failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="auto-validation")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Auto-validation scheduler stopped")
