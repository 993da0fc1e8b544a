"""
Reconciliation Scheduler — background loops for the delay escalator and
the overdue rebooker.

Both loops run as asyncio tasks started from the FastAPI lifespan. Ticks
call the synchronous services in a worker thread. A tick that raises is
logged and the loop carries on; stop() cancels both tasks.
"""

import asyncio
import contextlib
from typing import Callable, Optional

import structlog

from config import settings
from services.delay_escalator import DelayEscalator, get_delay_escalator
from services.overdue_rebooker import OverdueRebooker, get_overdue_rebooker

logger = structlog.get_logger(__name__)


class ReconciliationScheduler:
    """
    Usage:
        scheduler = ReconciliationScheduler()
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        escalator: Optional[DelayEscalator] = None,
        rebooker: Optional[OverdueRebooker] = None,
        escalation_poll_seconds: Optional[float] = None,
        rebook_interval_seconds: Optional[float] = None,
    ):
        self.escalator = escalator or get_delay_escalator()
        self.rebooker = rebooker or get_overdue_rebooker()
        self.escalation_poll_seconds = escalation_poll_seconds or settings.escalation_poll_seconds
        self.rebook_interval_seconds = rebook_interval_seconds or settings.rebook_interval_seconds
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def _loop(self, name: str, tick: Callable, interval: float) -> None:
        logger.info("reconciliation_loop_started", loop=name, interval_seconds=interval)
        while True:
            try:
                await asyncio.to_thread(tick)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("reconciliation_tick_failed", loop=name, error=str(e), exc_info=True)
            await asyncio.sleep(interval)

    async def start(self) -> None:
        if self.running:
            logger.debug("reconciliation_already_running")
            return
        self._tasks = [
            asyncio.create_task(
                self._loop("escalation", self.escalator.on_tick, self.escalation_poll_seconds),
                name="delay-escalation-loop",
            ),
            asyncio.create_task(
                self._loop("rebook", self.rebooker.run_once, self.rebook_interval_seconds),
                name="overdue-rebook-loop",
            ),
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        logger.info("reconciliation_stopped")


# Singleton instance
_scheduler: Optional[ReconciliationScheduler] = None


def get_reconciliation_scheduler() -> ReconciliationScheduler:
    """Get or create ReconciliationScheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReconciliationScheduler()
    return _scheduler


def reset_reconciliation_scheduler() -> None:
    global _scheduler
    _scheduler = None
