"""Time-driven work for a live board: the once-a-second tick and the
debounced save.

Both jobs run on one APScheduler AsyncIOScheduler bound to the running
asyncio loop. The jobs are coroutine functions, which the asyncio executor
runs on the loop itself, so they never interleave with board mutations.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

TICK_JOB_ID = 'board-tick'
SAVE_JOB_ID = 'board-save'
TICK_SECONDS = 1.0
SAVE_DELAY_SECONDS = 0.5


class TaskScheduler:
    """Owns the tick job and the save job; ``stop`` cancels both.

    ``scheduler`` may be supplied (tests pass a mock); otherwise one is built
    for the running loop in ``start``.
    """

    def __init__(self, on_tick: Callable[[], Any], on_save: Callable[[], Any],
                 tick_seconds: float = TICK_SECONDS, save_delay: float = SAVE_DELAY_SECONDS,
                 scheduler: Optional[AsyncIOScheduler] = None):
        self._on_tick = on_tick
        self._on_save = on_save
        self.tick_seconds = tick_seconds
        self.save_delay = save_delay
        self._scheduler = scheduler
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start ticking. Must be called from inside the asyncio loop."""
        if self._running:
            return
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop(),
                                               timezone=timezone.utc)
        self._scheduler.add_job(
            self._run_tick,
            trigger=IntervalTrigger(seconds=self.tick_seconds),
            id=TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        self._running = True
        logger.debug("Scheduler started (tick every %ss)", self.tick_seconds)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._scheduler.remove_all_jobs()
        self._scheduler.shutdown(wait=False)
        logger.debug("Scheduler stopped")

    # -------------------- debounced save --------------------
    def arm_save(self) -> bool:
        """(Re)start the quiescence window; only the last arming fires.

        Returns False when the scheduler is not running.
        """
        if not self._running:
            return False
        run_at = datetime.now(timezone.utc) + timedelta(seconds=self.save_delay)
        self._scheduler.add_job(
            self._run_save,
            trigger=DateTrigger(run_date=run_at),
            id=SAVE_JOB_ID,
            replace_existing=True,
            misfire_grace_time=None,
        )
        return True

    def cancel_save(self) -> None:
        if not self._running:
            return
        try:
            self._scheduler.remove_job(SAVE_JOB_ID)
        except JobLookupError:
            pass

    # -------------------- jobs --------------------
    async def _run_tick(self) -> None:
        self._on_tick()

    async def _run_save(self) -> None:
        logger.debug("Quiescence window elapsed; saving")
        self._on_save()
