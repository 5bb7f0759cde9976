"""
Recurring background crawl scheduling.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional

import structlog

from .config.config import SchedulerConfig
from .orchestrator import CrawlOrchestrator

logger = structlog.get_logger(__name__)


def is_off_peak(hour: int, start_hour: int, end_hour: int) -> bool:
    """Whether ``hour`` falls in the [start, end) window, which may wrap midnight."""
    if start_hour == end_hour:
        return True
    if start_hour < end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


class AutoCrawlScheduler:
    """
    Starts a crawl job every ``crawl_interval_ms``.

    A tick is skipped while a job is still running, and outside the off-peak
    window unless ``ignore_time_of_day`` is set. Stopping only prevents new
    jobs; a running job finishes on its own.
    """

    def __init__(
        self,
        orchestrator: CrawlOrchestrator,
        config: Optional[SchedulerConfig] = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.orchestrator = orchestrator
        self.config = config or SchedulerConfig()
        self._sleep = sleep
        self._now = now
        self._running = False
        self._loop_task: Optional[asyncio.Task[None]] = None
        self.logger = logger.bind(component="AutoCrawlScheduler")

    def is_running(self) -> bool:
        return self._running

    def in_off_peak_window(self) -> bool:
        return is_off_peak(self._now().hour, self.config.off_peak_start_hour, self.config.off_peak_end_hour)

    async def start(self) -> Optional[str]:
        """
        Enable auto-crawling and schedule the recurring loop.

        Returns:
            The id of the job started immediately, if any
        """
        if self._loop_task is not None:
            await self._cancel_loop()

        self._running = True
        self.logger.info("Auto-crawl started", interval_ms=self.config.crawl_interval_ms)

        job_id = await self.tick(ignore_time_of_day=self.config.run_immediately)
        self._loop_task = asyncio.create_task(self._loop(), name="auto-crawl-scheduler")
        return job_id

    async def stop(self) -> None:
        self._running = False
        await self._cancel_loop()
        self.logger.info("Auto-crawl stopped")

    async def _cancel_loop(self) -> None:
        task, self._loop_task = self._loop_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _loop(self) -> None:
        while self._running:
            await self._sleep(self.config.crawl_interval_ms / 1000.0)
            try:
                await self.tick()
            except Exception as e:
                self.logger.error("Scheduled crawl failed to start", error=str(e), exc_info=True)

    async def tick(self, ignore_time_of_day: bool = False) -> Optional[str]:
        """Run one scheduling decision; returns the new job id or None if skipped."""
        if not self._running:
            return None
        if self.orchestrator.has_running_job():
            self.logger.info("Skipping scheduled crawl, job already running")
            return None
        if not (ignore_time_of_day or self.config.ignore_time_of_day or self.in_off_peak_window()):
            self.logger.debug("Skipping scheduled crawl outside off-peak hours", hour=self._now().hour)
            return None

        self.orchestrator.cache.cleanup()
        return await self.orchestrator.start_crawling(self.config.default_source_label)
