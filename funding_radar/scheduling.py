"""
Scrape scheduler – timer cadences plus a single-flight manual trigger.

At most one run is in flight at any time.  A manual trigger while a run is in
progress fails with :class:`ConflictError`; a timer that fires meanwhile is
skipped and logged.
"""

import logging
from enum import Enum
from typing import Optional

from .errors import ConflictError
from .infra.scheduler import Scheduler
from .models import RunSummary
from .orchestrator import RunOrchestrator

logger = logging.getLogger(__name__)

INTERVAL_JOB_ID = "funding-radar-interval"
DAILY_JOB_ID = "funding-radar-daily"


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class ScrapeScheduler:
    """Owns the running flag and wires the orchestrator to the timers."""

    def __init__(
        self,
        orchestrator: RunOrchestrator,
        scheduler: Optional[Scheduler] = None,
        *,
        interval_hours: int = 6,
        daily_cron: str = "0 6 * * *",
        timezone: str = "UTC",
    ) -> None:
        self.orchestrator = orchestrator
        self.scheduler = scheduler or Scheduler(timezone=timezone)
        self.interval_hours = interval_hours
        self.daily_cron = daily_cron
        self.state = SchedulerState.IDLE
        self.last_summary: Optional[RunSummary] = None
        self._scheduled = False

    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    # ---------------------------------------------- #
    async def run_once(self) -> RunSummary:
        """Run one pass now.

        Raises:
            ConflictError: If a pass is already in progress
        """
        if self.is_running():
            raise ConflictError()
        logger.info("Manual scrape triggered")
        return await self._guarded_run()

    async def _guarded_run(self) -> RunSummary:
        # check and set happen without an await in between
        self.state = SchedulerState.RUNNING
        try:
            summary = await self.orchestrator.run()
            self.last_summary = summary
            return summary
        finally:
            self.state = SchedulerState.IDLE

    async def _on_timer(self, trigger: str) -> None:
        if self.is_running():
            logger.info(f"Skipping {trigger} scrape: a run is already in progress")
            return
        logger.info(f"Starting {trigger} scrape")
        try:
            await self._guarded_run()
        except Exception as e:
            logger.error(f"{trigger.capitalize()} scrape failed: {e}", exc_info=True)

    async def _on_interval(self) -> None:
        await self._on_timer("interval")

    async def _on_daily(self) -> None:
        await self._on_timer("daily")

    # ---------------------------------------------- #
    async def start_schedule(self) -> None:
        """Register both cadences and start the timers (idempotent)."""
        if self._scheduled:
            return

        self.scheduler.add_interval_job(
            self._on_interval,
            hours=self.interval_hours,
            job_id=INTERVAL_JOB_ID,
            name="Funding scrape (interval)",
        )
        self.scheduler.add_cron_job(
            self._on_daily,
            self.daily_cron,
            job_id=DAILY_JOB_ID,
            name="Funding scrape (daily)",
        )
        await self.scheduler.start()
        self._scheduled = True
        logger.info(
            f"Scheduled scrapes every {self.interval_hours}h and at '{self.daily_cron}'"
        )

    async def stop(self) -> None:
        if not self._scheduled:
            return
        await self.scheduler.stop()
        self._scheduled = False
        logger.info("Scrape schedule stopped")
