"""Tests for the scrape scheduler and the APScheduler wrapper."""

import asyncio
import logging
from typing import Any, Callable, Dict

import pytest

from funding_radar.errors import ConflictError
from funding_radar.infra.scheduler import Scheduler
from funding_radar.models import RunSummary
from funding_radar.scheduling import (
    DAILY_JOB_ID,
    INTERVAL_JOB_ID,
    SchedulerState,
    ScrapeScheduler,
)


class GatedOrchestrator:
    """Orchestrator double whose run blocks until released."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.release.set()

    async def run(self) -> RunSummary:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        if self.fail:
            raise RuntimeError("store unavailable")
        return RunSummary(total_sources=1, successful_sources=1)


class FakeScheduler:
    def __init__(self) -> None:
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.starts = 0
        self.stops = 0

    def add_interval_job(self, func: Callable, hours=None, job_id=None, **kwargs) -> None:
        self.jobs[job_id] = {"func": func, "hours": hours}

    def add_cron_job(self, func: Callable, cron_expression: str, job_id=None, **kwargs) -> None:
        self.jobs[job_id] = {"func": func, "cron": cron_expression}

    async def start(self) -> None:
        self.starts += 1

    async def stop(self) -> None:
        self.stops += 1


class TestRunOnce:
    async def test_returns_summary_and_goes_idle(self) -> None:
        scheduler = ScrapeScheduler(GatedOrchestrator(), scheduler=FakeScheduler())

        summary = await scheduler.run_once()

        assert summary.successful_sources == 1
        assert scheduler.state is SchedulerState.IDLE
        assert scheduler.last_summary == summary

    async def test_concurrent_trigger_conflicts(self) -> None:
        orchestrator = GatedOrchestrator()
        orchestrator.release.clear()
        scheduler = ScrapeScheduler(orchestrator, scheduler=FakeScheduler())

        first = asyncio.create_task(scheduler.run_once())
        await orchestrator.started.wait()
        assert scheduler.is_running()

        with pytest.raises(ConflictError, match="already in progress"):
            await scheduler.run_once()

        orchestrator.release.set()
        await first
        assert orchestrator.calls == 1
        assert not scheduler.is_running()

    async def test_flag_released_after_failure(self) -> None:
        orchestrator = GatedOrchestrator(fail=True)
        scheduler = ScrapeScheduler(orchestrator, scheduler=FakeScheduler())

        with pytest.raises(RuntimeError):
            await scheduler.run_once()
        assert scheduler.state is SchedulerState.IDLE

        orchestrator.fail = False
        summary = await scheduler.run_once()
        assert summary.total_sources == 1


class TestTimers:
    async def test_start_schedule_registers_both_cadences_once(self) -> None:
        fake = FakeScheduler()
        scheduler = ScrapeScheduler(
            GatedOrchestrator(), scheduler=fake, interval_hours=6, daily_cron="0 6 * * *"
        )

        await scheduler.start_schedule()
        await scheduler.start_schedule()

        assert fake.starts == 1
        assert fake.jobs[INTERVAL_JOB_ID]["hours"] == 6
        assert fake.jobs[DAILY_JOB_ID]["cron"] == "0 6 * * *"

        await scheduler.stop()
        await scheduler.stop()
        assert fake.stops == 1

    async def test_timer_fire_while_running_is_skipped(self, caplog) -> None:
        fake = FakeScheduler()
        orchestrator = GatedOrchestrator()
        orchestrator.release.clear()
        scheduler = ScrapeScheduler(orchestrator, scheduler=fake)
        await scheduler.start_schedule()

        manual = asyncio.create_task(scheduler.run_once())
        await orchestrator.started.wait()

        with caplog.at_level(logging.INFO, logger="funding_radar.scheduling"):
            await fake.jobs[INTERVAL_JOB_ID]["func"]()
            await fake.jobs[DAILY_JOB_ID]["func"]()

        orchestrator.release.set()
        await manual

        assert orchestrator.calls == 1
        assert sum("Skipping" in r.getMessage() for r in caplog.records) == 2

    async def test_timer_failure_is_logged_not_raised(self, caplog) -> None:
        fake = FakeScheduler()
        scheduler = ScrapeScheduler(GatedOrchestrator(fail=True), scheduler=fake)
        await scheduler.start_schedule()

        with caplog.at_level(logging.ERROR, logger="funding_radar.scheduling"):
            await fake.jobs[DAILY_JOB_ID]["func"]()

        assert not scheduler.is_running()
        assert any("store unavailable" in r.getMessage() for r in caplog.records)


class TestSchedulerWrapper:
    def test_invalid_cron_rejected(self) -> None:
        with pytest.raises(ValueError):
            Scheduler().add_cron_job(lambda: None, "not a cron", job_id="bad")

    def test_interval_requires_a_period(self) -> None:
        with pytest.raises(ValueError):
            Scheduler().add_interval_job(lambda: None, job_id="empty")

    async def test_jobs_listed_and_removed(self) -> None:
        async def job() -> None:
            pass

        scheduler = Scheduler(timezone="UTC")
        scheduler.add_interval_job(job, hours=6, job_id="interval")
        scheduler.add_cron_job(job, "0 6 * * *", job_id="daily")
        await scheduler.start()
        try:
            jobs = scheduler.list_jobs()
            assert set(jobs) == {"interval", "daily"}
            assert jobs["daily"]["next_run"] is not None

            scheduler.remove_job("interval")
            assert set(scheduler.list_jobs()) == {"daily"}
        finally:
            await scheduler.stop()
        assert not scheduler.running
