"""
Main entry point for the funding radar with scheduling support.

SCHEDULER_MODE=disabled runs a single pass and exits; anything else registers
the six-hourly and daily cadences and runs until SIGINT/SIGTERM.
"""

import asyncio
import json
import logging
import os
import signal
import sys

from dotenv import load_dotenv

# Add project root to PYTHONPATH so imports work when running this script directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from funding_radar.config import Settings, load_config, seed_sources
from funding_radar.interfaces import OpportunityStore
from funding_radar.orchestrator import RunOrchestrator
from funding_radar.scheduling import ScrapeScheduler
from funding_radar.store import InMemoryStore, SqliteStore


logger = logging.getLogger(__name__)


async def build_store(settings: Settings) -> OpportunityStore:
    if settings.db_path:
        store = SqliteStore(settings.db_path)
        await store.connect()
        logger.info(f"Using SQLite store at {settings.db_path}")
    else:
        store = InMemoryStore()
        logger.info("Using in-memory store (set FUNDING_RADAR_DB to persist)")
    count = await seed_sources(store, settings)
    logger.info(f"Registered {count} source(s)")
    return store


def build_orchestrator(store: OpportunityStore, settings: Settings) -> RunOrchestrator:
    return RunOrchestrator(
        store,
        adapter_options=settings.adapter_options(),
        batch_size=settings.batch_size,
        batch_delay=settings.batch_delay_s,
    )


async def run_without_scheduler(settings: Settings) -> None:
    """Run one pass and print the summary."""
    store = await build_store(settings)
    try:
        summary = await build_orchestrator(store, settings).run()
        print(json.dumps(summary.to_payload(), indent=2))
    finally:
        if isinstance(store, SqliteStore):
            await store.close()


async def main():
    """Main entry point with scheduler support."""
    load_dotenv()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s"
    )

    settings = load_config()
    if not settings.sources:
        logger.warning("No sources configured - runs will be empty")

    scheduler_mode = os.getenv("SCHEDULER_MODE", "enabled")
    if scheduler_mode == "disabled":
        logger.info("Starting funding radar (one-time run)...")
        await run_without_scheduler(settings)
        return

    logger.info("Starting funding radar with scheduler...")
    store = await build_store(settings)
    scrape_scheduler = ScrapeScheduler(
        build_orchestrator(store, settings),
        interval_hours=settings.interval_hours,
        daily_cron=settings.daily_cron,
        timezone=settings.timezone,
    )

    # Setup graceful shutdown
    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        asyncio.get_running_loop().add_signal_handler(sig, signal_handler)

    try:
        await scrape_scheduler.start_schedule()
        for job_id, job in scrape_scheduler.scheduler.list_jobs().items():
            logger.info(f"  - {job_id}: next run {job['next_run']}")

        if os.getenv("RUN_ON_STARTUP", "true").lower() in ("1", "true", "yes"):
            summary = await scrape_scheduler.run_once()
            logger.info(f"Startup run: {summary.to_payload()}")

        await stop_event.wait()

    except Exception as e:
        logger.error(f"Error in main loop: {e}", exc_info=True)
    finally:
        logger.info("Shutting down...")
        await scrape_scheduler.stop()
        if isinstance(store, SqliteStore):
            await store.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
