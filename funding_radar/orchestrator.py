"""
Run orchestrator – one pass over every active source.

Sources are fetched in small concurrent batches.  Each source is processed
(dedup → store → audit) as soon as its own fetch completes, one source at a
time, so every dedup decision sees everything stored before it.
"""

import asyncio
import logging
import traceback
from typing import Callable, List, Optional, Sequence, Tuple

from .adapters import AdapterOptions, create_adapter
from .dedup import DedupIndex
from .interfaces import OpportunityStore, Sink, SourceAdapter
from .models import (
    ActivityRecord,
    FetchResult,
    PersistedOpportunity,
    RunStatus,
    RunSummary,
    Source,
    SourceCategory,
    SourceReport,
    utcnow,
)

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[SourceCategory, Optional[AdapterOptions]], SourceAdapter]


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class RunOrchestrator:
    """Drives adapters, the dedup engine and the store for one run."""

    def __init__(
        self,
        store: OpportunityStore,
        *,
        adapter_factory: AdapterFactory = create_adapter,
        adapter_options: Optional[AdapterOptions] = None,
        batch_size: int = 3,
        batch_delay: float = 3.0,
        sinks: Sequence[Sink] = (),
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.sinks = list(sinks)
        self._adapter_factory = adapter_factory
        self._adapter_options = adapter_options
        self._process_lock = asyncio.Lock()

    # ---------------------------------------------- #
    async def run(self) -> RunSummary:
        sources = await self.store.list_active_sources()
        logger.info(f"Starting run over {len(sources)} active source(s)")

        reports: List[SourceReport] = []
        for start in range(0, len(sources), self.batch_size):
            batch = sources[start:start + self.batch_size]
            logger.info(
                "Batch %d: %s",
                start // self.batch_size + 1,
                ", ".join(s.name for s in batch),
            )
            reports.extend(await asyncio.gather(*(self._run_source(s) for s in batch)))

            if start + self.batch_size < len(sources) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        summary = RunSummary.from_reports(reports)
        logger.info(
            "Run complete: %d/%d sources ok, %d stored, %d duplicates filtered",
            summary.successful_sources,
            summary.total_sources,
            summary.total_opportunities_stored,
            summary.total_duplicates_filtered,
        )
        for err in summary.errors:
            logger.warning(f"  {err.source}: {err.error}")
        return summary

    # ---------------------------------------------- #
    # Per source
    async def _run_source(self, source: Source) -> SourceReport:
        result = await self._fetch(source)

        try:
            async with self._process_lock:
                report, new_records = await self._process(source, result)
        except Exception as e:
            logger.error(f"Processing {source.name} failed: {e}")
            logger.debug(traceback.format_exc())
            report = SourceReport(
                source_id=source.id,
                source_name=source.name,
                status=RunStatus.ERROR,
                error_message=_describe(e),
            )
            await self._record_failure(report)
            return report

        await self._dispatch(new_records)
        return report

    async def _record_failure(self, report: SourceReport) -> None:
        try:
            await self.store.record_activity(ActivityRecord(
                source_id=report.source_id,
                status=RunStatus.ERROR,
                error_message=report.error_message,
                timestamp=report.timestamp,
            ))
        except Exception as e:
            logger.error(f"Could not record activity for {report.source_name}: {e}")

    async def _fetch(self, source: Source) -> FetchResult:
        logger.info(f"Fetching {source.name} ({source.category.value})")
        try:
            adapter = self._adapter_factory(source.category, self._adapter_options)
            async with adapter:
                return await adapter.fetch(source)
        except Exception as e:
            logger.error(f"Adapter for {source.name} raised: {e}")
            logger.debug(traceback.format_exc())
            return FetchResult.failure(_describe(e))

    async def _process(
        self, source: Source, result: FetchResult
    ) -> Tuple[SourceReport, List[PersistedOpportunity]]:
        item_errors = list(result.item_errors)
        new_records: List[PersistedOpportunity] = []
        duplicates = 0

        if result.candidates:
            index = DedupIndex(await self.store.list_all_opportunities())
            for candidate in result.candidates:
                if index.is_duplicate(candidate):
                    duplicates += 1
                    continue
                try:
                    record = await self.store.insert_opportunity(candidate)
                except Exception as e:
                    item_errors.append(f"Failed to store {candidate.title!r}: {e}")
                    continue
                index.add(record)
                new_records.append(record)

        status = RunStatus.SUCCESS if result.ok else RunStatus.ERROR
        error_message = "; ".join(result.errors) or None

        now = utcnow()
        await self.store.record_activity(ActivityRecord(
            source_id=source.id,
            status=status,
            opportunities_found=len(new_records),
            duplicates_filtered=duplicates,
            error_message=error_message,
            timestamp=now,
        ))
        # lastScraped is housekeeping, it never changes the source's status
        try:
            await self.store.mark_scraped(source.id, now)
        except Exception as e:
            item_errors.append(f"Failed to update last scraped time: {e}")

        if item_errors:
            logger.warning(f"{source.name}: {len(item_errors)} item error(s)")
            for msg in item_errors:
                logger.debug(f"  {msg}")

        if status is RunStatus.SUCCESS:
            logger.info(
                f"{source.name}: stored {len(new_records)}, filtered {duplicates} duplicate(s)"
            )
        else:
            logger.error(f"{source.name}: {error_message}")

        report = SourceReport(
            source_id=source.id,
            source_name=source.name,
            status=status,
            stored=len(new_records),
            duplicates=duplicates,
            error_message=error_message,
            timestamp=now,
        )
        return report, new_records

    async def _dispatch(self, records: List[PersistedOpportunity]) -> None:
        for record in records:
            for sink in self.sinks:
                try:
                    await sink.handle(record)
                except Exception as e:
                    logger.error(f"Sink {sink.name} failed: {e}")
