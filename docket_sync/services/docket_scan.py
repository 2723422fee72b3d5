# docket_sync/services/docket_scan.py
import asyncio
import logging
from datetime import date
from typing import List

from pydantic import BaseModel

from docket_sync.services.domain import PipelineOutcome
from docket_sync.services.matter_catalog import ProcessedStateStore
from docket_sync.services.matter_pipeline import MatterPipelineService

logger = logging.getLogger(__name__)


class ScanAlreadyRunningError(RuntimeError):
    pass


class ScanSummary(BaseModel):
    checked: int = 0
    new_documents: int = 0
    processed: int = 0
    failed: int = 0
    outcomes: List[PipelineOutcome] = []


class DocketScanService:
    """Processes every catalog matter whose latest registry document is newer than the ledger date."""

    def __init__(self, pipeline: MatterPipelineService, processed_state: ProcessedStateStore):
        self.pipeline = pipeline
        self.processed_state = processed_state
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def scan(self) -> ScanSummary:
        if self._lock.locked():
            raise ScanAlreadyRunningError("A docket scan is already in progress.")
        async with self._lock:
            summary = ScanSummary()
            for matter in self.pipeline.catalog.load():
                summary.checked += 1
                info = await self.pipeline.inspect_matter(matter.application_number)
                if not info.success:
                    logger.warning(f"[{matter.application_number}] Skipping, inspection failed: {info.error}")
                    summary.failed += 1
                    continue
                if not info.is_new:
                    logger.info(f"[{matter.application_number}] No new documents since {info.last_processed_date}.")
                    continue

                summary.new_documents += 1
                outcome = await self.pipeline.process_matter(matter.application_number)
                summary.outcomes.append(outcome)
                if not outcome.success:
                    summary.failed += 1
                    continue
                try:
                    self.processed_state.record(matter.application_number, date.fromisoformat(outcome.document_date))
                except Exception as e:
                    # The matter was processed but will be picked up again on the next scan
                    logger.error(f"[{matter.application_number}] Processed, but recording the ledger date failed: {e}",
                                 exc_info=True)
                    summary.failed += 1
                    continue
                summary.processed += 1

            logger.info(f"Docket scan complete: {summary.checked} checked, {summary.new_documents} new, "
                        f"{summary.processed} processed, {summary.failed} failed.")
            return summary
