import asyncio
import datetime
import pytest
from unittest.mock import AsyncMock, MagicMock

from docket_sync.services.docket_scan import DocketScanService, ScanAlreadyRunningError
from docket_sync.services.domain import MatterInfo, PipelineOutcome, PipelineStage


def make_scan(matters, infos, outcomes):
    pipeline = MagicMock()
    pipeline.catalog.load = MagicMock(return_value=matters)
    pipeline.inspect_matter = AsyncMock(side_effect=lambda app: infos[app])
    pipeline.process_matter = AsyncMock(side_effect=lambda app: outcomes[app])
    processed_state = MagicMock()
    return DocketScanService(pipeline, processed_state), pipeline, processed_state


@pytest.mark.asyncio
async def test_scan_processes_only_new_documents(patent_matter, trademark_matter, document):
    infos = {
        "2992382": MatterInfo(success=True, application_number="2992382", is_new=True),
        "97123456": MatterInfo(success=True, application_number="97123456", is_new=False,
                               last_processed_date="2024-03-01"),
    }
    outcomes = {"2992382": PipelineOutcome.succeeded(patent_matter, document, form_submitted=True)}
    scan, pipeline, processed_state = make_scan([patent_matter, trademark_matter], infos, outcomes)

    summary = await scan.scan()

    assert summary.checked == 2
    assert summary.new_documents == 1
    assert summary.processed == 1
    assert summary.failed == 0
    pipeline.process_matter.assert_called_once_with("2992382")
    processed_state.record.assert_called_once_with("2992382", datetime.date(2024, 3, 1))


@pytest.mark.asyncio
async def test_scan_does_not_record_failed_runs(patent_matter):
    infos = {"2992382": MatterInfo(success=True, application_number="2992382", is_new=True)}
    outcomes = {"2992382": PipelineOutcome.failed("2992382", "Archive failed: quota", PipelineStage.ARCHIVE)}
    scan, _, processed_state = make_scan([patent_matter], infos, outcomes)

    summary = await scan.scan()

    assert summary.failed == 1
    assert summary.processed == 0
    processed_state.record.assert_not_called()


@pytest.mark.asyncio
async def test_scan_counts_failed_inspection(patent_matter):
    infos = {"2992382": MatterInfo(success=False, application_number="2992382", error="registry down")}
    scan, pipeline, _ = make_scan([patent_matter], infos, {})

    summary = await scan.scan()

    assert summary.failed == 1
    pipeline.process_matter.assert_not_called()


@pytest.mark.asyncio
async def test_scan_continues_when_ledger_write_fails(patent_matter, trademark_matter, document):
    infos = {
        "2992382": MatterInfo(success=True, application_number="2992382", is_new=True),
        "97123456": MatterInfo(success=True, application_number="97123456", is_new=True),
    }
    outcomes = {
        "2992382": PipelineOutcome.succeeded(patent_matter, document, form_submitted=True),
        "97123456": PipelineOutcome.succeeded(trademark_matter, document, form_submitted=True),
    }
    scan, pipeline, processed_state = make_scan([patent_matter, trademark_matter], infos, outcomes)
    processed_state.record = MagicMock(side_effect=[RuntimeError("database is locked"), None])

    summary = await scan.scan()

    assert summary.checked == 2
    assert summary.processed == 1
    assert summary.failed == 1
    assert pipeline.process_matter.call_count == 2
    assert processed_state.record.call_count == 2
    assert scan.is_running is False


@pytest.mark.asyncio
async def test_concurrent_scan_is_rejected(patent_matter, document):
    release = asyncio.Event()

    async def slow_inspect(app):
        await release.wait()
        return MatterInfo(success=True, application_number=app, is_new=False)

    scan, pipeline, _ = make_scan([patent_matter], {}, {})
    pipeline.inspect_matter = AsyncMock(side_effect=slow_inspect)

    first = asyncio.create_task(scan.scan())
    await asyncio.sleep(0)
    assert scan.is_running is True
    with pytest.raises(ScanAlreadyRunningError):
        await scan.scan()

    release.set()
    summary = await first
    assert summary.checked == 1
    assert scan.is_running is False
