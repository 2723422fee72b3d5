import datetime
import pytest
from pydantic import ValidationError
from unittest.mock import AsyncMock, MagicMock

from docket_sync.services.domain import FailurePolicy, PipelineOutcome, PipelineStage, ProspectIdentity
from docket_sync.services.matter_pipeline import MatterPipelineService

ARCHIVE_LINK = "https://drive.google.com/file/d/abc/view"


def make_pipeline(settings, matter, document, policy=FailurePolicy.STRICT, ledger=None):
    catalog = MagicMock()
    catalog.find = MagicMock(side_effect=lambda app: matter if matter and app == matter.application_number else None)
    catalog.load = MagicMock(return_value=[matter] if matter else [])

    source = MagicMock()
    source.fetch_latest = AsyncMock(return_value=document)
    document_sources = MagicMock()
    document_sources.for_type = MagicMock(return_value=source)

    archiver = MagicMock()
    archiver.archive = AsyncMock(return_value=ARCHIVE_LINK)
    notifier = MagicMock()
    notifier.notify = AsyncMock()
    lawmatics = MagicMock()
    lawmatics.update_prospect = AsyncMock()
    lawmatics.get_prospect = AsyncMock(return_value=ProspectIdentity(prospect_id="LM-100", display_name="Jane Inventor"))
    form_automation = MagicMock()
    form_automation.submit_form = AsyncMock(return_value=True)
    processed_state = MagicMock()
    processed_state.load = MagicMock(return_value=ledger or {})

    return MatterPipelineService(
        settings=settings,
        catalog=catalog,
        document_sources=document_sources,
        archiver=archiver,
        notifier=notifier,
        lawmatics=lawmatics,
        form_automation=form_automation,
        processed_state=processed_state,
        policy=policy,
    )


@pytest.mark.asyncio
async def test_process_matter_success_runs_every_stage_in_order(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document)

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is True
    assert outcome.document_date == "2024-03-01"
    assert outcome.description == "Non-Final Rejection"
    assert outcome.archive_link == ARCHIVE_LINK
    assert outcome.form_submitted is True
    assert outcome.error is None
    assert outcome.state == PipelineStage.DONE

    pipeline.document_sources.for_type.assert_called_once_with(patent_matter.type)
    archived_doc = pipeline.notifier.notify.call_args.args[1]
    assert archived_doc.archive_link == ARCHIVE_LINK
    pipeline.lawmatics.update_prospect.assert_called_once()
    assert pipeline.lawmatics.update_prospect.call_args.args[2].effective_link == ARCHIVE_LINK
    pipeline.form_automation.submit_form.assert_called_once()
    assert pipeline.form_automation.submit_form.call_args.args[0] == "LM-100"


@pytest.mark.asyncio
async def test_best_effort_succeeds_when_prospect_unresolved(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, policy=FailurePolicy.BEST_EFFORT)
    pipeline.lawmatics.get_prospect = AsyncMock(return_value=None)

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is True
    assert outcome.document_date == "2024-03-01"
    assert outcome.form_submitted is False
    pipeline.form_automation.submit_form.assert_not_called()


@pytest.mark.asyncio
async def test_strict_fails_when_prospect_unresolved(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, policy=FailurePolicy.STRICT)
    pipeline.lawmatics.get_prospect = AsyncMock(return_value=None)

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is False
    assert "could not resolve prospect" in outcome.error.lower()
    assert outcome.failed_stage == PipelineStage.RESOLVE_PROSPECT
    assert outcome.state == PipelineStage.FAILED
    assert outcome.document_date is None
    assert outcome.description is None
    pipeline.form_automation.submit_form.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_matter_fails_without_side_effects(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document)

    outcome = await pipeline.process_matter("0000000")

    assert outcome.success is False
    assert "not found" in outcome.error
    assert outcome.failed_stage == PipelineStage.RESOLVE_MATTER
    pipeline.archiver.archive.assert_not_called()
    pipeline.notifier.notify.assert_not_called()
    pipeline.lawmatics.update_prospect.assert_not_called()


@pytest.mark.asyncio
async def test_no_document_fails_at_fetch(settings, patent_matter):
    pipeline = make_pipeline(settings, patent_matter, None)

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is False
    assert outcome.failed_stage == PipelineStage.FETCH_DOCUMENT
    assert "No documents found" in outcome.error
    pipeline.archiver.archive.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("component, method, stage", [
    ("archiver", "archive", PipelineStage.ARCHIVE),
    ("notifier", "notify", PipelineStage.NOTIFY),
    ("lawmatics", "update_prospect", PipelineStage.UPDATE_CRM),
])
async def test_stage_failure_ends_run(settings, patent_matter, document, component, method, stage):
    pipeline = make_pipeline(settings, patent_matter, document, policy=FailurePolicy.BEST_EFFORT)
    setattr(getattr(pipeline, component), method, AsyncMock(side_effect=RuntimeError("service unavailable")))

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is False
    assert outcome.failed_stage == stage
    assert outcome.state == PipelineStage.FAILED
    assert "service unavailable" in outcome.error
    pipeline.form_automation.submit_form.assert_not_called()


@pytest.mark.asyncio
async def test_later_stages_not_run_after_archive_failure(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document)
    pipeline.archiver.archive = AsyncMock(side_effect=RuntimeError("drive quota exceeded"))

    await pipeline.process_matter("2992382")

    pipeline.notifier.notify.assert_not_called()
    pipeline.lawmatics.update_prospect.assert_not_called()
    pipeline.lawmatics.get_prospect.assert_not_called()


@pytest.mark.asyncio
async def test_form_failure_under_strict_fails_the_run(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, policy=FailurePolicy.STRICT)
    pipeline.form_automation.submit_form = AsyncMock(return_value=False)

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is False
    assert outcome.failed_stage == PipelineStage.SUBMIT_FORM
    assert "Form submission failed" in outcome.error


@pytest.mark.asyncio
async def test_form_failure_under_best_effort_still_succeeds(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, policy=FailurePolicy.BEST_EFFORT)
    pipeline.form_automation.submit_form = AsyncMock(return_value=False)

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is True
    assert outcome.form_submitted is False
    assert "without form submission" in outcome.message


@pytest.mark.asyncio
async def test_prospect_lookup_error_under_best_effort_is_tolerated(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, policy=FailurePolicy.BEST_EFFORT)
    pipeline.lawmatics.get_prospect = AsyncMock(side_effect=RuntimeError("connection reset"))

    outcome = await pipeline.process_matter("2992382")

    assert outcome.success is True
    assert outcome.form_submitted is False


def test_policy_defaults_from_settings(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, policy=None)
    assert pipeline.policy == FailurePolicy(settings.PIPELINE_FAILURE_POLICY)


@pytest.mark.asyncio
async def test_inspect_matter_reports_new_document_without_side_effects(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, ledger={"2992382": datetime.date(2024, 1, 15)})

    first = await pipeline.inspect_matter("2992382")
    second = await pipeline.inspect_matter("2992382")

    assert first == second
    assert first.success is True
    assert first.is_new is True
    assert first.last_processed_date == "2024-01-15"
    assert first.latest_document.date == "2024-03-01"
    pipeline.archiver.archive.assert_not_called()
    pipeline.notifier.notify.assert_not_called()
    pipeline.lawmatics.update_prospect.assert_not_called()
    pipeline.form_automation.submit_form.assert_not_called()


@pytest.mark.asyncio
async def test_inspect_matter_already_processed_is_not_new(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, ledger={"2992382": datetime.date(2024, 3, 1)})

    info = await pipeline.inspect_matter("2992382")

    assert info.is_new is False


@pytest.mark.asyncio
async def test_inspect_matter_never_processed(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document)

    info = await pipeline.inspect_matter("2992382")

    assert info.is_new is True
    assert info.last_processed_date == "Never processed"


@pytest.mark.asyncio
async def test_inspect_unknown_matter(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document)

    info = await pipeline.inspect_matter("0000000")

    assert info.success is False
    assert "not found" in info.error


def test_list_matters_includes_ledger_dates(settings, patent_matter, document):
    pipeline = make_pipeline(settings, patent_matter, document, ledger={"2992382": datetime.date(2024, 1, 15)})

    items = pipeline.list_matters()

    assert len(items) == 1
    assert items[0].application_number == "2992382"
    assert items[0].last_processed == "2024-01-15"


def test_list_matters_never_processed(settings, trademark_matter, document):
    pipeline = make_pipeline(settings, trademark_matter, document)

    assert pipeline.list_matters()[0].last_processed == "Never"


def test_outcome_state_must_match_success():
    with pytest.raises(ValidationError):
        PipelineOutcome(success=False, application_number="2992382", error="boom", state=PipelineStage.DONE)
    with pytest.raises(ValidationError):
        PipelineOutcome(success=True, application_number="2992382", state=PipelineStage.FAILED)
