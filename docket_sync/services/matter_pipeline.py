# docket_sync/services/matter_pipeline.py
import logging
from typing import Awaitable, List, Optional, TypeVar

from docket_sync.core.config import AppSettings
from docket_sync.services.document_sources import DocumentSourceRegistry
from docket_sync.services.domain import (
    DocumentRecord, DocumentSummary, FailurePolicy, Matter, MatterInfo, MatterListItem,
    PipelineOutcome, PipelineStage, ProspectIdentity,
)
from docket_sync.services.drive_archiver import DriveArchiver
from docket_sync.services.errors import (
    FormSubmissionError, MatterNotFoundError, NoDocumentError, PipelineError,
    ProspectUnresolvedError, TransportFailureError,
)
from docket_sync.services.lawmatics_client import LawmaticsClient
from docket_sync.services.lawmatics_form import LawmaticsFormAutomation
from docket_sync.services.matter_catalog import MatterCatalog, ProcessedStateStore
from docket_sync.services.notifier import EmailNotifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MatterPipelineService:
    """
    Runs one matter through fetch, archive, notify, CRM update and form submission.

    Stages run strictly in order and any stage failure ends the run with a failure
    outcome; side effects of earlier stages are not rolled back. The failure policy
    only decides whether prospect resolution and form submission are mandatory.
    """

    def __init__(
        self,
        settings: AppSettings,
        catalog: MatterCatalog,
        document_sources: DocumentSourceRegistry,
        archiver: DriveArchiver,
        notifier: EmailNotifier,
        lawmatics: LawmaticsClient,
        form_automation: LawmaticsFormAutomation,
        processed_state: ProcessedStateStore,
        policy: Optional[FailurePolicy] = None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.document_sources = document_sources
        self.archiver = archiver
        self.notifier = notifier
        self.lawmatics = lawmatics
        self.form_automation = form_automation
        self.processed_state = processed_state
        self.policy = policy or FailurePolicy(settings.PIPELINE_FAILURE_POLICY)

    def _resolve_matter(self, application_number: str) -> Matter:
        matter = self.catalog.find(application_number)
        if not matter:
            raise MatterNotFoundError(f"Matter {application_number} not found in matter map", application_number)
        return matter

    async def _fetch_latest(self, matter: Matter) -> Optional[DocumentRecord]:
        source = self.document_sources.for_type(matter.type)
        return await source.fetch_latest(matter.application_number)

    async def _run_stage(self, stage: PipelineStage, application_number: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except PipelineError:
            raise
        except Exception as e:
            raise TransportFailureError(f"{stage.value} failed: {type(e).__name__} - {e}", application_number, stage) from e

    async def _submit_form(self, matter: Matter, document: DocumentRecord, log_prefix: str) -> bool:
        """Prospect lookup and form submission; the one place the failure policy applies."""
        try:
            prospect: Optional[ProspectIdentity] = await self._run_stage(
                PipelineStage.RESOLVE_PROSPECT, matter.application_number,
                self.lawmatics.get_prospect(matter.lawmatics_id))
            if not prospect:
                raise ProspectUnresolvedError(
                    f"Could not resolve prospect {matter.lawmatics_id}, cannot submit form",
                    matter.application_number, PipelineStage.RESOLVE_PROSPECT)

            logger.info(f"{log_prefix} Starting form submission...")
            submitted = await self.form_automation.submit_form(
                matter.lawmatics_id, matter.application_number, document, matter.type, prospect)
            if not submitted:
                raise FormSubmissionError(
                    f"Form submission failed for {matter.type.value} #{matter.application_number}", matter.application_number)
            return True
        except PipelineError as e:
            if self.policy == FailurePolicy.STRICT:
                raise
            logger.warning(f"{log_prefix} {e}. Continuing without form submission ({self.policy.value} policy).")
            return False

    async def process_matter(self, application_number: str) -> PipelineOutcome:
        stage = PipelineStage.RESOLVE_MATTER
        matter: Optional[Matter] = None
        log_prefix = f"[{application_number}]"
        try:
            matter = self._resolve_matter(application_number)
            log_prefix = f"[{matter.type.value} #{application_number}]"
            logger.info(f"{log_prefix} Processing (Lawmatics ID: {matter.lawmatics_id}, policy: {self.policy.value})...")

            stage = PipelineStage.FETCH_DOCUMENT
            document = await self._run_stage(stage, application_number, self._fetch_latest(matter))
            if not document:
                raise NoDocumentError(f"No documents found for {matter.type.value} #{application_number}", application_number)

            stage = PipelineStage.ARCHIVE
            archive_link = await self._run_stage(
                stage, application_number, self.archiver.archive(document, application_number, matter.type))
            document = document.with_archive_link(archive_link)

            stage = PipelineStage.NOTIFY
            await self._run_stage(stage, application_number, self.notifier.notify(application_number, document, matter.type))

            stage = PipelineStage.UPDATE_CRM
            await self._run_stage(stage, application_number, self.lawmatics.update_prospect(
                matter.lawmatics_id, application_number, document, matter.type))

            stage = PipelineStage.SUBMIT_FORM
            form_submitted = await self._submit_form(matter, document, log_prefix)

            logger.info(f"{log_prefix} {stage.value} -> {PipelineStage.DONE.value} (form submitted: {form_submitted}).")
            return PipelineOutcome.succeeded(matter, document, form_submitted)

        except PipelineError as e:
            stage = e.stage or stage
            logger.error(f"{log_prefix} {stage.value} -> {PipelineStage.FAILED.value}: {e}")
            return PipelineOutcome.failed(application_number, str(e), stage, matter.type if matter else None)
        except Exception as e:
            logger.error(f"{log_prefix} {stage.value} -> {PipelineStage.FAILED.value} (unexpected error): {e}", exc_info=True)
            return PipelineOutcome.failed(application_number, f"{stage.value} failed: {e}", stage,
                                          matter.type if matter else None)

    async def inspect_matter(self, application_number: str) -> MatterInfo:
        """Catalog and registry lookup with the "is new" comparison; touches no external state."""
        try:
            matter = self._resolve_matter(application_number)
            document = await self._fetch_latest(matter)
            last_processed = self.processed_state.load().get(application_number)
            return MatterInfo(
                success=True,
                application_number=application_number,
                matter=matter,
                latest_document=DocumentSummary.from_record(document) if document else None,
                last_processed_date=last_processed.isoformat() if last_processed else "Never processed",
                is_new=bool(document) and (last_processed is None or document.date > last_processed),
            )
        except Exception as e:
            logger.error(f"[{application_number}] Error getting matter info: {e}")
            return MatterInfo(success=False, application_number=application_number, error=str(e))

    def list_matters(self) -> List[MatterListItem]:
        state = self.processed_state.load()
        return [
            MatterListItem(
                application_number=m.application_number,
                lawmatics_id=m.lawmatics_id,
                type=m.type,
                last_processed=state[m.application_number].isoformat() if m.application_number in state else "Never",
            )
            for m in self.catalog.load()
        ]
