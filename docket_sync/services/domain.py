# docket_sync/services/domain.py
import enum
from dataclasses import dataclass
import datetime
from typing import Callable, Optional

from pydantic import BaseModel, Field, model_validator


class MatterType(str, enum.Enum):
    PATENT = "Patent"
    TRADEMARK = "Trademark"


class FailurePolicy(str, enum.Enum):
    STRICT = "STRICT"            # prospect/form failures fail the whole run
    BEST_EFFORT = "BEST_EFFORT"  # prospect/form failures are logged, run still succeeds


class PipelineStage(str, enum.Enum):
    RESOLVE_MATTER = "ResolveMatter"
    FETCH_DOCUMENT = "FetchDocument"
    ARCHIVE = "Archive"
    NOTIFY = "Notify"
    UPDATE_CRM = "UpdateCRM"
    RESOLVE_PROSPECT = "ResolveProspect"
    SUBMIT_FORM = "SubmitForm"
    DONE = "Done"
    FAILED = "Failed"


class Matter(BaseModel):
    application_number: str = Field(..., min_length=1)
    lawmatics_id: str = Field(..., min_length=1)
    type: MatterType

    class Config:
        frozen = True


class DocumentRecord(BaseModel):
    date: datetime.date
    description: str
    document_code: Optional[str] = None
    category: Optional[str] = None
    source_link: str
    archive_link: Optional[str] = None

    class Config:
        frozen = True

    @property
    def iso_date(self) -> str:
        return self.date.isoformat()

    @property
    def effective_link(self) -> str:
        """Archive link when the document was archived, otherwise the registry link."""
        return self.archive_link or self.source_link

    def with_archive_link(self, archive_link: str) -> "DocumentRecord":
        if self.archive_link:
            raise ValueError(f"Archive link already set for document dated {self.iso_date}")
        return self.model_copy(update={"archive_link": archive_link})


class ProspectIdentity(BaseModel):
    prospect_id: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class FormFieldContext:
    application_number: str
    matter_type: MatterType
    document: DocumentRecord


@dataclass(frozen=True)
class FieldBinding:
    selector: str
    value_source: Callable[[FormFieldContext], Optional[str]]
    description: str


class PipelineOutcome(BaseModel):
    success: bool
    application_number: str
    type: Optional[MatterType] = None

    document_date: Optional[str] = None
    description: Optional[str] = None
    document_code: Optional[str] = None
    category: Optional[str] = None
    archive_link: Optional[str] = None
    form_submitted: Optional[bool] = None
    message: Optional[str] = None

    error: Optional[str] = None
    failed_stage: Optional[PipelineStage] = None
    state: PipelineStage = PipelineStage.DONE  # terminal state of the run: DONE or FAILED

    @model_validator(mode="after")
    def _check_tagging(self) -> "PipelineOutcome":
        if self.success and self.error is not None:
            raise ValueError("Successful outcome cannot carry an error")
        if self.state != (PipelineStage.DONE if self.success else PipelineStage.FAILED):
            raise ValueError(f"Outcome with success={self.success} cannot end in state {self.state.value}")
        if not self.success and (self.document_date is not None or self.description is not None):
            raise ValueError("Failed outcome cannot carry document metadata")
        return self

    @classmethod
    def succeeded(cls, matter: Matter, document: DocumentRecord, form_submitted: bool) -> "PipelineOutcome":
        suffix = "including form submission" if form_submitted else "without form submission"
        return cls(
            success=True,
            application_number=matter.application_number,
            type=matter.type,
            document_date=document.iso_date,
            description=document.description,
            document_code=document.document_code or "N/A",
            category=document.category or "N/A",
            archive_link=document.effective_link,
            form_submitted=form_submitted,
            state=PipelineStage.DONE,
            message=f"Successfully processed {matter.type.value} #{matter.application_number} {suffix}",
        )

    @classmethod
    def failed(cls, application_number: str, error: str, stage: PipelineStage,
               matter_type: Optional[MatterType] = None) -> "PipelineOutcome":
        return cls(
            success=False,
            application_number=application_number,
            type=matter_type,
            error=error,
            failed_stage=stage,
            state=PipelineStage.FAILED,
        )


class DocumentSummary(BaseModel):
    date: str
    description: str
    document_code: str = "N/A"
    category: str = "N/A"
    link: str

    @classmethod
    def from_record(cls, document: DocumentRecord) -> "DocumentSummary":
        return cls(
            date=document.iso_date,
            description=document.description,
            document_code=document.document_code or "N/A",
            category=document.category or "N/A",
            link=document.source_link,
        )


class MatterInfo(BaseModel):
    success: bool
    application_number: str
    matter: Optional[Matter] = None
    latest_document: Optional[DocumentSummary] = None
    last_processed_date: Optional[str] = None
    is_new: bool = False
    error: Optional[str] = None


class MatterListItem(BaseModel):
    application_number: str
    lawmatics_id: str
    type: MatterType
    last_processed: str
