# docket_sync/services/errors.py
from typing import Optional


class PipelineError(Exception):
    """Base class for failures that end a matter pipeline run."""

    def __init__(self, message: str, application_number: Optional[str] = None, stage=None):
        super().__init__(message)
        self.application_number = application_number
        self.stage = stage  # PipelineStage that raised, when known


class MatterNotFoundError(PipelineError):
    pass


class NoDocumentError(PipelineError):
    pass


class TransportFailureError(PipelineError):
    """An archive, notify, CRM or registry call failed."""


class ProspectUnresolvedError(PipelineError):
    pass


class FormSubmissionError(PipelineError):
    pass
