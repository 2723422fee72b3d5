# docket_sync/models_api/matters.py
from pydantic import BaseModel, Field
from typing import List

from docket_sync.services.domain import MatterListItem, PipelineOutcome


class ProcessMatterRequest(BaseModel):
    dry_run: bool = Field(False, description="Inspect only: fetch the latest document and compare it to the ledger without side effects.")


class MatterListResponse(BaseModel):
    success: bool = True
    count: int
    matters: List[MatterListItem] = []


class ScanResponse(BaseModel):
    checked: int
    new_documents: int
    processed: int
    failed: int
    outcomes: List[PipelineOutcome] = []


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    service: str
    service_ready: bool
    playwright_initialized: bool
