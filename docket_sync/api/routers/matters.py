# docket_sync/api/routers/matters.py
import logging
from typing import Union
from fastapi import APIRouter, Depends, HTTPException, status

from docket_sync.api.deps import get_pipeline, get_docket_scan, get_read_api_key, get_write_api_key
from docket_sync.models_api import matters as api_models
from docket_sync.services.docket_scan import DocketScanService, ScanAlreadyRunningError
from docket_sync.services.domain import MatterInfo, PipelineOutcome
from docket_sync.services.matter_pipeline import MatterPipelineService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=api_models.MatterListResponse)
async def list_matters(
    pipeline: MatterPipelineService = Depends(get_pipeline),
    api_key: str = Depends(get_read_api_key)
):
    try:
        matters = pipeline.list_matters()
    except Exception as e:
        logger.error(f"Error listing matters: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Could not list matters: {e}")
    return api_models.MatterListResponse(count=len(matters), matters=matters)


@router.post("/scan", response_model=api_models.ScanResponse)
async def scan_for_new_documents(
    docket_scan: DocketScanService = Depends(get_docket_scan),
    api_key: str = Depends(get_write_api_key)
):
    try:
        summary = await docket_scan.scan()
    except ScanAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error(f"Docket scan failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Docket scan failed: {e}")
    return api_models.ScanResponse(**summary.model_dump())


@router.get("/{application_number}", response_model=MatterInfo)
async def get_matter_info(
    application_number: str,
    pipeline: MatterPipelineService = Depends(get_pipeline),
    api_key: str = Depends(get_read_api_key)
):
    return await pipeline.inspect_matter(application_number.strip())


@router.post("/{application_number}/process", response_model=Union[PipelineOutcome, MatterInfo])
async def process_matter(
    application_number: str,
    payload: api_models.ProcessMatterRequest = api_models.ProcessMatterRequest(),
    pipeline: MatterPipelineService = Depends(get_pipeline),
    api_key: str = Depends(get_write_api_key)
):
    application_number = application_number.strip()
    logger.info(f"Processing request for matter {application_number}{' (DRY RUN)' if payload.dry_run else ''}")
    if payload.dry_run:
        return await pipeline.inspect_matter(application_number)
    return await pipeline.process_matter(application_number)
