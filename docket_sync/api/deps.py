# docket_sync/api/deps.py
from fastapi import Depends, HTTPException, status, Request
from docket_sync.core.security import get_api_key, get_read_only_api_key
from docket_sync.core.config import AppSettings, get_app_settings
from docket_sync.services.docket_scan import DocketScanService
from docket_sync.services.matter_pipeline import MatterPipelineService
import logging

logger = logging.getLogger(__name__)

def get_current_settings(request: Request) -> AppSettings:
    if hasattr(request.app.state, 'settings') and request.app.state.settings is not None:
        return request.app.state.settings
    logger.warning("Settings not found in app.state or is None, attempting to load fresh.")
    return get_app_settings()

def get_pipeline(request: Request) -> MatterPipelineService:
    pipeline = getattr(request.app.state, "pipeline", None)
    if not getattr(request.app.state, "service_ready", False) or pipeline is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is not ready. Please try again later.")
    return pipeline

def get_docket_scan(request: Request, pipeline: MatterPipelineService = Depends(get_pipeline)) -> DocketScanService:
    return request.app.state.docket_scan

def get_read_api_key(api_key: str = Depends(get_read_only_api_key)):
    return api_key

def get_write_api_key(api_key: str = Depends(get_api_key)):
    return api_key
