# docket_sync/api/routers/health.py
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Request, status
import logging

from docket_sync.api.deps import get_current_settings
from docket_sync.core.config import AppSettings
from docket_sync.models_api.matters import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK, summary="Liveness probe")
async def health_check(request: Request, settings: AppSettings = Depends(get_current_settings)):
    service_is_ready = getattr(request.app.state, "service_ready", False)
    playwright_ok = getattr(request.app.state, "playwright_instance", None) is not None
    if not service_is_ready:
        logger.warning("Health check: service alive but not ready for matter processing.")
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=settings.SERVICE_NAME,
        service_ready=service_is_ready,
        playwright_initialized=playwright_ok,
    )
