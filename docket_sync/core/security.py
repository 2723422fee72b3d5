# docket_sync/core/security.py
from fastapi import Security, HTTPException, status
from fastapi.security.api_key import APIKeyHeader
from docket_sync.core.config import get_app_settings
from typing import Iterable, Optional
import secrets
import logging

logger = logging.getLogger(__name__)

API_KEY_NAME = "X-API-KEY"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)

def _matches_any(provided: Optional[str], accepted: Iterable[Optional[str]]) -> bool:
    if not provided:
        return False
    return any(key and secrets.compare_digest(provided, key) for key in accepted)

def _reject(provided: Optional[str], scope: str):
    logger.warning(f"Invalid {scope} API Key attempt. Provided key: '{provided[:10] if provided else 'None'}...'")
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Invalid or missing API Key.",
    )

def _require_server_key(settings):
    if not settings.API_ACCESS_KEY or settings.API_ACCESS_KEY == "CONFIG_ERROR_API_KEY_NOT_IN_ENV":
        logger.critical("API_ACCESS_KEY is not configured on the server or is default. Denying all API access.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API Key not configured on server. Access denied.",
        )

async def get_api_key(api_key_header_value: str = Security(api_key_header)):
    """Full access key: required for anything that archives, notifies or writes to Lawmatics."""
    settings = get_app_settings()
    _require_server_key(settings)
    if _matches_any(api_key_header_value, [settings.API_ACCESS_KEY]):
        return api_key_header_value
    _reject(api_key_header_value, "write")

async def get_read_only_api_key(api_key_header_value: str = Security(api_key_header)):
    """Accepts the full key or, when configured, the read-only key used by docket dashboards."""
    settings = get_app_settings()
    _require_server_key(settings)
    if _matches_any(api_key_header_value, [settings.API_ACCESS_KEY, settings.API_READ_ACCESS_KEY]):
        return api_key_header_value
    _reject(api_key_header_value, "read")
