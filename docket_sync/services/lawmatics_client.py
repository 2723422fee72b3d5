# docket_sync/services/lawmatics_client.py
import logging
from typing import Any, Dict, List, Optional

import httpx

from docket_sync.core.config import AppSettings
from docket_sync.services.domain import DocumentRecord, MatterType, ProspectIdentity

logger = logging.getLogger(__name__)


class LawmaticsClient:
    """Lawmatics REST API: prospect lookup and the custom fields the API can write."""

    def __init__(self, settings: AppSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.LAWMATICS_API_URL,
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.settings.LAWMATICS_API_TOKEN}",
                "Content-Type": "application/json",
            },
        )

    def build_custom_fields(self, document: DocumentRecord) -> List[Dict[str, Any]]:
        return [
            {"id": self.settings.LAWMATICS_DOCUMENT_DATE_FIELD_ID, "value": document.iso_date},
            {"id": self.settings.LAWMATICS_DOCUMENT_DESCRIPTION_FIELD_ID, "value": document.description},
            {"id": self.settings.LAWMATICS_DOCUMENT_LINK_FIELD_ID, "value": document.effective_link},
        ]

    async def update_prospect(self, crm_id: str, application_number: str, document: DocumentRecord,
                              matter_type: MatterType) -> None:
        payload = {"custom_fields": self.build_custom_fields(document)}
        async with self._client() as client:
            response = await client.put(f"/prospects/{crm_id}", json=payload)
            response.raise_for_status()
        logger.info(f"[{application_number}] Lawmatics prospect {crm_id} updated for {matter_type.value} document {document.iso_date}.")

    async def get_prospect(self, crm_id: str) -> Optional[ProspectIdentity]:
        try:
            async with self._client() as client:
                response = await client.get(f"/prospects/{crm_id}")
                if response.status_code == 404:
                    logger.warning(f"Lawmatics prospect {crm_id} not found.")
                    return None
                response.raise_for_status()
                data = response.json().get("data") or {}
        except httpx.HTTPStatusError as e:
            logger.error(f"Lawmatics API error fetching prospect {crm_id}: {e.response.status_code} - {e.response.text[:200]}")
            return None
        except httpx.RequestError as e:
            logger.error(f"Lawmatics request error fetching prospect {crm_id}: {e}")
            return None

        if not data.get("id"):
            logger.warning(f"Lawmatics response for prospect {crm_id} carried no id.")
            return None
        attributes = data.get("attributes") or {}
        name = " ".join(p for p in (attributes.get("first_name"), attributes.get("last_name")) if p) or None
        return ProspectIdentity(prospect_id=str(data["id"]), display_name=name)
