# docket_sync/services/document_sources.py
import logging
from typing import Any, Dict, List, Optional

import httpx

from docket_sync.core.config import AppSettings
from docket_sync.services.domain import DocumentRecord, MatterType
from docket_sync.utils.common import parse_registry_date, clean_text

logger = logging.getLogger(__name__)


class DocumentSource:
    """Fetches the most recent filed document of one matter type from the USPTO."""

    matter_type: MatterType

    def __init__(self, settings: AppSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS, transport=self.transport)

    async def _get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Optional[Dict[str, Any]]:
        async with self._client() as client:
            response = await client.get(url, headers=headers or {})
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

    def _parse_documents(self, application_number: str, payload: Dict[str, Any]) -> List[DocumentRecord]:
        raise NotImplementedError

    async def fetch_latest(self, application_number: str) -> Optional[DocumentRecord]:
        payload = await self._fetch(application_number)
        if not payload:
            logger.info(f"[{application_number}] Registry returned no data for {self.matter_type.value}.")
            return None
        documents = self._parse_documents(application_number, payload)
        if not documents:
            return None
        latest = max(documents, key=lambda d: d.date)
        logger.info(f"[{application_number}] Latest {self.matter_type.value} document: {latest.iso_date} - {latest.description}")
        return latest

    async def _fetch(self, application_number: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class PatentDocumentSource(DocumentSource):
    matter_type = MatterType.PATENT

    async def _fetch(self, application_number: str) -> Optional[Dict[str, Any]]:
        url = self.settings.PATENT_DOCUMENTS_URL.format(application_number=application_number)
        return await self._get_json(url, headers={"X-API-KEY": self.settings.USPTO_API_KEY, "Accept": "application/json"})

    def _parse_documents(self, application_number: str, payload: Dict[str, Any]) -> List[DocumentRecord]:
        documents: List[DocumentRecord] = []
        for entry in payload.get("documentBag") or []:
            doc_date = parse_registry_date(entry.get("officialDate"))
            if not doc_date:
                continue
            download_options = entry.get("downloadOptionBag") or []
            pdf_option = next((o for o in download_options if (o.get("mimeTypeIdentifier") or "").upper() == "PDF"), None)
            link = (pdf_option or (download_options[0] if download_options else {})).get("downloadUrl")
            if not link:
                logger.debug(f"[{application_number}] Skipping patent document without download link: {entry.get('documentIdentifier')}")
                continue
            documents.append(DocumentRecord(
                date=doc_date,
                description=clean_text(entry.get("documentCodeDescriptionText")) or "Untitled document",
                document_code=entry.get("documentCode"),
                category=entry.get("directionCategory"),
                source_link=link,
            ))
        return documents


class TrademarkDocumentSource(DocumentSource):
    matter_type = MatterType.TRADEMARK

    async def _fetch(self, application_number: str) -> Optional[Dict[str, Any]]:
        url = self.settings.TRADEMARK_DOCUMENTS_URL.format(application_number=application_number)
        headers = {"Accept": "application/json"}
        if self.settings.USPTO_API_KEY:
            headers["USPTO-API-KEY"] = self.settings.USPTO_API_KEY
        return await self._get_json(url, headers=headers)

    def _parse_documents(self, application_number: str, payload: Dict[str, Any]) -> List[DocumentRecord]:
        entries = (payload.get("DocumentList") or {}).get("Document") or []
        if isinstance(entries, dict):
            entries = [entries]
        documents: List[DocumentRecord] = []
        for entry in entries:
            doc_date = parse_registry_date(entry.get("MailRoomDate") or entry.get("ScanDateTime"))
            if not doc_date:
                continue
            url_paths = (entry.get("UrlPathList") or {}).get("UrlPath") or []
            if isinstance(url_paths, str):
                url_paths = [url_paths]
            link = url_paths[0] if url_paths else self.settings.TRADEMARK_DOCUMENT_VIEWER_URL.format(
                application_number=application_number, document_id=entry.get("DocumentIdentifier", ""))
            documents.append(DocumentRecord(
                date=doc_date,
                description=clean_text(entry.get("DocumentTypeCodeDescriptionText")) or "Untitled document",
                document_code=entry.get("DocumentTypeCode"),
                category=entry.get("DocumentCategory"),
                source_link=link,
            ))
        return documents


class DocumentSourceRegistry:
    def __init__(self, sources: Dict[MatterType, DocumentSource]):
        self.sources = sources

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "DocumentSourceRegistry":
        return cls({
            MatterType.PATENT: PatentDocumentSource(settings),
            MatterType.TRADEMARK: TrademarkDocumentSource(settings),
        })

    def for_type(self, matter_type: MatterType) -> DocumentSource:
        try:
            return self.sources[matter_type]
        except KeyError:
            raise ValueError(f"No document source configured for matter type '{matter_type}'")
