# docket_sync/services/drive_archiver.py
import os
import shutil
import logging
from typing import Optional

import httpx

from docket_sync.core.config import AppSettings
from docket_sync.services.domain import DocumentRecord, MatterType
from docket_sync.utils.common import sanitize_filename

logger = logging.getLogger(__name__)

DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"


class DriveArchiver:
    """Downloads a registry document and stores it in the matter type's Google Drive folder."""

    def __init__(self, settings: AppSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS, transport=self.transport,
                                 follow_redirects=True)

    def _folder_for(self, matter_type: MatterType) -> str:
        folder_id = (self.settings.PATENT_DRIVE_FOLDER_ID if matter_type == MatterType.PATENT
                     else self.settings.TRADEMARK_DRIVE_FOLDER_ID)
        if not folder_id:
            raise RuntimeError(f"No Google Drive folder configured for {matter_type.value} documents.")
        return folder_id

    def build_filename(self, application_number: str, document: DocumentRecord) -> str:
        return sanitize_filename(f"{application_number}_{document.iso_date}_{document.description}",
                                 default_name=f"{application_number}_{document.iso_date}") + ".pdf"

    async def _download(self, client: httpx.AsyncClient, document: DocumentRecord, target_path: str):
        headers = {"X-API-KEY": self.settings.USPTO_API_KEY} if self.settings.USPTO_API_KEY else {}
        async with client.stream("GET", document.source_link, headers=headers) as response:
            response.raise_for_status()
            with open(target_path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)

    async def _upload(self, client: httpx.AsyncClient, file_path: str, file_name: str, folder_id: str) -> str:
        auth = {"Authorization": f"Bearer {self.settings.GOOGLE_DRIVE_ACCESS_TOKEN}"}
        with open(file_path, "rb") as f:
            content = f.read()
        created = await client.post(
            DRIVE_UPLOAD_URL,
            params={"uploadType": "media", "fields": "id"},
            headers={**auth, "Content-Type": "application/pdf"},
            content=content,
        )
        created.raise_for_status()
        file_id = created.json()["id"]

        # Media uploads cannot carry metadata, so name and folder are set afterwards.
        updated = await client.patch(
            f"{DRIVE_FILES_URL}/{file_id}",
            params={"addParents": folder_id, "fields": "id, webViewLink"},
            headers=auth,
            json={"name": file_name},
        )
        updated.raise_for_status()
        return updated.json().get("webViewLink") or f"https://drive.google.com/file/d/{file_id}/view"

    async def archive(self, document: DocumentRecord, application_number: str, matter_type: MatterType) -> str:
        folder_id = self._folder_for(matter_type)
        file_name = self.build_filename(application_number, document)
        temp_dir = os.path.join(self.settings.TEMP_DOCUMENTS_PATH, sanitize_filename(application_number))
        os.makedirs(temp_dir, exist_ok=True)
        temp_path = os.path.join(temp_dir, file_name)

        try:
            async with self._client() as client:
                logger.info(f"[{application_number}] Downloading document from {document.source_link}")
                await self._download(client, document, temp_path)
                logger.info(f"[{application_number}] Uploading '{file_name}' to Drive folder {folder_id}")
                link = await self._upload(client, temp_path, file_name, folder_id)
            logger.info(f"[{application_number}] Archived document: {link}")
            return link
        finally:
            try:
                shutil.rmtree(temp_dir)
            except Exception as e_rm:
                logger.warning(f"[{application_number}] Could not remove temp directory {temp_dir}: {e_rm}")
