# docket_sync/services/matter_catalog.py
import json
import logging
import os
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from docket_sync.core.config import AppSettings
from docket_sync.db import crud
from docket_sync.services.domain import Matter

logger = logging.getLogger(__name__)


class MatterCatalog:
    """
    Reads the matter map: a JSON list of {"applicationNumber", "lawmaticsID", "type"}.

    `MATTER_MAP_JSON` (inline) takes precedence over the `MATTER_MAP_PATH` file. The map
    is re-read on every call so edits are picked up without a restart.
    """

    def __init__(self, settings: AppSettings):
        self.settings = settings

    def _read_raw(self) -> list:
        if self.settings.MATTER_MAP_JSON:
            return json.loads(self.settings.MATTER_MAP_JSON)
        if not os.path.exists(self.settings.MATTER_MAP_PATH):
            logger.warning(f"Matter map {self.settings.MATTER_MAP_PATH} not found. Catalog is empty.")
            return []
        with open(self.settings.MATTER_MAP_PATH, "r") as f:
            return json.load(f)

    def load(self) -> List[Matter]:
        matters: List[Matter] = []
        for entry in self._read_raw():
            try:
                matters.append(Matter(
                    application_number=str(entry.get("applicationNumber", "")).strip(),
                    lawmatics_id=str(entry.get("lawmaticsID", "")).strip(),
                    type=entry.get("type"),
                ))
            except Exception as e:
                logger.warning(f"Skipping invalid matter map entry {entry}: {e}")
        return matters

    def find(self, application_number: str) -> Optional[Matter]:
        return next((m for m in self.load() if m.application_number == application_number), None)


class ProcessedStateStore:
    """Ledger of the last processed document date per application number."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load(self) -> Dict[str, date]:
        db: Session = self.session_factory()
        try:
            return crud.get_processed_state(db)
        finally:
            db.close()

    def record(self, application_number: str, processed_date: date) -> None:
        db: Session = self.session_factory()
        try:
            crud.upsert_processed_date(db, application_number, processed_date)
            logger.info(f"[{application_number}] Recorded last processed date {processed_date.isoformat()}.")
        finally:
            db.close()
