# docket_sync/db/crud.py
from sqlalchemy.orm import Session
from docket_sync.db import models as db_models
from typing import Optional, Dict
from datetime import date
import logging

logger = logging.getLogger(__name__)

def get_processed_matter(db: Session, application_number: str) -> Optional[db_models.ProcessedMatter]:
    return db.query(db_models.ProcessedMatter).filter(
        db_models.ProcessedMatter.application_number == application_number
    ).first()

def get_processed_state(db: Session) -> Dict[str, date]:
    return {row.application_number: row.last_processed_date for row in db.query(db_models.ProcessedMatter).all()}

def upsert_processed_date(db: Session, application_number: str, processed_date: date) -> db_models.ProcessedMatter:
    db_row = get_processed_matter(db, application_number)
    if db_row:
        db_row.last_processed_date = processed_date
    else:
        db_row = db_models.ProcessedMatter(application_number=application_number, last_processed_date=processed_date)
        db.add(db_row)
    try:
        db.commit()
        db.refresh(db_row)
    except Exception:
        db.rollback()
        logger.error(f"[{application_number}] Failed to record processed date {processed_date}.")
        raise
    return db_row
