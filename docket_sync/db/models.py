# docket_sync/db/models.py
from sqlalchemy import Column, String, Date, DateTime
from sqlalchemy.sql import func
from docket_sync.db.session import Base


class ProcessedMatter(Base):
    """Last processed registry document date per application number."""
    __tablename__ = "processed_matters"

    application_number = Column(String, primary_key=True, index=True)
    last_processed_date = Column(Date, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ProcessedMatter(application_number='{self.application_number}', last_processed_date='{self.last_processed_date}')>"
