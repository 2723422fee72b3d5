# docket_sync/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from docket_sync.core.config import settings # settings should be loaded by now
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()

def build_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    """Engine plus session factory for the processed-state ledger (SQLite by default)."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL
logger.info(f"Ledger database URL: {SQLALCHEMY_DATABASE_URL}")

SessionLocal = build_session_factory(SQLALCHEMY_DATABASE_URL)
engine = SessionLocal.kw["bind"]
