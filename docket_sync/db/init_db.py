# docket_sync/db/init_db.py
import logging
from sqlalchemy.engine import Engine
from docket_sync.db.session import engine as default_engine, Base
from docket_sync.db.models import ProcessedMatter # noqa: F401 registers the table

logger = logging.getLogger(__name__)

def init_db(bind: Engine = None):
    """Creates the ledger table if missing. The schema has a single table, so there are no migrations."""
    bind = bind or default_engine
    logger.info(f"Initializing ledger database at {bind.url}...")
    try:
        Base.metadata.create_all(bind=bind)
        logger.info("Ledger database ready.")
    except Exception as e:
        logger.error(f"Error initializing ledger database: {e}")
        raise

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
