import os
import tempfile

# Settings are read at import time, so the environment has to be in place first.
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="docket_sync_tests_")
os.environ.setdefault("DATA_DIRECTORY", _TEST_DATA_DIR)
os.environ.setdefault("API_ACCESS_KEY", "test-api-key")
os.environ.setdefault("DOCKET_SYNC_CONFIG_FILE", os.path.join(_TEST_DATA_DIR, "missing_config.json"))
os.environ.setdefault("MATTER_MAP_PATH", os.path.join(_TEST_DATA_DIR, "missing_map.json"))
os.environ.setdefault("NOTIFY_RECIPIENTS", "docketing@example.com")

import datetime
import pytest

from docket_sync.core.config import get_app_settings
from docket_sync.services.domain import DocumentRecord, Matter, MatterType


@pytest.fixture
def settings():
    return get_app_settings()


@pytest.fixture
def patent_matter():
    return Matter(application_number="2992382", lawmatics_id="LM-100", type=MatterType.PATENT)


@pytest.fixture
def trademark_matter():
    return Matter(application_number="97123456", lawmatics_id="LM-200", type=MatterType.TRADEMARK)


@pytest.fixture
def document():
    return DocumentRecord(
        date=datetime.date(2024, 3, 1),
        description="Non-Final Rejection",
        document_code="CTNF",
        category="OUTGOING",
        source_link="https://api.uspto.gov/download/2992382/CTNF.pdf",
    )
