import datetime
import json
import pytest
from sqlalchemy.pool import StaticPool

from docket_sync.db.session import build_session_factory
from docket_sync.db.init_db import init_db
from docket_sync.services.domain import MatterType
from docket_sync.services.matter_catalog import MatterCatalog, ProcessedStateStore

MATTER_MAP = [
    {"applicationNumber": "2992382", "lawmaticsID": "LM-100", "type": "Patent"},
    {"applicationNumber": "97123456", "lawmaticsID": "LM-200", "type": "Trademark"},
    {"applicationNumber": "", "lawmaticsID": "LM-300", "type": "Patent"},
    {"applicationNumber": "11111111", "lawmaticsID": "LM-400", "type": "Copyright"},
]


def test_catalog_reads_map_file_and_skips_invalid_entries(settings, tmp_path):
    map_path = tmp_path / "map.json"
    map_path.write_text(json.dumps(MATTER_MAP))
    catalog = MatterCatalog(settings.model_copy(update={"MATTER_MAP_PATH": str(map_path), "MATTER_MAP_JSON": None}))

    matters = catalog.load()

    assert [m.application_number for m in matters] == ["2992382", "97123456"]
    assert catalog.find("97123456").type == MatterType.TRADEMARK
    assert catalog.find("0000000") is None


def test_catalog_inline_json_takes_precedence(settings, tmp_path):
    map_path = tmp_path / "map.json"
    map_path.write_text(json.dumps(MATTER_MAP))
    inline = json.dumps([{"applicationNumber": "555", "lawmaticsID": "LM-5", "type": "Patent"}])
    catalog = MatterCatalog(settings.model_copy(update={"MATTER_MAP_PATH": str(map_path), "MATTER_MAP_JSON": inline}))

    assert [m.application_number for m in catalog.load()] == ["555"]


def test_catalog_missing_file_is_empty(settings, tmp_path):
    catalog = MatterCatalog(settings.model_copy(
        update={"MATTER_MAP_PATH": str(tmp_path / "absent.json"), "MATTER_MAP_JSON": None}))

    assert catalog.load() == []


@pytest.fixture
def session_factory():
    factory = build_session_factory("sqlite://", poolclass=StaticPool)
    init_db(bind=factory.kw["bind"])
    return factory


def test_processed_state_record_and_update(session_factory):
    store = ProcessedStateStore(session_factory)
    assert store.load() == {}

    store.record("2992382", datetime.date(2024, 1, 15))
    store.record("2992382", datetime.date(2024, 3, 1))
    store.record("97123456", datetime.date(2023, 11, 2))

    assert store.load() == {
        "2992382": datetime.date(2024, 3, 1),
        "97123456": datetime.date(2023, 11, 2),
    }
