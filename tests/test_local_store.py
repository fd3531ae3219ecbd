import json

import pytest

from spendlog.core.config import Settings
from spendlog.db.local_store import LocalJsonBackend
from spendlog.db.memory_store import InMemoryBackend
from spendlog.db.selection import BackendMode, is_development_environment, select_backend_strategy
from spendlog.models.ledger import Ledger

from .conftest import USER


@pytest.mark.asyncio
async def test_save_then_fetch_roundtrips_document(tmp_path, ferry_ledger):
    backend = LocalJsonBackend(tmp_path)
    await backend.save(USER, ferry_ledger)

    raw = json.loads(backend.path_for(USER).read_text(encoding="utf-8"))
    assert raw["defaultTripId"] == "t-a"
    assert raw["trips"][0]["startDate"] == "2024-08-01"
    assert await backend.fetch(USER) == ferry_ledger


@pytest.mark.asyncio
async def test_corrupt_file_falls_back(tmp_path):
    backend = LocalJsonBackend(tmp_path, seed_demo_data=False)
    backend.path_for(USER).write_text("{not json", encoding="utf-8")
    assert await backend.fetch(USER) is None


def test_path_is_sanitized(tmp_path):
    backend = LocalJsonBackend(tmp_path)
    assert backend.path_for("../evil user").name == "mock_data_.._evil_user.json"
    assert backend.path_for("../evil user").parent == tmp_path


def test_document_accepts_iso_timestamps():
    ledger = Ledger.from_document(
        {
            "trips": [
                {
                    "id": "t1",
                    "name": "X",
                    "startDate": "2024-08-01T00:00:00.000Z",
                    "endDate": "2024-08-05",
                    "totalBudget": 100,
                    "mainCurrency": "EUR",
                    "preferredCurrencies": ["EUR"],
                }
            ]
        }
    )
    assert ledger.trips[0].start_date.isoformat() == "2024-08-01"
    assert ledger.to_document()["defaultTripId"] is None


@pytest.mark.parametrize(
    "origin,expected",
    [
        ("http://localhost:8000", True),
        ("127.0.0.1", True),
        ("https://abc-123.scf.usercontent.goog", True),
        ("https://spendilog.app", False),
    ],
)
def test_development_probe(origin, expected):
    assert (
        is_development_environment(origin, ["localhost", "127.0.0.1"], [".scf.usercontent.goog"])
        is expected
    )


def test_strategy_selection(tmp_path):
    local = select_backend_strategy(Settings(app_origin="http://localhost", data_dir=tmp_path))
    assert local.mode is BackendMode.LOCAL_MOCK
    assert isinstance(local.backend, LocalJsonBackend)

    remote = InMemoryBackend()
    cloud = select_backend_strategy(
        Settings(app_origin="https://spendilog.app", data_dir=tmp_path), remote=remote
    )
    assert cloud.mode is BackendMode.CLOUD
    assert cloud.backend is remote
