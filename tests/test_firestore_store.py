"""FirestoreBackend against a mocked Firestore client (no network)."""

from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions

from spendlog.core.errors import PersistenceError, SubscriptionError
from spendlog.db.firestore_store import FirestoreBackend
from spendlog.models.ledger import Ledger


def _client_with_doc(doc):
    client = MagicMock()
    client.collection.return_value.document.return_value = doc
    return client


def _snapshot(document):
    snap = MagicMock()
    snap.exists = document is not None
    snap.to_dict.return_value = document
    return snap


@pytest.mark.asyncio
async def test_fetch_missing_document_returns_none():
    doc = MagicMock()
    doc.get.return_value = _snapshot(None)
    backend = FirestoreBackend(_client_with_doc(doc))
    assert await backend.fetch("u1") is None


@pytest.mark.asyncio
async def test_save_writes_camel_case_document(ferry_ledger):
    doc = MagicMock()
    client = _client_with_doc(doc)
    backend = FirestoreBackend(client, collection="ledgers")

    await backend.save("u1", ferry_ledger)

    client.collection.assert_called_with("ledgers")
    written = doc.set.call_args[0][0]
    assert written["defaultTripId"] == "t-a"
    assert "categoryBudgets" in written["trips"][0]


@pytest.mark.asyncio
async def test_backend_errors_become_persistence_errors():
    doc = MagicMock()
    doc.get.side_effect = google_exceptions.ServiceUnavailable("down")
    doc.set.side_effect = google_exceptions.PermissionDenied("nope")
    backend = FirestoreBackend(_client_with_doc(doc))

    with pytest.raises(PersistenceError):
        await backend.fetch("u1")
    with pytest.raises(PersistenceError):
        await backend.save("u1", Ledger())


def test_subscribe_translates_snapshots(ferry_ledger):
    doc = MagicMock()
    backend = FirestoreBackend(_client_with_doc(doc))
    snapshots, errors = [], []

    unsubscribe = backend.subscribe("u1", snapshots.append, errors.append)
    callback = doc.on_snapshot.call_args[0][0]

    callback([_snapshot(ferry_ledger.to_document())], [], None)
    callback([_snapshot(None)], [], None)
    callback([_snapshot({"trips": [{"id": "broken"}]})], [], None)

    assert snapshots == [ferry_ledger, None]
    assert isinstance(errors[0], SubscriptionError)
    unsubscribe()
    doc.on_snapshot.return_value.unsubscribe.assert_called_once()
