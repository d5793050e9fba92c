import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fermes_backend.core.errors import NotFoundError, StoreError
from fermes_backend.infrastructure import SERVER_TIMESTAMP, InMemoryDocumentStore, Increment


@pytest.fixture()
def store():
    return InMemoryDocumentStore()


def test_create_query_and_filters(store):
    store.create_document("stocks", {"secteurId": "a", "item": "ciment", "quantity": 10})
    store.create_document("stocks", {"secteurId": "a", "item": "sable", "quantity": 3})
    store.create_document("stocks", {"secteurId": "b", "item": "ciment", "quantity": 7})

    assert len(store.query("stocks")) == 3
    assert [d["item"] for d in store.query("stocks", {"secteurId": "a", "item": "sable"})] == ["sable"]
    assert {d["secteurId"] for d in store.query("stocks", [("quantity", ">=", 7)])} == {"a", "b"}
    assert len(store.query("stocks", [("secteurId", "in", ["b", "c"])])) == 1
    assert store.query("stocks", [("missing", "<", 3)]) == []


def test_returned_documents_are_copies(store):
    doc_id = store.create_document("rooms", {"numero": "101", "listeOccupants": ["w1"]})

    snapshot = store.get_document("rooms", doc_id)
    snapshot["listeOccupants"].append("w2")

    assert store.get_document("rooms", doc_id)["listeOccupants"] == ["w1"]


def test_increment_and_server_timestamp(store):
    doc_id = store.create_document("stocks", {"quantity": 5, "createdAt": SERVER_TIMESTAMP})
    store.update_document("stocks", doc_id, {"quantity": Increment(-2)})
    store.update_document("stocks", doc_id, {"reserved": Increment(4)})

    doc = store.get_document("stocks", doc_id)
    assert doc["quantity"] == 3
    assert doc["reserved"] == 4
    assert isinstance(doc["createdAt"], str)


def test_missing_documents_and_unknown_collections_raise(store):
    with pytest.raises(NotFoundError):
        store.update_document("rooms", "nope", {"numero": "1"})
    with pytest.raises(NotFoundError):
        store.delete_document("rooms", "nope")
    with pytest.raises(StoreError):
        store.query("unknown")


def test_transaction_rolls_back_every_write(store):
    keep = store.create_document("stocks", {"quantity": 10})

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.update_document("stocks", keep, {"quantity": Increment(-4)})
            store.create_document("stocks", {"quantity": 4})
            raise RuntimeError("boom")

    assert store.get_document("stocks", keep)["quantity"] == 10
    assert len(store.query("stocks")) == 1


def test_subscribers_are_notified_after_commit(store):
    seen: list[int] = []
    unsubscribe = store.subscribe("workers", {"fermeId": "f1"}, lambda docs: seen.append(len(docs)))

    store.create_document("workers", {"fermeId": "f1"})
    with store.transaction():
        store.create_document("workers", {"fermeId": "f1"})
        store.create_document("workers", {"fermeId": "f2"})
        assert seen == [1]

    unsubscribe()
    store.create_document("workers", {"fermeId": "f1"})

    assert seen == [1, 2]
