"""
Transactional document store: reads return copies, writes are buffered until
commit, and a commit fails as a whole when anything it read has moved.
"""

import pytest

from locadora.models.store import (
    DocumentNotFoundError,
    Store,
    TransactionConflict,
    TransactionError,
)


def put_vehicle(store, vid="V1", status="available"):
    store.set("vehicles", vid, {"plate": "TST1234", "status": status})
    return vid


def test_reads_are_copies(store):
    put_vehicle(store)
    doc = store.get("vehicles", "V1")
    doc["status"] = "sold"
    assert store.get("vehicles", "V1")["status"] == "available"
    assert doc is not store.vehicles["V1"]


def test_set_stamps_the_document_id(store):
    put_vehicle(store, vid="CH1")
    assert store.get("vehicles", "CH1")["id"] == "CH1"
    assert store.where("vehicles", plate="TST1234")[0]["id"] == "CH1"


def test_unknown_collection_is_an_error(store):
    from locadora.models.store import StoreError
    with pytest.raises(StoreError):
        store.get("users", "x")


def test_transaction_commits_all_writes_and_returns_result(store):
    put_vehicle(store)

    def work(tx):
        v = tx.get("vehicles", "V1")
        tx.set("rentals", "R1", {"vehicle_id": "V1", "status": "active"})
        tx.update("vehicles", "V1", {"status": "rented"})
        return v["status"]

    assert store.run_transaction(work) == "available"
    assert store.get("rentals", "R1")["status"] == "active"
    assert store.get("vehicles", "V1")["status"] == "rented"


def test_writes_are_invisible_before_commit(store):
    put_vehicle(store)
    seen = {}

    def work(tx):
        tx.get("vehicles", "V1")
        tx.update("vehicles", "V1", {"status": "rented"})
        seen["during"] = store.get("vehicles", "V1")["status"]

    store.run_transaction(work)
    assert seen["during"] == "available"
    assert store.get("vehicles", "V1")["status"] == "rented"


def test_concurrent_write_aborts_the_whole_transaction(store):
    put_vehicle(store)

    def work(tx):
        tx.get("vehicles", "V1")
        # another request commits in between our read and our commit
        store.update("vehicles", "V1", {"status": "rented"})
        tx.set("rentals", "R1", {"vehicle_id": "V1"})
        tx.update("vehicles", "V1", {"status": "rented"})

    with pytest.raises(TransactionConflict):
        store.run_transaction(work)
    assert store.get("rentals", "R1") is None


def test_creation_of_a_document_read_as_missing_is_a_conflict(store):
    def work(tx):
        assert tx.get("clients", "C1") is None
        store.set("clients", "C1", {"status": "active"})
        tx.set("clients", "C1", {"status": "inactive"})

    with pytest.raises(TransactionConflict):
        store.run_transaction(work)
    assert store.get("clients", "C1")["status"] == "active"


def test_reads_after_writes_are_rejected(store):
    put_vehicle(store)

    def work(tx):
        tx.update("vehicles", "V1", {"status": "rented"})
        tx.get("vehicles", "V1")

    with pytest.raises(TransactionError):
        store.run_transaction(work)
    assert store.get("vehicles", "V1")["status"] == "available"


def test_update_of_missing_document_writes_nothing(store):
    def work(tx):
        tx.set("rentals", "R1", {"status": "active"})
        tx.update("vehicles", "missing", {"status": "rented"})

    with pytest.raises(DocumentNotFoundError):
        store.run_transaction(work)
    assert store.get("rentals", "R1") is None


def test_set_then_update_in_one_transaction(store):
    def work(tx):
        tx.set("rentals", "R1", {"status": "active"})
        tx.update("rentals", "R1", {"amount": 10.0})

    store.run_transaction(work)
    assert store.get("rentals", "R1") == {"id": "R1", "status": "active", "amount": 10.0}


def test_error_inside_transaction_writes_nothing(store):
    def work(tx):
        tx.set("rentals", "R1", {"status": "active"})
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        store.run_transaction(work)
    assert store.rentals == {}


def test_persists_and_reloads(tmp_path):
    path = tmp_path / "data.pkl"
    first = Store(path)
    first.set("clients", "08832661489", {"status": "active"})
    first.run_transaction(lambda tx: tx.set("rentals", "R1", {"client_id": "08832661489"}))

    second = Store(path)
    assert second.get("clients", "08832661489")["status"] == "active"
    assert second.get("rentals", "R1")["client_id"] == "08832661489"


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "data.pkl"
    path.write_bytes(b"not a pickle")
    st = Store(path)
    assert st.clients == {} and st.vehicles == {} and st.rentals == {}


def test_clear_empties_every_collection(store):
    put_vehicle(store)
    store.set("rentals", "R1", {"vehicle_id": "V1"})
    store.clear()
    assert store.vehicles == {} and store.rentals == {}
