"""
Tests for storage backends and transaction support
"""

import pytest

from banking_app.storage import (
    InMemoryStorage, SQLiteStorage, StorageInterface, create_storage
)


record = {"id": "acc_001", "account_holder": "Alice", "balance": "100.50"}


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "test.db")
    yield backend
    backend.close()


class TestStorageBackends:
    """Behaviour shared by every backend"""

    def test_basic_operations(self, storage):
        storage.save("accounts", "acc_001", record)
        assert storage.load("accounts", "acc_001") == record
        assert storage.exists("accounts", "acc_001")
        assert not storage.exists("accounts", "missing")
        assert storage.load("accounts", "missing") is None

        storage.save("accounts", "acc_002", {"id": "acc_002", "account_holder": "Bob"})
        assert storage.count("accounts") == 2

        results = storage.find("accounts", {"account_holder": "Bob"})
        assert [r["id"] for r in results] == ["acc_002"]
        assert storage.find("accounts", {"account_holder": "Nobody"}) == []

        assert storage.delete("accounts", "acc_001")
        assert not storage.delete("accounts", "acc_001")
        assert storage.count("accounts") == 1

        storage.clear_table("accounts")
        assert storage.count("accounts") == 0

    def test_load_all_keeps_insertion_order_across_updates(self, storage):
        for name in ["Carol", "Alice", "Bob"]:
            storage.save("accounts", name, {"id": name})
        storage.save("accounts", "Carol", {"id": "Carol", "balance": "1"})

        assert [r["id"] for r in storage.load_all("accounts")] == ["Carol", "Alice", "Bob"]

    def test_loaded_records_are_copies(self, storage):
        storage.save("accounts", "acc_001", dict(record))
        loaded = storage.load("accounts", "acc_001")
        loaded["balance"] = "0"
        assert storage.load("accounts", "acc_001")["balance"] == "100.50"

    def test_atomic_commit(self, storage):
        with storage.atomic():
            storage.save("accounts", "acc_001", record)
            storage.save("bank_state", "totals", {"id": "totals", "total_deposits": "100.50"})

        assert storage.load("accounts", "acc_001") == record
        assert storage.load("bank_state", "totals")["total_deposits"] == "100.50"

    def test_atomic_rollback(self, storage):
        storage.save("accounts", "acc_001", record)

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("accounts", "acc_001", {**record, "balance": "0.00"})
                storage.save("accounts", "acc_002", {"id": "acc_002"})
                raise RuntimeError("boom")

        assert storage.load("accounts", "acc_001") == record
        assert not storage.exists("accounts", "acc_002")

    def test_outer_rollback_undoes_committed_inner_block(self, storage):
        storage.save("accounts", "acc_001", record)

        with pytest.raises(RuntimeError):
            with storage.atomic():
                with storage.atomic():
                    storage.save("accounts", "acc_002", {"id": "acc_002"})
                storage.save("accounts", "acc_001", {**record, "balance": "0.00"})
                raise RuntimeError("boom")

        assert storage.load("accounts", "acc_001") == record
        assert not storage.exists("accounts", "acc_002")

    def test_inner_rollback_keeps_outer_writes(self, storage):
        with storage.atomic():
            storage.save("accounts", "acc_001", record)
            with pytest.raises(RuntimeError):
                with storage.atomic():
                    storage.save("accounts", "acc_002", {"id": "acc_002"})
                    raise RuntimeError("boom")

        assert storage.load("accounts", "acc_001") == record
        assert not storage.exists("accounts", "acc_002")


class TestSQLiteStorage:
    """SQLite specific behaviour"""

    def test_persistence_across_connections(self, tmp_path):
        db_path = tmp_path / "bank.db"
        storage = SQLiteStorage(db_path)
        storage.save("accounts", "acc_001", record)
        storage.close()

        storage = SQLiteStorage(db_path)
        assert storage.load("accounts", "acc_001") == record
        storage.close()


class TestCreateStorage:
    """Test building backends from URLs"""

    def test_memory_url(self):
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_memory_url(self):
        storage = create_storage("sqlite://")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == ":memory:"
        storage.close()

    def test_sqlite_file_url(self, tmp_path):
        storage = create_storage(f"sqlite:///{tmp_path / 'bank.db'}")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == str(tmp_path / 'bank.db')
        assert isinstance(storage, StorageInterface)
        storage.close()

    def test_unsupported_url(self):
        with pytest.raises(ValueError, match="Unsupported database URL"):
            create_storage("postgresql://localhost/bank")
