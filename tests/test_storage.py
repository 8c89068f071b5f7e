"""
Tests for storage backends and transaction support
"""

import pytest

from lending_desk.storage import (
    InMemoryStorage, SQLiteStorage, StorageInterface, create_storage,
)


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "desk.db")
    yield backend
    backend.close()


class TestStorageBackends:
    """Behaviour shared by every backend"""

    def test_basic_operations(self, storage):
        storage.save("loans", "L1", {"id": "L1", "debtor_name": "João", "principal": "1000.50"})
        storage.save("loans", "L2", {"id": "L2", "debtor_name": "Maria", "principal": "200"})

        assert storage.load("loans", "L1")["principal"] == "1000.50"
        assert storage.load("loans", "missing") is None
        assert storage.exists("loans", "L2")
        assert storage.count("loans") == 2
        assert [r["id"] for r in storage.find("loans", {"debtor_name": "Maria"})] == ["L2"]

        assert storage.delete("loans", "L1")
        assert not storage.delete("loans", "L1")
        assert storage.count("loans") == 1

    def test_load_all_keeps_insertion_order_on_update(self, storage):
        for record_id in ("a", "b", "c"):
            storage.save("payments", record_id, {"id": record_id, "amount": "1"})
        storage.save("payments", "a", {"id": "a", "amount": "2"})

        records = storage.load_all("payments")
        assert [r["id"] for r in records] == ["a", "b", "c"]
        assert records[0]["amount"] == "2"

    def test_loaded_records_are_copies(self, storage):
        storage.save("partners", "P1", {"id": "P1", "name": "Ana"})
        loaded = storage.load("partners", "P1")
        loaded["name"] = "changed"
        assert storage.load("partners", "P1")["name"] == "Ana"

    def test_delete_where(self, storage):
        storage.save("participations", "x1", {"id": "x1", "loan_id": "L1"})
        storage.save("participations", "x2", {"id": "x2", "loan_id": "L1"})
        storage.save("participations", "x3", {"id": "x3", "loan_id": "L2"})

        assert storage.delete_where("participations", {"loan_id": "L1"}) == 2
        assert [r["id"] for r in storage.load_all("participations")] == ["x3"]
        assert storage.delete_where("participations", {"loan_id": "L1"}) == 0

    def test_clear_table(self, storage):
        storage.save("loans", "L1", {"id": "L1"})
        storage.clear_table("loans")
        assert storage.count("loans") == 0
        assert storage.load_all("empty") == []

    def test_atomic_commits(self, storage):
        with storage.atomic():
            storage.save("loans", "L1", {"id": "L1"})
            storage.save("participations", "x1", {"id": "x1", "loan_id": "L1"})
        assert storage.count("loans") == 1
        assert storage.count("participations") == 1

    def test_atomic_rolls_back(self, storage):
        storage.save("loans", "L0", {"id": "L0"})

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.save("loans", "L1", {"id": "L1"})
                storage.delete("loans", "L0")
                raise RuntimeError("boom")

        assert [r["id"] for r in storage.load_all("loans")] == ["L0"]


class TestSQLitePersistence:
    """Data outlives the connection"""

    def test_reopen(self, tmp_path):
        path = tmp_path / "desk.db"
        storage = SQLiteStorage(path)
        storage.save("loans", "L1", {"id": "L1", "principal": "1000"})
        storage.close()

        reopened = SQLiteStorage(path)
        assert reopened.load("loans", "L1") == {"id": "L1", "principal": "1000"}
        reopened.close()


class TestCreateStorage:
    """Test backend selection by URL"""

    def test_memory(self):
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_file(self, tmp_path):
        storage = create_storage(f"sqlite:///{tmp_path / 'desk.db'}")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path.endswith("desk.db")
        storage.close()

    def test_sqlite_in_process(self):
        storage = create_storage("sqlite://")
        assert isinstance(storage, StorageInterface)
        assert storage.db_path == ":memory:"
        storage.close()

    def test_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported database URL"):
            create_storage("postgresql://localhost/desk")
