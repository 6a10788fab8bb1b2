# tests/test_storage.py
"""
Tests del blob store y del storage SQLite, incluido el borrado en cascada.
"""
import io
import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from secureshare.domain.errors import SlotNotFound, StorageFault
from secureshare.domain.slot import FileRecord, Slot, TextRecord
from secureshare.storage.blob_store import BlobStore
from secureshare.storage.sqlite_store import SqliteSlotStorage

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def blob_store(tmp_path):
    return BlobStore(str(tmp_path / "uploads"))


@pytest.fixture
def storage(tmp_path, blob_store):
    st = SqliteSlotStorage(str(tmp_path / "db.sqlite3"), blob_store)
    yield st
    st.close()


def new_slot(slot_id="123456", created_at=NOW, ttl=timedelta(hours=24)) -> Slot:
    return Slot(id=slot_id, password_hash="$argon2id$fake", created_at=created_at, expires_at=created_at + ttl)


def add_blob_file(storage, blob_store, slot_id, content=b"data", name="doc.txt") -> FileRecord:
    filename, size = blob_store.write(io.BytesIO(content))
    record = FileRecord(
        id=uuid4().hex,
        slot_id=slot_id,
        filename=filename,
        original_name=name,
        size=size,
        mime_type="text/plain",
        uploaded_at=NOW,
    )
    storage.add_file(record)
    return record


class TestBlobStore:

    def test_write_uses_random_name(self, blob_store):
        """Test: El nombre del blob no deriva del nombre original."""
        name, size = blob_store.write(io.BytesIO(b"hello"))
        assert size == 5
        assert "/" not in name and "." not in name
        assert blob_store.exists(name)
        assert blob_store.path_for(name).read_bytes() == b"hello"

    def test_names_are_unique(self, blob_store):
        names = {blob_store.write(io.BytesIO(b"x"))[0] for _ in range(20)}
        assert len(names) == 20

    def test_remove_missing_is_not_error(self, blob_store):
        """Test: Borrar un blob inexistente retorna False, no lanza."""
        name, _ = blob_store.write(io.BytesIO(b"x"))
        assert blob_store.remove(name) is True
        assert blob_store.remove(name) is False

    def test_open_reads_blob(self, blob_store):
        name, _ = blob_store.write(io.BytesIO(b"payload"))
        with blob_store.open(name) as fh:
            assert fh.read() == b"payload"

    def test_open_missing_blob(self, blob_store):
        name, _ = blob_store.write(io.BytesIO(b"x"))
        blob_store.remove(name)
        with pytest.raises(FileNotFoundError):
            blob_store.open(name)

    def test_rejects_traversal_names(self, blob_store):
        with pytest.raises(StorageFault):
            blob_store.path_for("../secureshare.db")

    def test_iter_blobs_skips_temp_files(self, blob_store):
        name, _ = blob_store.write(io.BytesIO(b"x"))
        (blob_store.root / ".tmp-123-abc").write_bytes(b"partial")
        assert [n for n, _ in blob_store.iter_blobs()] == [name]


class TestSqliteSlotStorage:

    def test_insert_and_get_slot(self, storage):
        slot = new_slot()
        assert storage.insert_slot(slot) is True
        loaded = storage.get_slot("123456")
        assert loaded == slot
        assert loaded.failed_attempts == 0

    def test_insert_duplicate_id_rejected(self, storage):
        """Test: Un id en uso no se sobreescribe."""
        assert storage.insert_slot(new_slot()) is True
        assert storage.insert_slot(new_slot(created_at=NOW + timedelta(hours=1))) is False
        assert storage.get_slot("123456").created_at == NOW

    def test_get_missing_slot(self, storage):
        assert storage.get_slot("999999") is None

    def test_increment_failed_attempts(self, storage):
        storage.insert_slot(new_slot())
        assert storage.increment_failed_attempts("123456") == 1
        assert storage.increment_failed_attempts("123456") == 2
        assert storage.get_slot("123456").failed_attempts == 2

    def test_increment_missing_slot_returns_zero(self, storage):
        assert storage.increment_failed_attempts("999999") == 0

    def test_text_is_upserted(self, storage):
        """Test: Un texto nuevo reemplaza al anterior."""
        storage.insert_slot(new_slot())
        storage.upsert_text(TextRecord(slot_id="123456", content="first"))
        storage.upsert_text(TextRecord(slot_id="123456", content="second"))
        assert storage.get_text("123456") == TextRecord(slot_id="123456", content="second")

    def test_add_file_to_missing_slot(self, storage, blob_store):
        with pytest.raises(SlotNotFound):
            add_blob_file(storage, blob_store, "999999")

    def test_list_and_get_files(self, storage, blob_store):
        storage.insert_slot(new_slot())
        first = add_blob_file(storage, blob_store, "123456", name="a.txt")
        second = add_blob_file(storage, blob_store, "123456", name="b.txt")
        files = storage.list_files("123456")
        assert [f.id for f in files] == [first.id, second.id]
        assert storage.get_file(second.id) == second
        assert storage.get_file("nope") is None

    def test_list_expired_slots(self, storage):
        storage.insert_slot(new_slot("111111", created_at=NOW - timedelta(hours=30)))
        storage.insert_slot(new_slot("222222", created_at=NOW))
        storage.insert_slot(new_slot("333333", created_at=NOW - timedelta(hours=24)))
        expired = {s.id for s in storage.list_expired_slots(NOW)}
        assert expired == {"111111", "333333"}


class TestCascadingDeletion:

    def test_delete_removes_everything(self, storage, blob_store):
        """Test: 3 archivos + texto, borrar el slot no deja blobs ni records."""
        storage.insert_slot(new_slot())
        records = [add_blob_file(storage, blob_store, "123456", name=f"f{i}.txt") for i in range(3)]
        storage.upsert_text(TextRecord(slot_id="123456", content="hello"))

        assert storage.delete_slot("123456") is True

        assert storage.get_slot("123456") is None
        assert storage.list_files("123456") == []
        assert storage.get_text("123456") is None
        assert all(storage.get_file(r.id) is None for r in records)
        assert list(blob_store.iter_blobs()) == []
        assert storage.referenced_blob_names() == set()

    def test_delete_is_idempotent(self, storage, blob_store):
        """Test: Borrar dos veces no lanza; la segunda retorna False."""
        storage.insert_slot(new_slot())
        add_blob_file(storage, blob_store, "123456")
        assert storage.delete_slot("123456") is True
        assert storage.delete_slot("123456") is False
        assert storage.delete_slot("000000") is False

    def test_delete_tolerates_missing_blob(self, storage, blob_store):
        """Test: Un blob ya borrado no impide borrar los metadatos."""
        storage.insert_slot(new_slot())
        record = add_blob_file(storage, blob_store, "123456")
        os.remove(blob_store.path_for(record.filename))

        assert storage.delete_slot("123456") is True
        assert storage.get_slot("123456") is None

    def test_delete_does_not_touch_other_slots(self, storage, blob_store):
        storage.insert_slot(new_slot("111111"))
        storage.insert_slot(new_slot("222222"))
        add_blob_file(storage, blob_store, "111111")
        keep = add_blob_file(storage, blob_store, "222222")

        storage.delete_slot("111111")

        assert storage.get_slot("222222") is not None
        assert storage.list_files("222222") == [keep]
        assert blob_store.exists(keep.filename)

    def test_id_reusable_after_deletion(self, storage):
        """Test: La unicidad solo se exige entre slots vivos."""
        storage.insert_slot(new_slot())
        storage.delete_slot("123456")
        assert storage.insert_slot(new_slot()) is True
