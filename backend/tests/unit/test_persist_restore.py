"""Unit tests for persisting and restoring BufferedItem."""

import gc

import pytest
from pydantic import ValidationError

from encrypted_upload import (
    AlreadyWritingError,
    BufferedItem,
    BufferNotFoundError,
    InvalidRepositoryError,
    PersistedItem,
    ReadError,
)
from encrypted_upload.crypto import decrypt_from, generate_key

THRESHOLD = 100


def _item(repository, data=None, **kwargs) -> BufferedItem:
    item = BufferedItem(
        kwargs.get("field_name", "upload"),
        kwargs.get("content_type", "application/octet-stream"),
        kwargs.get("is_form_field", False),
        kwargs.get("file_name", "data.bin"),
        THRESHOLD,
        repository,
    )
    if data is not None:
        sink = item.write_sink()
        sink.write(data)
        sink.close()
    return item


class TestPersist:
    """Capturing items as records."""

    def test_memory_item_embeds_plaintext(self, repository):
        item = _item(repository, b"in memory")

        record = item.persist()

        assert record.content == b"in memory"
        assert record.store_file is None
        assert record.field_name == "upload"
        assert record.file_name == "data.bin"
        assert record.size_threshold == THRESHOLD
        assert record.repository == repository

    def test_disk_item_references_file(self, repository):
        item = _item(repository, b"D" * 300)

        record = item.persist()

        assert record.content is None
        assert record.store_file == item.store_location()
        assert record.key is not None
        item.delete()

    def test_unwritten_item_persists_empty_content(self, repository):
        record = _item(repository).persist()

        assert record.content == b""
        assert record.key is None

    def test_persist_with_open_sink_rejected(self, repository):
        item = _item(repository)
        sink = item.write_sink()
        sink.write(b"partial")

        with pytest.raises(AlreadyWritingError):
            item.persist()
        sink.close()

    def test_record_json_round_trip(self, repository):
        item = _item(repository, b"D" * 300)
        record = item.persist()

        restored_record = PersistedItem.model_validate_json(record.model_dump_json(by_alias=True))

        assert restored_record == record
        item.delete()

    def test_record_requires_exactly_one_source(self, repository):
        with pytest.raises(ValidationError):
            PersistedItem(size_threshold=1, key=generate_key())
        with pytest.raises(ValidationError):
            PersistedItem(
                size_threshold=1,
                key=generate_key(),
                content=b"x",
                store_file=repository / "upload_x.tmp",
            )

    def test_record_store_file_requires_key(self, repository):
        with pytest.raises(ValidationError):
            PersistedItem(size_threshold=1, store_file=repository / "upload_x.tmp")


class TestRestore:
    """Rebuilding items from records."""

    def test_restore_memory_item(self, repository):
        original = _item(repository, b"small content", file_name="s.txt", is_form_field=True)

        restored = BufferedItem.restore(original.persist())

        assert restored.read_all() == b"small content"
        assert restored.is_in_memory()
        assert restored.name == "s.txt"
        assert restored.is_form_field is True
        assert restored.content_type == "application/octet-stream"

    def test_restore_disk_item_rekeys_and_replaces_file(self, repository):
        plaintext = bytes(range(256)) * 4
        original = _item(repository, plaintext)
        record = original.persist()
        old_file = record.store_file

        restored = BufferedItem.restore(record)

        try:
            assert restored.read_all() == plaintext
            assert restored.size() == len(plaintext)
            assert not restored.is_in_memory()
            new_file = restored.store_location()
            assert new_file != old_file
            assert not old_file.exists()
            assert sorted(repository.glob("upload_*.tmp")) == [new_file]

            with pytest.raises(ReadError):
                with decrypt_from(open(new_file, "rb"), record.key) as source:
                    source.read()
        finally:
            restored.delete()

    def test_restore_through_json(self, repository):
        original = _item(repository, b"J" * 500)
        payload = original.persist().model_dump_json()

        restored = BufferedItem.restore(PersistedItem.model_validate_json(payload))

        assert restored.read_all() == b"J" * 500
        restored.delete()

    def test_original_item_collection_keeps_persisted_file(self, repository):
        original = _item(repository, b"G" * 300)
        record = original.persist()
        del original
        gc.collect()

        assert record.store_file.exists()
        restored = BufferedItem.restore(record)
        assert restored.read_all() == b"G" * 300
        restored.delete()

    def test_restore_missing_file(self, repository):
        original = _item(repository, b"M" * 300)
        record = original.persist()
        original.delete()

        with pytest.raises(BufferNotFoundError):
            BufferedItem.restore(record)
        assert list(repository.glob("upload_*.tmp")) == []

    def test_restore_with_wrong_key_keeps_original_file(self, repository):
        original = _item(repository, b"W" * 300)
        record = original.persist().model_copy(update={"key": generate_key()})

        with pytest.raises(ReadError):
            BufferedItem.restore(record)

        assert record.store_file.exists()
        assert sorted(repository.glob("upload_*.tmp")) == [record.store_file]
        original.delete()

    def test_restore_rejects_missing_repository(self, repository, tmp_path):
        record = _item(repository, b"x").persist().model_copy(
            update={"repository": tmp_path / "gone"}
        )

        with pytest.raises(InvalidRepositoryError):
            BufferedItem.restore(record)

    def test_restore_rejects_file_as_repository(self, repository, tmp_path):
        not_a_dir = tmp_path / "plain-file"
        not_a_dir.write_text("x")
        record = _item(repository, b"x").persist().model_copy(update={"repository": not_a_dir})

        with pytest.raises(InvalidRepositoryError):
            BufferedItem.restore(record)

    def test_restore_rejects_nul_in_repository(self, repository):
        record = _item(repository, b"x").persist().model_copy(
            update={"repository": repository / "bad\0dir"}
        )

        with pytest.raises(InvalidRepositoryError):
            BufferedItem.restore(record)

    def test_restore_without_repository_uses_temp_dir(self):
        original = _item(None, b"T" * 300)
        record = original.persist()

        restored = BufferedItem.restore(record)

        assert restored.read_all() == b"T" * 300
        assert restored.repository is None
        restored.delete()
