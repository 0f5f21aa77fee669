"""
Tests for NoteStore: CRUD, search, backups, encryption and failure modes.
"""

import json
from unittest.mock import patch

import pytest

from notecli.config import StoreConfig
from notecli.errors import (
    CorruptCollectionError,
    DecryptionError,
    DuplicateTitleError,
    NotFoundError,
    StorageUnavailable,
    StorageWriteError,
    ValidationError,
)
from notecli.note_store import NoteStore
from notecli.types import MAX_BODY_LENGTH, MAX_TAGS, MAX_TITLE_LENGTH, parse_utc_timestamp

from conftest import TEST_KEY

TRIP = "Excited about the amazing vacation with family in Paris"


def _raw(store) -> list[dict]:
    return json.loads(store.notes_path.read_text(encoding="utf-8"))


# -----------------------------------------------------------------------------
# Add / find
# -----------------------------------------------------------------------------

class TestAdd:

    def test_add_then_find_by_title(self, store):
        body = "  Keep the   spacing\nexactly.  "
        store.add("Spacing", body)
        found = store.find(title="spacing")
        assert found.body == body
        assert found.annotation.word_count == len(body.split())

    def test_trip_plan(self, store):
        note = store.add("Trip Plan", TRIP)
        assert note.category in ("Personal", "Travel")
        assert note.annotation.sentiment.label == "positive"
        assert "positive" in note.tags
        assert "short" in note.tags
        assert note.created_at == note.updated_at

    def test_explicit_category_and_tags(self, store):
        note = store.add("T", "Some text", category=" Ideas ", tags=["a", "b", "a"])
        assert note.category == "Ideas"
        assert note.tags == ("a", "b")

    def test_no_infer(self, store):
        note = store.add("T", TRIP, infer=False)
        assert note.category == "General"
        assert note.tags == ()

    def test_title_stripped(self, store):
        assert store.add("  Padded  ", "x").title == "Padded"

    def test_duplicate_title_case_insensitive(self, store):
        store.add("Trip Plan", TRIP)
        before = store.notes_path.read_bytes()
        with pytest.raises(DuplicateTitleError):
            store.add("trip plan", "something else")
        assert store.notes_path.read_bytes() == before
        assert len(store.load()) == 1
        assert store.list_backups() == []

    @pytest.mark.parametrize("title,body,tags", [
        ("", "body", None),
        ("T", "", None),
        ("T", "body", ["bad tag"]),
    ])
    def test_invalid_input_writes_nothing(self, store, title, body, tags):
        with pytest.raises(ValidationError):
            store.add(title, body, tags=tags)
        assert not store.notes_path.exists()

    def test_ids_unique_and_increasing(self, store):
        ids = [store.add(f"Note {i}", f"body {i}").id for i in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_id_not_reused_after_remove(self, store):
        first = store.add("A", "a")
        second = store.add("B", "b")
        store.remove(second.id)
        third = store.add("C", "c")
        assert third.id > second.id > first.id

    def test_persisted_and_reloaded_by_new_instance(self, store):
        note = store.add("Trip Plan", TRIP)
        with NoteStore(store.path) as other:
            assert other.load() == [note]

    def test_find_requires_key(self, store):
        with pytest.raises(ValidationError):
            store.find()

    def test_find_missing(self, store):
        assert store.find(title="nothing") is None
        assert store.find(id=123) is None

    def test_missing_file_is_empty(self, store):
        assert store.load() == []


# -----------------------------------------------------------------------------
# Update / remove
# -----------------------------------------------------------------------------

class TestUpdate:

    def test_new_body_reannotates(self, store):
        note = store.add("Mood", "A good day")
        updated = store.update(note.id, body="A terrible awful horrible day")
        assert updated.annotation.sentiment.label == "very_negative"
        assert updated.annotation.matches(updated.body)
        assert updated.created_at == note.created_at
        assert parse_utc_timestamp(updated.updated_at) > parse_utc_timestamp(note.updated_at)
        assert store.find(id=note.id) == updated

    def test_category_only_keeps_annotation(self, store):
        note = store.add("T", "Some text")
        updated = store.update(note.id, category="Misc")
        assert updated.category == "Misc"
        assert updated.annotation == note.annotation
        assert parse_utc_timestamp(updated.updated_at) > parse_utc_timestamp(note.updated_at)

    def test_rename_to_other_title_rejected(self, store):
        store.add("A", "a")
        b = store.add("B", "b")
        with pytest.raises(DuplicateTitleError):
            store.update(b.id, title="a")

    def test_rename_case_of_own_title(self, store):
        note = store.add("trip", "x")
        assert store.update(note.id, title="Trip").title == "Trip"

    def test_update_missing(self, store):
        with pytest.raises(NotFoundError):
            store.update(42, body="x")

    def test_replace_tags(self, store):
        note = store.add("T", "x", tags=["a"])
        assert store.update(note.id, tags=["b", "c"]).tags == ("b", "c")


class TestRemove:

    def test_remove_returns_record(self, store):
        note = store.add("T", "x")
        removed = store.remove(note.id)
        assert removed == note
        assert store.load() == []

    def test_remove_missing_writes_nothing(self, store):
        store.add("T", "x")
        before = store.notes_path.read_bytes()
        with pytest.raises(NotFoundError):
            store.remove(999)
        assert store.notes_path.read_bytes() == before
        assert store.list_backups() == []


# -----------------------------------------------------------------------------
# Search / similar
# -----------------------------------------------------------------------------

class TestSearch:

    @pytest.fixture
    def populated(self, store):
        store.add("Paris trip", "Louvre and croissants", tags=["travel"])
        store.add("Groceries", "Milk, eggs, bread", tags=["shopping"])
        store.add("Standup", "Discussed the Paris office move", tags=["work"])
        return store

    def test_default_fields_case_insensitive(self, populated):
        titles = [n.title for n in populated.search("paris")]
        assert titles == ["Paris trip", "Standup"]

    def test_single_field(self, populated):
        assert [n.title for n in populated.search("paris", fields=["title"])] == ["Paris trip"]

    def test_tags_field(self, populated):
        assert [n.title for n in populated.search("shop", fields=["tags"])] == ["Groceries"]

    def test_case_sensitive(self, populated):
        assert populated.search("PARIS", case_sensitive=True) == []
        assert len(populated.search("Paris", case_sensitive=True)) == 2

    def test_unknown_field(self, populated):
        with pytest.raises(ValidationError):
            populated.search("x", fields=["category"])

    def test_no_match(self, populated):
        assert populated.search("zebra") == []


class TestSimilar:

    def test_similar_notes(self, store):
        a = store.add("Paris one", "Trip to Paris", category="Travel", tags=["paris"])
        b = store.add("Paris two", "Back to Paris", category="Travel", tags=["paris"])
        store.add("Other", "Quarterly budget", category="Finance", tags=["money"])
        assert store.similar(a.id) == [b]

    def test_similar_missing(self, store):
        with pytest.raises(NotFoundError):
            store.similar(1)


# -----------------------------------------------------------------------------
# Backups
# -----------------------------------------------------------------------------

class TestBackups:

    def test_first_write_makes_no_backup(self, store):
        store.add("T", "x")
        assert store.list_backups() == []

    def test_backup_equals_previous_state(self, store):
        store.add("A", "a")
        previous = store.notes_path.read_bytes()
        store.add("B", "b")
        backups = store.list_backups()
        assert len(backups) == 1
        assert backups[-1].read_bytes() == previous

    def test_one_backup_per_write(self, store):
        note = store.add("A", "a")
        store.update(note.id, body="b")
        store.update(note.id, body="c")
        store.remove(note.id)
        backups = store.list_backups()
        assert len(backups) == 3
        assert len({p.name for p in backups}) == 3
        assert all(p.name.startswith("notes-backup-") for p in backups)

    def test_backups_ordered_oldest_first(self, store):
        note = store.add("A", "v1")
        store.update(note.id, body="v2")
        store.update(note.id, body="v3")
        bodies = [json.loads(p.read_text())[0]["body"] for p in store.list_backups()]
        assert bodies == ["v1", "v2"]

    def test_retention(self, tmp_path):
        path = tmp_path / "store"
        with NoteStore(path, config=StoreConfig(path=path, backup_retention=2)) as ns:
            note = ns.add("A", "v1")
            for body in ("v2", "v3", "v4", "v5"):
                ns.update(note.id, body=body)
            bodies = [json.loads(p.read_text())[0]["body"] for p in ns.list_backups()]
        assert bodies == ["v3", "v4"]

    def test_backup_failure_aborts_write(self, store):
        store.add("A", "a")
        before = store.notes_path.read_bytes()
        with patch("shutil.copy2", side_effect=OSError("disk full")):
            with pytest.raises(StorageWriteError):
                store.add("B", "b")
        assert store.notes_path.read_bytes() == before


# -----------------------------------------------------------------------------
# Encryption
# -----------------------------------------------------------------------------

class TestEncryption:

    def test_round_trip(self, encrypted_store):
        note = encrypted_store.add("Secret", TRIP, encrypt=True)
        assert encrypted_store.find(id=note.id).body == TRIP
        assert encrypted_store.load() == [note]

    def test_file_holds_ciphertext_only(self, encrypted_store):
        encrypted_store.add("Secret", TRIP, encrypt=True)
        raw = _raw(encrypted_store)[0]
        assert raw["encrypted"] is True
        assert raw["body"] != TRIP
        assert TRIP not in encrypted_store.notes_path.read_text()
        assert "annotation" not in raw
        assert raw["title"] == "Secret"

    def test_decrypted_notes_are_annotated(self, encrypted_store):
        encrypted_store.add("Secret", TRIP, encrypt=True)
        note = encrypted_store.find(title="Secret")
        assert note.annotation.sentiment.label == "positive"
        assert not note.encrypted

    def test_encryption_is_sticky(self, encrypted_store):
        encrypted_store.add("A", "first", encrypt=True)
        encrypted_store.add("B", "second")
        assert all(r["encrypted"] for r in _raw(encrypted_store))

    def test_explicit_decrypt(self, encrypted_store):
        encrypted_store.add("A", "first", encrypt=True)
        encrypted_store.add("B", "second", encrypt=False)
        assert not any(r["encrypted"] for r in _raw(encrypted_store))

    def test_configured_default(self, tmp_path):
        path = tmp_path / "store"
        with NoteStore(path, config=StoreConfig(path=path, encrypt=True),
                       encryption_key=TEST_KEY) as ns:
            ns.add("A", "first")
            assert _raw(ns)[0]["encrypted"] is True

    def test_encrypt_without_key(self, store):
        with pytest.raises(ValidationError):
            store.add("A", "first", encrypt=True)
        assert not store.notes_path.exists()

    def test_load_without_key(self, encrypted_store):
        encrypted_store.add("A", "first", encrypt=True)
        with NoteStore(encrypted_store.path) as keyless:
            with pytest.raises(DecryptionError):
                keyless.load()

    def test_wrong_key_returns_nothing(self, encrypted_store):
        encrypted_store.add("A", "first", encrypt=True)
        with NoteStore(encrypted_store.path, encryption_key="wrong") as other:
            with pytest.raises(DecryptionError):
                other.load()

    def test_save_from_new_handle_stays_encrypted(self, encrypted_store):
        note = encrypted_store.add("Secret", TRIP, encrypt=True)
        with NoteStore(encrypted_store.path, encryption_key=TEST_KEY) as other:
            other.save([note.with_changes(title="Renamed")])
        raw = _raw(encrypted_store)[0]
        assert raw["encrypted"] is True
        assert raw["title"] == "Renamed"
        assert TRIP not in encrypted_store.notes_path.read_text()

    def test_save_after_load_from_new_handle_stays_encrypted(self, encrypted_store):
        encrypted_store.add("Secret", TRIP, encrypt=True)
        with NoteStore(encrypted_store.path, encryption_key=TEST_KEY) as other:
            other.save(other.load())
        assert _raw(encrypted_store)[0]["encrypted"] is True
        assert encrypted_store.find(title="Secret").body == TRIP

    def test_backup_of_encrypted_collection_stays_encrypted(self, encrypted_store):
        encrypted_store.add("A", "first words", encrypt=True)
        encrypted_store.add("B", "second")
        backup = encrypted_store.list_backups()[-1].read_text()
        assert "first words" not in backup


# -----------------------------------------------------------------------------
# Corruption and storage failures
# -----------------------------------------------------------------------------

class TestFailureModes:

    @pytest.mark.parametrize("content", [
        "{not json",
        '{"id": 1}',
        '[{"title": "no id"}]',
        '[{"id": "x", "title": "T", "body": "b", "createdAt": "2026-01-01"}]',
    ])
    def test_corrupt_collection(self, store, content):
        store.notes_path.write_text(content, encoding="utf-8")
        with pytest.raises(CorruptCollectionError):
            store.load()

    def test_non_utf8(self, store):
        store.notes_path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(CorruptCollectionError):
            store.load()

    def test_unreadable_collection(self, store):
        store.notes_path.mkdir()
        with pytest.raises(StorageUnavailable):
            store.load()

    def test_replace_failure_keeps_old_file(self, store):
        store.add("A", "a")
        before = store.notes_path.read_bytes()
        with patch("notecli.note_store.os.replace", side_effect=OSError("no space")):
            with pytest.raises(StorageWriteError):
                store.add("B", "b")
        assert store.notes_path.read_bytes() == before
        leftovers = [p for p in store.path.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []

    def test_storage_errors_are_os_errors(self, store):
        store.notes_path.mkdir()
        with pytest.raises(OSError):
            store.load()

    def test_stale_annotation_recomputed(self, store):
        store.add("A", "A good day")
        data = _raw(store)
        data[0]["body"] = "A terrible awful horrible day indeed"
        store.notes_path.write_text(json.dumps(data), encoding="utf-8")
        note = store.find(title="A")
        assert note.annotation.sentiment.label == "very_negative"
        assert note.annotation.word_count == 6

    def test_missing_annotation_computed(self, store):
        store.notes_path.write_text(json.dumps([{
            "id": 1, "title": "Legacy", "body": "Old note without analysis",
            "createdAt": "2024-05-01T10:00:00Z",
        }]), encoding="utf-8")
        note = store.find(id=1)
        assert note.annotation is not None
        assert note.annotation.word_count == 4

    def test_save_rejects_duplicate_ids(self, store):
        note = store.add("A", "a")
        with pytest.raises(ValidationError):
            store.save([note, note.with_changes(title="B")])

    @pytest.mark.parametrize("changes", [
        {"body": "x" * (MAX_BODY_LENGTH + 1)},
        {"body": ""},
        {"title": "x" * (MAX_TITLE_LENGTH + 1)},
        {"category": ""},
        {"tags": ("not valid",)},
        {"tags": tuple(f"t{i}" for i in range(MAX_TAGS + 1))},
    ])
    def test_save_rejects_invalid_record(self, store, changes):
        note = store.add("A", "a")
        before = store.notes_path.read_bytes()
        with pytest.raises(ValidationError):
            store.save([note.with_changes(**changes)])
        assert store.notes_path.read_bytes() == before
        assert store.list_backups() == []

    def test_whitespace_only_body_saved_verbatim(self, store):
        note = store.add("Blank", "   ")
        assert store.find(id=note.id).body == "   "
        assert note.tags == ()

    def test_save_replaces_collection(self, store):
        a = store.add("A", "a")
        store.add("B", "b")
        store.save([a])
        assert [n.title for n in store.load()] == ["A"]


# -----------------------------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------------------------

class TestLifecycle:

    def test_creates_config(self, tmp_path):
        path = tmp_path / "fresh"
        with NoteStore(path) as ns:
            assert ns.config.config_path.exists()
            assert ns.config.annotator.name == "lexicon"

    def test_ops_log_written(self, store):
        store.add("A", "a")
        log = (store.path / "notecli-ops.log").read_text()
        assert "Saved 1 notes" in log

    def test_close_detaches_ops_log(self, tmp_path):
        import logging
        ns = NoteStore(tmp_path / "store")
        handler = ns._ops_log_handler
        assert handler in logging.getLogger("notecli").handlers
        ns.close()
        assert handler not in logging.getLogger("notecli").handlers
        ns.close()

    def test_unusable_store_path(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageUnavailable):
            NoteStore(blocker / "store")

    def test_env_default_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NOTECLI_STORE_PATH", str(tmp_path / "env-store"))
        with NoteStore() as ns:
            assert ns.path == tmp_path / "env-store"
