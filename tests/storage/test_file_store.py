"""
File Collection Store Tests
===========================

JSON Lines persistence: durability across instances, torn-write
tolerance and error surfacing.
"""

import json
import logging
import os

import pytest

from inference.contracts.base import PersistenceError, Resonance, SnapshotSource
from inference.storage import (
    SNAPSHOTS, FileCollectionStore, InMemoryCollectionStore, SnapshotStore,
    StorageConfig, create_collection_store,
)

from tests.fixtures import TickingClock, T3, USER_A, make_claim, make_pattern


class TestFileCollectionStore:

    def test_append_then_read_in_order(self, tmp_path):
        store = FileCollectionStore(str(tmp_path))

        store.append("things", {"n": 1})
        store.append("things", {"n": 2, "nested": {"tags": ["a", "b"]}})

        assert store.read("things") == [{"n": 1}, {"n": 2, "nested": {"tags": ["a", "b"]}}]
        assert store.read("missing") == []

    def test_one_line_per_record(self, tmp_path):
        store = FileCollectionStore(str(tmp_path))
        store.append("things", {"text": "line\nbreak"})

        with open(tmp_path / "things.jsonl", encoding="utf-8") as f:
            lines = f.readlines()

        assert len(lines) == 1
        assert json.loads(lines[0]) == {"text": "line\nbreak"}

    def test_trailing_partial_line_is_skipped(self, tmp_path, caplog):
        store = FileCollectionStore(str(tmp_path))
        store.append("things", {"n": 1})
        with open(tmp_path / "things.jsonl", "a", encoding="utf-8") as f:
            f.write('{"n": 2, "trunc')

        with caplog.at_level(logging.WARNING, logger="inference.storage.backends"):
            records = store.read("things")

        assert records == [{"n": 1}]
        assert "partial record" in caplog.text

    def test_append_after_torn_write_is_kept(self, tmp_path):
        store = FileCollectionStore(str(tmp_path))
        store.append("things", {"n": 1})
        with open(tmp_path / "things.jsonl", "a", encoding="utf-8") as f:
            f.write('{"n": 2, "trunc')

        store.append("things", {"n": 3})

        assert store.read("things") == [{"n": 1}, {"n": 3}]

    def test_unreadable_line_is_skipped(self, tmp_path):
        with open(tmp_path / "things.jsonl", "w", encoding="utf-8") as f:
            f.write('{"n": 1}\nnot json\n{"n": 3}\n')

        records = FileCollectionStore(str(tmp_path)).read("things")

        assert records == [{"n": 1}, {"n": 3}]

    def test_unusable_directory_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(PersistenceError):
            FileCollectionStore(str(blocker / "store"))


class TestSnapshotStoreOnDisk:

    def test_snapshots_survive_restart(self, tmp_path):
        claims = (make_claim("c1", 6, "withdraw"), make_claim("c2", 6, "quiet"))
        patterns = (make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.53),)

        writer = SnapshotStore(FileCollectionStore(str(tmp_path)), clock=TickingClock())
        first = writer.create_snapshot(USER_A, SnapshotSource.ONBOARDING, claims, patterns, ())
        writer.record_claim_feedback(USER_A, "c1", Resonance.FITS)

        reader = SnapshotStore(FileCollectionStore(str(tmp_path)), clock=TickingClock(T3))
        second = reader.create_snapshot(USER_A, SnapshotSource.CHECK_IN, claims, patterns, ())

        assert reader.get_snapshot(first.snapshot_id) == first
        assert second.previous_snapshot_id == first.snapshot_id
        assert reader.get_latest_snapshot(USER_A) == second
        assert reader.get_claim_confidence_adjustment("c1") == 0.1
        assert os.path.exists(tmp_path / f"{SNAPSHOTS}.jsonl")

    def test_torn_snapshot_write_is_invisible(self, tmp_path):
        store = SnapshotStore(FileCollectionStore(str(tmp_path)), clock=TickingClock())
        first = store.create_snapshot(USER_A, SnapshotSource.ONBOARDING, (), (), ())
        with open(tmp_path / f"{SNAPSHOTS}.jsonl", "a", encoding="utf-8") as f:
            f.write('{"snapshot_id": "snap_torn", "user_id": "%s"' % USER_A)

        assert store.get_latest_snapshot(USER_A) == first
        assert store.get_snapshot("snap_torn") is None


class TestStorageConfig:

    def test_memory_is_default(self):
        assert isinstance(create_collection_store(), InMemoryCollectionStore)

    def test_file_backend(self, tmp_path):
        store = create_collection_store(StorageConfig("file", str(tmp_path)))

        assert isinstance(store, FileCollectionStore)
        assert store.storage_dir == str(tmp_path)

    def test_file_backend_requires_directory(self):
        with pytest.raises(ValueError):
            create_collection_store(StorageConfig("file"))

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_collection_store(StorageConfig("sqlite"))
