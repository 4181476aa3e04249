#!/usr/bin/env python3
"""Tests for the document store: batches, queries, subscriptions, YAML persistence."""

import os

import pytest
import yaml

from garage import DocumentStore, StorageError, YamlDocumentStore
from garage.store import LOGS, TASKS, VEHICLES, load_documents


def seeded_store(**kwargs):
    return DocumentStore(
        {
            VEHICLES: [{"id": "v1", "userId": "u1", "currentOdometer": 48000}],
            TASKS: [
                {"id": "t1", "vehicleId": "v1", "userId": "u1"},
                {"id": "t2", "vehicleId": "v1", "userId": "u1"},
                {"id": "t3", "vehicleId": "v2", "userId": "u2"},
            ],
        },
        **kwargs,
    )


# =============================================================================
# Reads
# =============================================================================


class TestReads:
    """Tests for get, all and query."""

    def test_get_returns_copy(self):
        store = seeded_store()
        doc = store.get(VEHICLES, "v1")
        doc["currentOdometer"] = 0
        assert store.get(VEHICLES, "v1")["currentOdometer"] == 48000

    def test_get_missing(self):
        assert seeded_store().get(VEHICLES, "nope") is None

    def test_query_by_field(self):
        assert [d["id"] for d in seeded_store().query(TASKS, "vehicleId", "v1")] == ["t1", "t2"]

    def test_query_requires_index(self):
        store = seeded_store(indexed_fields=("userId",))
        assert len(store.query(TASKS, "userId", "u1")) == 2
        with pytest.raises(StorageError, match="index"):
            store.query(TASKS, "vehicleId", "v1")

    def test_unknown_collection(self):
        with pytest.raises(StorageError):
            seeded_store().all("trucks")


# =============================================================================
# Batches
# =============================================================================


class TestWriteBatch:
    """Tests for atomic batch commits."""

    def test_applies_all_operations(self):
        store = seeded_store()
        batch = store.batch()
        batch.set(LOGS, "l1", {"id": "l1", "vehicleId": "v1"})
        batch.update(VEHICLES, "v1", {"currentOdometer": 50000})
        batch.delete(TASKS, "t1")
        assert len(batch) == 3
        batch.commit()

        assert store.get(LOGS, "l1") is not None
        assert store.get(VEHICLES, "v1") == {"id": "v1", "userId": "u1", "currentOdometer": 50000}
        assert store.get(TASKS, "t1") is None

    def test_nothing_written_before_commit(self):
        store = seeded_store()
        store.batch().delete(TASKS, "t1")
        assert store.get(TASKS, "t1") is not None

    def test_failure_mid_batch_writes_nothing(self):
        """An update of a missing document fails the whole batch."""
        store = seeded_store()
        before = store.snapshot()
        batch = store.batch()
        batch.delete(TASKS, "t1")
        batch.update(VEHICLES, "gone", {"currentOdometer": 1})
        batch.delete(TASKS, "t2")
        with pytest.raises(StorageError):
            batch.commit()
        assert store.snapshot() == before

    def test_persist_failure_writes_nothing(self, monkeypatch):
        store = seeded_store()
        before = store.snapshot()

        def fail(state):
            raise StorageError("disk full")

        monkeypatch.setattr(store, "_persist", fail)
        with pytest.raises(StorageError):
            store.batch().delete(TASKS, "t1").delete(TASKS, "t2").commit()
        assert store.snapshot() == before

    def test_batch_commits_once(self):
        store = seeded_store()
        batch = store.batch().delete(TASKS, "t1")
        batch.commit()
        with pytest.raises(StorageError):
            batch.commit()

    def test_delete_missing_is_noop(self):
        store = seeded_store()
        store.delete(TASKS, "nope")
        assert len(store.all(TASKS)) == 3

    def test_set_stores_copy(self):
        store = seeded_store()
        doc = {"id": "l1", "vehicleId": "v1"}
        store.set(LOGS, "l1", doc)
        doc["vehicleId"] = "changed"
        assert store.get(LOGS, "l1")["vehicleId"] == "v1"


# =============================================================================
# Subscriptions
# =============================================================================


class TestSubscriptions:
    """Tests for live query subscriptions."""

    def test_delivers_current_result_immediately(self):
        store = seeded_store()
        seen = []
        store.subscribe(TASKS, "userId", "u1", lambda docs: seen.append([d["id"] for d in docs]))
        assert seen == [["t1", "t2"]]

    def test_delivers_after_matching_commit(self):
        store = seeded_store()
        seen = []
        store.subscribe(TASKS, "userId", "u1", lambda docs: seen.append([d["id"] for d in docs]))
        store.delete(TASKS, "t1")
        assert seen[-1] == ["t2"]

    def test_skips_unchanged_results(self):
        store = seeded_store()
        seen = []
        store.subscribe(TASKS, "userId", "u1", seen.append)
        store.delete(TASKS, "t3")
        store.set(VEHICLES, "v9", {"id": "v9", "userId": "u1"})
        assert len(seen) == 1

    def test_one_commit_one_delivery(self):
        store = seeded_store()
        seen = []
        store.subscribe(TASKS, "userId", "u1", seen.append)
        store.batch().delete(TASKS, "t1").delete(TASKS, "t2").commit()
        assert len(seen) == 2
        assert seen[-1] == []

    def test_unsubscribe_stops_delivery(self):
        store = seeded_store()
        seen = []
        sub = store.subscribe(TASKS, "userId", "u1", seen.append)
        assert store.subscription_count == 1
        sub.unsubscribe()
        sub.unsubscribe()
        store.delete(TASKS, "t1")
        assert len(seen) == 1
        assert store.subscription_count == 0

    def test_query_error_goes_to_error_callback(self):
        store = seeded_store(indexed_fields=("userId",))
        errors = []
        seen = []
        store.subscribe(TASKS, "fleetId", "f1", seen.append, on_error=errors.append)
        assert seen == []
        assert len(errors) == 1
        assert isinstance(errors[0], StorageError)

    def test_query_error_without_callback_is_logged(self, caplog):
        store = seeded_store(indexed_fields=("userId",))
        store.subscribe(TASKS, "fleetId", "f1", lambda docs: None)
        assert "requires an index" in caplog.text

    def test_listener_error_does_not_fail_commit(self, caplog):
        store = seeded_store()
        calls = []

        def listener(docs):
            calls.append(docs)
            if len(calls) > 1:
                raise RuntimeError("boom")

        store.subscribe(TASKS, "userId", "u1", listener)
        store.delete(TASKS, "t1")
        assert store.get(TASKS, "t1") is None
        assert "raised" in caplog.text


# =============================================================================
# YAML persistence
# =============================================================================


class TestYamlDocumentStore:
    """Tests for YamlDocumentStore."""

    def test_missing_file_starts_empty(self, tmp_path):
        store = YamlDocumentStore(tmp_path / "garage.yaml")
        assert store.snapshot() == {VEHICLES: [], TASKS: [], LOGS: []}
        assert not (tmp_path / "garage.yaml").exists()

    def test_commit_writes_file(self, tmp_path):
        path = tmp_path / "garage.yaml"
        store = YamlDocumentStore(path)
        store.set(VEHICLES, "v1", {"id": "v1", "make": "Subaru", "createdAt": "2025-01-15T10:00:00+00:00"})

        with open(path) as f:
            data = yaml.safe_load(f)
        assert data[VEHICLES] == [
            {"id": "v1", "make": "Subaru", "createdAt": "2025-01-15T10:00:00+00:00"}
        ]
        assert not (tmp_path / "garage.yaml.tmp").exists()

    def test_reload(self, tmp_path):
        path = tmp_path / "garage.yaml"
        YamlDocumentStore(path).set(TASKS, "t1", {"id": "t1", "vehicleId": "v1"})
        assert YamlDocumentStore(path).get(TASKS, "t1") == {"id": "t1", "vehicleId": "v1"}
        assert load_documents(path)[LOGS] == []

    def test_write_error_leaves_file_and_state(self, tmp_path):
        path = tmp_path / "garage.yaml"
        store = YamlDocumentStore(path)
        store.set(TASKS, "t1", {"id": "t1", "vehicleId": "v1"})
        before = path.read_text()

        # A directory where the temp file should go makes the write fail.
        (tmp_path / "garage.yaml.tmp").mkdir()
        with pytest.raises(StorageError):
            store.delete(TASKS, "t1")
        assert path.read_text() == before
        assert store.get(TASKS, "t1") is not None

    def test_serialization_error_is_storage_error(self, tmp_path, monkeypatch):
        path = tmp_path / "garage.yaml"
        store = YamlDocumentStore(path)
        store.set(TASKS, "t1", {"id": "t1", "vehicleId": "v1"})
        before = path.read_text()

        def broken_dump(data, fp, **kwargs):
            fp.write("vehicles:\n")
            raise yaml.YAMLError("cannot represent object")

        monkeypatch.setattr(yaml, "dump", broken_dump)
        with pytest.raises(StorageError):
            store.set(TASKS, "t2", {"id": "t2", "vehicleId": "v1"})
        assert path.read_text() == before
        assert store.get(TASKS, "t2") is None

    def test_failed_write_removes_temp_file(self, tmp_path, monkeypatch):
        path = tmp_path / "garage.yaml"
        store = YamlDocumentStore(path)

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(StorageError):
            store.set(VEHICLES, "v1", {"id": "v1"})
        assert not (tmp_path / "garage.yaml.tmp").exists()
        assert not path.exists()
