"""Tests for the workspace file and the operation store."""
import json

import pytest

from storesync.models import OperationStatus
from storesync.services.operation_store import OperationStore
from storesync.services.workspace import WorkspaceState, default_workspace_path


@pytest.fixture
def workspace(tmp_path):
    return WorkspaceState(tmp_path / "state" / ".storesync.json")


@pytest.fixture
def store(workspace):
    return OperationStore(workspace)


class TestWorkspaceState:
    def test_missing_file_is_created(self, workspace):
        state = workspace.load()
        assert state == {"fileSearchStores": {}, "uploadOperations": {}}
        assert workspace.path.exists()

    def test_corrupt_file_falls_back_to_defaults(self, workspace):
        workspace.path.parent.mkdir(parents=True)
        workspace.path.write_text("{not json")
        assert workspace.load() == {"fileSearchStores": {}, "uploadOperations": {}}

    def test_invalid_section_is_reset(self, workspace):
        workspace.path.parent.mkdir(parents=True)
        workspace.path.write_text(json.dumps({"fileSearchStores": [], "extra": 1}))
        state = workspace.load()
        assert state["fileSearchStores"] == {}
        assert state["extra"] == 1

    def test_save_leaves_no_temp_files(self, workspace):
        workspace.save({"fileSearchStores": {"docs": "fileSearchStores/1"}, "uploadOperations": {}})
        assert [p.name for p in workspace.path.parent.iterdir()] == [".storesync.json"]

    def test_store_names(self, workspace):
        workspace.add_store("docs", "fileSearchStores/1")
        assert workspace.stores() == {"docs": "fileSearchStores/1"}
        assert workspace.resolve_store("docs") == "fileSearchStores/1"
        assert workspace.resolve_store("fileSearchStores/2") == "fileSearchStores/2"
        assert workspace.resolve_store("unknown") == "unknown"
        assert workspace.remove_store("fileSearchStores/1") is True
        assert workspace.remove_store("fileSearchStores/1") is False
        assert workspace.stores() == {}

    def test_default_path_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STORESYNC_WORKSPACE", str(tmp_path / "ws.json"))
        assert default_workspace_path() == tmp_path / "ws.json"


class TestOperationStore:
    def test_create_and_get(self, store):
        operation = store.create("/data", "fileSearchStores/1", smart_sync=True)
        assert operation.status == OperationStatus.PENDING
        assert operation.started_at.endswith("Z")

        loaded = store.get(operation.id)
        assert loaded == operation

    def test_ids_are_unique(self, store):
        first = store.create("/a", "fileSearchStores/1", False)
        second = store.create("/a", "fileSearchStores/1", False)
        assert first.id != second.id
        assert {op.id for op in store.list_all()} == {first.id, second.id}

    def test_get_unknown(self, store):
        assert store.get("missing") is None
        assert store.update("missing", total_files=3) is None
        assert store.mark_completed("missing") is None

    def test_update_persists(self, store, workspace):
        operation = store.create("/a", "fileSearchStores/1", False)
        store.update(operation.id, total_files=4)

        reloaded = OperationStore(WorkspaceState(workspace.path)).get(operation.id)
        assert reloaded.total_files == 4

    def test_id_is_immutable(self, store):
        operation = store.create("/a", "fileSearchStores/1", False)
        with pytest.raises(ValueError):
            store.update(operation.id, id="other")

    def test_lifecycle(self, store):
        operation = store.create("/a", "fileSearchStores/1", False)
        running = store.mark_in_progress(operation.id, 3)
        assert running.status == OperationStatus.IN_PROGRESS
        assert running.total_files == 3

        done = store.mark_completed(operation.id)
        assert done.status == OperationStatus.COMPLETED
        assert done.completed_at is not None

    def test_mark_failed(self, store):
        operation = store.create("/a", "fileSearchStores/1", False)
        failed = store.mark_failed(operation.id, "Path not found")
        assert failed.status == OperationStatus.FAILED
        assert failed.error == "Path not found"
        assert failed.completed_at is not None

    def test_terminal_states_are_absorbing(self, store):
        operation = store.create("/a", "fileSearchStores/1", False)
        store.mark_completed(operation.id)

        store.mark_failed(operation.id, "late")
        store.mark_in_progress(operation.id, 9)
        store.update_progress(operation.id, 5, 5, 5)

        final = store.get(operation.id)
        assert final.status == OperationStatus.COMPLETED
        assert final.error is None
        assert final.total_files == 0
        assert final.completed_files == 0

    def test_counters_never_decrease(self, store):
        operation = store.create("/a", "fileSearchStores/1", False)
        store.mark_in_progress(operation.id, 10)
        store.update_progress(operation.id, 3, 2, 1)
        store.update_progress(operation.id, 1, 1, 0)

        current = store.get(operation.id)
        assert (current.completed_files, current.skipped_files, current.failed_files) == (3, 2, 1)

    def test_add_failed_file(self, store):
        operation = store.create("/a", "fileSearchStores/1", False)
        store.mark_in_progress(operation.id, 2)
        store.add_failed_file(operation.id, "a.txt", "boom")
        updated = store.add_failed_file(operation.id, "b.txt", "bang")

        assert updated.failed_files == 2
        assert [(f.file, f.error) for f in updated.failed_files_list] == [
            ("a.txt", "boom"), ("b.txt", "bang")
        ]

    def test_malformed_record_is_skipped(self, store, workspace):
        good = store.create("/a", "fileSearchStores/1", False)
        state = workspace.load()
        state["uploadOperations"]["broken"] = {"id": "broken"}
        workspace.save(state)

        assert store.get("broken") is None
        assert [op.id for op in store.list_all()] == [good.id]

    def test_records_survive_alongside_stores(self, store, workspace):
        workspace.add_store("docs", "fileSearchStores/1")
        operation = store.create("/a", "fileSearchStores/1", False)
        raw = json.loads(workspace.path.read_text())
        assert raw["fileSearchStores"] == {"docs": "fileSearchStores/1"}
        assert raw["uploadOperations"][operation.id]["storeName"] == "fileSearchStores/1"
