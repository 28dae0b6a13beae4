"""Tests for storesync CLI helpers."""
import json
import logging
import os

import pytest

from storesync import cli
from storesync.cli import (
    CLIError,
    _build_parser,
    _load_env_file,
    _setup_logging,
    _unquote,
    run_cli,
)
from storesync.models import OperationStatus
from storesync.services.operation_store import OperationStore
from storesync.services.workspace import WorkspaceState


class FakeFileSearchClient:
    instances = []

    def __init__(self, api_key, **kwargs):
        self.api_key = api_key
        self.kwargs = kwargs
        self.uploaded = []
        FakeFileSearchClient.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return None

    async def upload(self, request):
        self.uploaded.append(request.relative_path)
        return {"name": "operations/1"}

    async def list_documents(self, store_name):
        return []

    async def create_store(self, display_name):
        return {"name": "fileSearchStores/new", "displayName": display_name}

    async def delete_store(self, name, force=False):
        self.deleted = (name, force)


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("STORESYNC_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("STORESYNC_MAX_CONCURRENT", raising=False)
    FakeFileSearchClient.instances = []
    yield
    logging.disable(logging.NOTSET)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


@pytest.fixture
def workspace_path(tmp_path):
    return tmp_path / "ws.json"


def test_unquote():
    assert _unquote("'abc'") == "abc"
    assert _unquote('"abc"') == "abc"
    assert _unquote("'abc") == "'abc"
    assert _unquote("") == ""


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / "custom.env"
    env_path.write_text(
        "\n".join(
            [
                "# comment",
                "GEMINI_API_KEY='secret'",
                "export STORESYNC_MAX_CONCURRENT=3",
                "INVALID_LINE",
                "STORESYNC_WORKSPACE=/tmp/ws.json",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("STORESYNC_WORKSPACE", "/keep/me.json")
    # register for restore so loaded values do not leak into other tests
    for key in ("GEMINI_API_KEY", "STORESYNC_MAX_CONCURRENT"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)

    _load_env_file(env_path)

    assert os.environ["GEMINI_API_KEY"] == "secret"
    assert os.environ["STORESYNC_MAX_CONCURRENT"] == "3"
    assert os.environ["STORESYNC_WORKSPACE"] == "/keep/me.json"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError, match="could not read env file"):
        _load_env_file(tmp_path / "nope.env")


def test_setup_logging_modes():
    assert _setup_logging(debug=False, log_level=None) == "silent"
    assert logging.getLogger("storesync").isEnabledFor(logging.CRITICAL) is False
    assert _setup_logging(debug=True, log_level=None) == "DEBUG"
    assert logging.getLogger().level == logging.DEBUG
    assert _setup_logging(debug=False, log_level="warning") == "WARNING"
    assert logging.getLogger("httpx").level == logging.WARNING


def test_parser_upload_arguments():
    args = _build_parser().parse_args(
        ["upload", "./docs", "--store", "docs", "--smart-sync", "-j", "3", "--hash-algorithm", "blake3"]
    )
    assert args.command == "upload"
    assert args.path == "./docs"
    assert args.store == "docs"
    assert args.smart_sync is True
    assert args.max_concurrent == 3
    assert args.hash_algorithm == "blake3"


def test_parser_rejects_unknown_hash():
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["upload", ".", "--store", "s", "--hash-algorithm", "md5"])


def test_no_command_prints_help(capsys):
    assert run_cli([]) == 0
    assert "usage" in capsys.readouterr().out


def test_status_command(workspace_path, capsys):
    store = OperationStore(WorkspaceState(workspace_path))
    operation = store.create("/data", "fileSearchStores/abc", smart_sync=False)
    store.mark_in_progress(operation.id, 4)
    store.update_progress(operation.id, 2, 0, 0)

    assert run_cli(["--workspace", str(workspace_path), "status", operation.id]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["id"] == operation.id
    assert payload["status"] == "in_progress"
    assert payload["progress"]["percentage"] == 50


def test_status_unknown_operation(workspace_path, capsys):
    assert run_cli(["--workspace", str(workspace_path), "status", "missing"]) == 1
    assert "operation not found" in capsys.readouterr().err


def test_operations_command(workspace_path, capsys):
    store = OperationStore(WorkspaceState(workspace_path))
    operation = store.create("/data", "fileSearchStores/abc", smart_sync=False)

    assert run_cli(["--workspace", str(workspace_path), "operations"]) == 0
    assert operation.id[:8] in capsys.readouterr().out


def test_upload_requires_api_key(workspace_path, tmp_path, capsys):
    (tmp_path / "a.md").write_text("a")
    code = run_cli(["--workspace", str(workspace_path), "upload", str(tmp_path / "a.md"), "--store", "s"])
    assert code == 1
    assert "API key not found" in capsys.readouterr().err


def test_upload_missing_path(workspace_path, tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    code = run_cli(["--workspace", str(workspace_path), "upload", str(tmp_path / "nope"), "--store", "s"])
    assert code == 1
    assert "path not found" in capsys.readouterr().err


def test_upload_folder(workspace_path, tmp_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setattr(cli, "FileSearchClient", FakeFileSearchClient)
    folder = tmp_path / "docs"
    (folder / "sub").mkdir(parents=True)
    (folder / "a.md").write_text("a")
    (folder / "sub" / "b.py").write_text("b")
    WorkspaceState(workspace_path).add_store("docs", "fileSearchStores/abc")

    code = run_cli(["--workspace", str(workspace_path), "upload", str(folder), "--store", "docs"])

    assert code == 0
    client = FakeFileSearchClient.instances[0]
    assert client.api_key == "key"
    assert sorted(client.uploaded) == ["a.md", "sub/b.py"]
    (operation,) = OperationStore(WorkspaceState(workspace_path)).list_all()
    assert operation.status == OperationStatus.COMPLETED
    assert operation.store_name == "fileSearchStores/abc"
    assert operation.completed_files == 2


def test_upload_with_failures_exits_nonzero(workspace_path, tmp_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setattr(cli, "FileSearchClient", FakeFileSearchClient)
    folder = tmp_path / "docs"
    folder.mkdir()
    (folder / "a.md").write_text("a")
    (folder / "photo.jpg").write_bytes(b"\xff\xd8")

    code = run_cli(["--workspace", str(workspace_path), "upload", str(folder), "--store", "fileSearchStores/abc"])

    assert code == 1
    (operation,) = OperationStore(WorkspaceState(workspace_path)).list_all()
    assert operation.status == OperationStatus.COMPLETED
    assert operation.failed_files == 1


def test_stores_create_and_delete(workspace_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setattr(cli, "FileSearchClient", FakeFileSearchClient)

    assert run_cli(["--workspace", str(workspace_path), "stores", "create", "docs"]) == 0
    assert WorkspaceState(workspace_path).stores() == {"docs": "fileSearchStores/new"}

    assert run_cli(["--workspace", str(workspace_path), "stores", "delete", "docs", "--force"]) == 0
    assert FakeFileSearchClient.instances[-1].deleted == ("fileSearchStores/new", True)
    assert WorkspaceState(workspace_path).stores() == {}
