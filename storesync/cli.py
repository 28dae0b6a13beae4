"""Command line interface for storesync."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    UploadProgressDisplay,
    render_configuration_summary,
    render_operations,
    render_status,
    render_stores,
)
from .errors import StoreSyncError
from .models import HASH_ALGORITHMS, UploadConfig
from .orchestrator import UploadOrchestrator
from .services.file_search import DEFAULT_API_URL, FileSearchClient, api_key_from_env
from .services.operation_store import OperationStore
from .services.workspace import WorkspaceState


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, log_level: Optional[str]) -> str:
    """Route logs through rich on stderr; nothing is shown unless asked for."""
    logging.disable(logging.NOTSET)
    if not debug and not log_level:
        logging.disable(logging.CRITICAL)
        return "silent"

    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    return logging.getLevelName(level)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def _load_env_file(path: Path) -> None:
    """Export KEY=VALUE lines of a .env file; variables already set win."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for line in lines:
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export "):]
        key, sep, value = line.partition("=")
        key = key.strip()
        if line.startswith("#") or not sep or not key:
            continue
        os.environ.setdefault(key, _unquote(value.strip()))


def _require_api_key() -> str:
    api_key = api_key_from_env()
    if not api_key:
        raise CLIError("API key not found: set GEMINI_API_KEY or STORESYNC_API_KEY")
    return api_key


def _build_client(args: argparse.Namespace) -> FileSearchClient:
    return FileSearchClient(
        _require_api_key(),
        base_url=os.getenv("STORESYNC_API_URL") or DEFAULT_API_URL,
        max_retries=args.retries,
    )


async def _run_upload(args: argparse.Namespace, workspace: WorkspaceState) -> int:
    source = Path(args.path).expanduser()
    if not source.exists():
        raise CLIError(f"path not found: {source}")

    try:
        config = UploadConfig.from_env(
            max_concurrent=args.max_concurrent,
            hash_algorithm=args.hash_algorithm,
        )
    except ValueError as exc:
        raise CLIError(str(exc)) from exc

    store_name = workspace.resolve_store(args.store)
    render_configuration_summary(
        {
            "Source": str(source),
            "Source Type": "file" if source.is_file() else "folder" if source.is_dir() else "unknown",
            "Store": store_name,
            "Smart Sync": "yes" if args.smart_sync else "no",
            "Max Concurrent": config.max_concurrent,
            "Max File Size": f"{config.max_file_size_bytes // (1024 * 1024)} MB",
            "Hash": config.hash_algorithm,
            "Workspace": str(workspace.path),
        }
    )

    operations = OperationStore(workspace)
    display = UploadProgressDisplay(source.name or str(source))
    async with _build_client(args) as client:
        async with UploadOrchestrator(client, operations, config) as orchestrator:
            outcome = await orchestrator.run(
                str(source), store_name, smart_sync=args.smart_sync, on_progress=display
            )

    display.on_finish(outcome.operation)
    if outcome.operation is not None:
        print(f"Operation ID: {outcome.operation.id}", file=sys.stderr)
    return 0 if outcome.all_success else 1


def _run_status(args: argparse.Namespace, workspace: WorkspaceState) -> int:
    operation = OperationStore(workspace).get(args.operation_id)
    if operation is None:
        raise CLIError(f"operation not found: {args.operation_id}")
    render_status(operation.to_status())
    return 0


def _run_operations(args: argparse.Namespace, workspace: WorkspaceState) -> int:
    render_operations(OperationStore(workspace).list_all())
    return 0


async def _run_stores(args: argparse.Namespace, workspace: WorkspaceState) -> int:
    async with _build_client(args) as client:
        if args.stores_command == "create":
            store = await client.create_store(args.display_name)
            workspace.add_store(args.display_name, store["name"])
            print(f"Created store: {store['name']} ({args.display_name})")
        elif args.stores_command == "list":
            render_stores(await client.list_stores())
        elif args.stores_command == "delete":
            name = workspace.resolve_store(args.name)
            await client.delete_store(name, force=args.force)
            workspace.remove_store(name)
            print(f"Deleted store: {name}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storesync",
        description="Synchronize local files into Gemini File Search stores.",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=None,
        help="Workspace state file (default from STORESYNC_WORKSPACE or ./.storesync.json)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=1,
        help="Attempts per API request (default 1: no retry)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version=f"storesync {__version__}")

    sub = parser.add_subparsers(dest="command")

    upload = sub.add_parser("upload", help="Upload a file or folder into a store")
    upload.add_argument("path", help="Local file or folder")
    upload.add_argument(
        "-s", "--store", required=True,
        help="Store resource name (fileSearchStores/...) or a display name created here",
    )
    upload.add_argument(
        "--smart-sync",
        action="store_true",
        help="Skip files whose content hash matches the copy already in the store",
    )
    upload.add_argument(
        "-j", "--max-concurrent", type=int, default=None,
        help="Files uploaded at once (default from STORESYNC_MAX_CONCURRENT or 5)",
    )
    upload.add_argument(
        "--hash-algorithm", choices=HASH_ALGORITHMS, default=None,
        help="Content hash used for smart sync metadata (default sha256)",
    )

    status = sub.add_parser("status", help="Show the status of an upload operation")
    status.add_argument("operation_id")

    sub.add_parser("operations", help="List recorded upload operations")

    stores = sub.add_parser("stores", help="Manage File Search stores")
    stores_sub = stores.add_subparsers(dest="stores_command", required=True)
    create = stores_sub.add_parser("create", help="Create a store")
    create.add_argument("display_name")
    stores_sub.add_parser("list", help="List stores")
    delete = stores_sub.add_parser("delete", help="Delete a store")
    delete.add_argument("name")
    delete.add_argument("--force", action="store_true", help="Delete even if it holds documents")

    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    env_file = args.env_file or (Path(".env") if Path(".env").is_file() else None)
    if env_file is not None:
        try:
            _load_env_file(env_file)
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    _setup_logging(debug=args.debug, log_level=args.log_level)

    if args.command is None:
        parser.print_help()
        return 0

    if args.retries < 1:
        print("ERROR: --retries must be >= 1", file=sys.stderr)
        return 1

    workspace = WorkspaceState(args.workspace)

    try:
        if args.command == "upload":
            return asyncio.run(_run_upload(args, workspace))
        if args.command == "status":
            return _run_status(args, workspace)
        if args.command == "operations":
            return _run_operations(args, workspace)
        if args.command == "stores":
            return asyncio.run(_run_stores(args, workspace))
        parser.print_help()
        return 1
    except (CLIError, StoreSyncError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
