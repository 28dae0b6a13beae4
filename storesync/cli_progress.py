"""Console rendering and progress helpers for the storesync CLI."""
from __future__ import annotations

import json
import time
from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .models import ProgressEvent, ProgressEventType, UploadOperation

console = Console(stderr=True)
stdout_console = Console()


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]storesync[/bold green]",
        subtitle="[dim]upload[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_status(status: Dict[str, Any]) -> None:
    """Print a status payload as JSON on stdout."""
    stdout_console.print_json(json.dumps(status))


def render_operations(operations: Iterable[UploadOperation]) -> None:
    table = Table(title="Upload operations")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Path")
    table.add_column("Store")
    table.add_column("Done", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Started")

    palette = {"completed": "green", "failed": "red", "in_progress": "yellow", "pending": "blue"}
    for op in sorted(operations, key=lambda o: o.started_at):
        color = palette.get(op.status.value, "white")
        table.add_row(
            op.id,
            f"[{color}]{op.status.value}[/{color}]",
            op.path,
            op.store_name,
            f"{op.completed_files}/{op.total_files}",
            str(op.skipped_files),
            str(op.failed_files),
            op.started_at,
        )
    stdout_console.print(table)


def render_stores(stores: Iterable[Dict[str, Any]]) -> None:
    table = Table(title="File Search stores")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Display name")
    table.add_column("Documents", justify="right")
    for store in stores:
        table.add_row(
            store.get("name", "-"),
            store.get("displayName", "-"),
            str(store.get("activeDocumentsCount", "-")),
        )
    stdout_console.print(table)


class UploadProgressDisplay:
    """Event-based console display for an upload operation."""

    def __init__(self, operation_label: str = "upload"):
        self._label = operation_label
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=36),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._live: Optional[Live] = None
        self._task_id: Optional[TaskID] = None

    def _emit_timeline(self, status: str, name: str, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {"DONE": "green", "SKIP": "cyan", "FAIL": "red"}
        color = palette.get(status, "white")
        error_label = f" cause={escape(error)}" if error else ""
        console.print(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {escape(name)}{error_label}")

    def _start_live(self, total: int) -> None:
        if self._live is not None:
            return
        self._live = Live(self._progress, console=console, refresh_per_second=8, transient=False)
        self._live.start()
        self._task_id = self._progress.add_task(
            self._label, label=self._label, total=max(total, 1), detail="starting..."
        )

    def _stop_live(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def _advance(self, event: ProgressEvent) -> None:
        if self._task_id is None:
            return
        settled = event.completed_files + event.skipped_files + event.failed_files
        self._progress.update(
            self._task_id,
            completed=settled,
            detail=f"uploaded={event.completed_files} skipped={event.skipped_files} failed={event.failed_files}",
        )

    def __call__(self, event: ProgressEvent) -> None:
        if event.type == ProgressEventType.START:
            self._start_live(event.total_files)
        elif event.type == ProgressEventType.FILE_COMPLETE:
            self._emit_timeline("DONE", event.current_file or "file")
        elif event.type == ProgressEventType.FILE_SKIPPED:
            self._emit_timeline("SKIP", event.current_file or "file")
        elif event.type == ProgressEventType.FILE_ERROR:
            cause = getattr(event.error, "cause", event.error)
            first_line = str(cause).splitlines()[0] if str(cause) else type(cause).__name__
            self._emit_timeline("FAIL", event.current_file or "file", error=first_line)
        elif event.type == ProgressEventType.COMPLETE:
            self._advance(event)
            self._stop_live()
            return
        self._advance(event)

    def on_finish(self, operation: Optional[UploadOperation]) -> None:
        self._stop_live()
        if operation is None:
            console.print("[red]Error:[/red] operation record is missing")
            return
        if operation.error:
            console.print(f"[red]Error:[/red] {escape(operation.error)}")
        console.print(
            f"[bold]Finished[/bold] status={operation.status.value} "
            f"uploaded={operation.completed_files} skipped={operation.skipped_files} "
            f"failed={operation.failed_files} total={operation.total_files}"
        )
        for failed in operation.failed_files_list:
            reason = failed.error.splitlines()[0] if failed.error else "unknown error"
            console.print(f"  [red]-[/red] {escape(failed.file)}: {escape(reason)}")
