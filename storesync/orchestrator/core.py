"""Core orchestrator - turns an upload request into a tracked background job."""
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..errors import OrchestrationFailure
from ..models import ProgressEvent, ProgressEventType, UploadConfig
from ..protocols import ITransferClient
from ..services.operation_store import OperationStore
from ..services.remote_state import RemoteStateDiffer
from ..services.scanner import DirectoryScanner
from ..utils.events import ProgressCallback, ProgressEmitter
from .job import UploadJob
from .models import UploadOutcome
from .scheduler import BoundedUploadScheduler

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Orchestrates directory and file uploads using injected services.

    Usage:
        store = OperationStore(WorkspaceState(path))
        async with FileSearchClient(api_key) as client:
            async with UploadOrchestrator(client, store) as orchestrator:
                operation_id = await orchestrator.submit(folder, "fileSearchStores/abc")
                ...
                status = orchestrator.get_status(operation_id)

    Leaving the context waits for every submitted job; there is no way to
    cancel a job once it started.
    """

    def __init__(
        self,
        client: ITransferClient,
        operations: OperationStore,
        config: Optional[UploadConfig] = None,
        scheduler: Optional[BoundedUploadScheduler] = None,
        differ: Optional[RemoteStateDiffer] = None,
        scanner: Optional[DirectoryScanner] = None,
    ):
        self._client = client
        self._operations = operations
        self._config = config or UploadConfig()
        self._scheduler = scheduler or BoundedUploadScheduler(client, self._config)
        self._differ = differ or RemoteStateDiffer(client)
        self._scanner = scanner or DirectoryScanner()
        self._jobs: Dict[str, UploadJob] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    @property
    def operations(self) -> OperationStore:
        return self._operations

    async def submit(
        self,
        path: str,
        store_name: str,
        smart_sync: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Record a pending operation and start it in the background.

        Returns:
            The operation ID to poll with get_status()
        """
        operation = self._operations.create(str(path), store_name, smart_sync)
        job = UploadJob(
            operation.id,
            lambda: self._execute(operation.id, path, store_name, smart_sync, on_progress),
        )
        self._jobs[operation.id] = job
        job.start()
        logger.info("[%s] Upload submitted: %s -> %s", operation.id, path, store_name)
        return operation.id

    async def run(
        self,
        path: str,
        store_name: str,
        smart_sync: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadOutcome:
        """Submit an upload and wait for it to reach a terminal state."""
        operation_id = await self.submit(path, store_name, smart_sync, on_progress)
        return await self.wait(operation_id)

    async def wait(self, operation_id: str) -> UploadOutcome:
        job = self._jobs.get(operation_id)
        if job is None:
            raise KeyError(f"No job for operation {operation_id} in this orchestrator")
        outcome = await job.wait()
        if outcome is None:
            # The runner itself crashed; report whatever the store holds
            return UploadOutcome(self._operations.get(operation_id))
        return outcome

    async def aclose(self) -> None:
        """Wait for all submitted jobs to finish."""
        pending = [job.wait() for job in self._jobs.values() if not job.done]
        if pending:
            logger.info("Waiting for %d upload job(s) to finish...", len(pending))
            await asyncio.gather(*pending)

    def get_status(self, operation_id: str) -> Optional[Dict[str, Any]]:
        operation = self._operations.get(operation_id)
        return operation.to_status() if operation else None

    async def _collect_files(self, path: str) -> Tuple[Path, List[Path]]:
        target = Path(path).expanduser()
        if not target.exists():
            raise OrchestrationFailure(f"Path not found: {path}", str(path))
        if target.is_dir():
            root = target.resolve()
            files = await asyncio.to_thread(self._scanner.scan, root)
            return root, files
        if target.is_file():
            resolved = target.resolve()
            return resolved.parent, [resolved]
        raise OrchestrationFailure(f"Path is not a file or directory: {path}", str(path))

    async def _execute(
        self,
        operation_id: str,
        path: str,
        store_name: str,
        smart_sync: bool,
        on_progress: Optional[ProgressCallback],
    ) -> UploadOutcome:
        listeners = ProgressEmitter(on_progress)
        finished = False
        record_error: Optional[Exception] = None

        async def reduce_event(event: ProgressEvent) -> None:
            nonlocal finished, record_error
            # The scheduler's emitter swallows listener errors, so keep the first one here
            try:
                self._record_event(operation_id, event, smart_sync)
            except Exception as e:
                logger.error("[%s] Failed to record %s event: %s", operation_id, event.type.value, e)
                if record_error is None:
                    record_error = e
            if event.type == ProgressEventType.COMPLETE:
                finished = True
            await listeners.emit(event)

        try:
            root, files = await self._collect_files(path)
            known_hashes = None
            if smart_sync:
                known_hashes = await self._differ.fetch_known_hashes(store_name)

            results = await self._scheduler.run(
                files, root, store_name,
                on_progress=reduce_event,
                known_hashes=known_hashes,
            )
            if record_error is not None:
                raise OrchestrationFailure(
                    f"Failed to record upload progress: {record_error}", str(path)
                ) from record_error
            if not finished:
                raise OrchestrationFailure("Upload ended without a completion event", str(path))
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("[%s] Upload failed: %s", operation_id, message)
            operation = self._operations.mark_failed(operation_id, message)
            return UploadOutcome(operation)

        operation = self._operations.mark_completed(operation_id)
        return UploadOutcome(operation, results)

    def _record_event(self, operation_id: str, event: ProgressEvent, smart_sync: bool) -> None:
        """Reduce one progress event into the persisted record."""
        if event.type == ProgressEventType.START:
            self._operations.mark_in_progress(operation_id, event.total_files)
            logger.info(
                "[%s] Starting upload of %d files...%s",
                operation_id, event.total_files, " (smart sync enabled)" if smart_sync else ""
            )
        elif event.type == ProgressEventType.FILE_START:
            logger.debug("[%s] Uploading: %s", operation_id, event.current_file)
        elif event.type == ProgressEventType.FILE_COMPLETE:
            logger.info("[%s] [%d%%] Uploaded: %s", operation_id, event.percentage, event.current_file)
            self._operations.update_progress(
                operation_id, event.completed_files, event.skipped_files, event.failed_files
            )
        elif event.type == ProgressEventType.FILE_SKIPPED:
            logger.info(
                "[%s] [%d%%] Skipped (unchanged): %s", operation_id, event.percentage, event.current_file
            )
            self._operations.update_progress(
                operation_id, event.completed_files, event.skipped_files, event.failed_files
            )
        elif event.type == ProgressEventType.FILE_ERROR:
            error_message = str(event.error) if event.error else "Unknown error"
            logger.error("[%s] Error uploading: %s - %s", operation_id, event.current_file, error_message)
            self._operations.add_failed_file(operation_id, event.current_file or "unknown", error_message)
        elif event.type == ProgressEventType.COMPLETE:
            logger.info(
                "[%s] Upload complete: %d uploaded, %d skipped, %d failed",
                operation_id, event.completed_files, event.skipped_files, event.failed_files
            )
            self._operations.update_progress(
                operation_id, event.completed_files, event.skipped_files, event.failed_files
            )
