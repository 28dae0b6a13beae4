"""
OperationStore - durable CRUD for upload job records.

Records live in the workspace file under "uploadOperations". Every
mutation re-reads the file and persists the full snapshot, so a status
query from anywhere sees the latest counters.
"""
import logging
import uuid
from dataclasses import replace
from typing import Any, List, Optional

from ..models import FailedFile, OperationStatus, UploadOperation, utc_now_iso
from .workspace import OPERATIONS_KEY, WorkspaceState

logger = logging.getLogger(__name__)


class OperationStore:
    """Job records keyed by generated ID."""

    def __init__(self, workspace: WorkspaceState):
        self._workspace = workspace

    @property
    def workspace(self) -> WorkspaceState:
        return self._workspace

    def _read(self, state: dict, operation_id: str) -> Optional[UploadOperation]:
        raw = state[OPERATIONS_KEY].get(operation_id)
        if raw is None:
            return None
        try:
            return UploadOperation.from_dict(raw)
        except ValueError as e:
            logger.warning("OperationStore: Ignoring malformed record %s: %s", operation_id, e)
            return None

    def _write(self, operation: UploadOperation) -> None:
        state = self._workspace.load()
        state[OPERATIONS_KEY][operation.id] = operation.to_dict()
        self._workspace.save(state)

    def create(
        self,
        path: str,
        store_name: str,
        smart_sync: bool,
        total_files: int = 0,
    ) -> UploadOperation:
        """Create and persist a pending operation with a fresh ID."""
        operation = UploadOperation(
            id=str(uuid.uuid4()),
            path=str(path),
            store_name=store_name,
            smart_sync=smart_sync,
            total_files=total_files,
        )
        self._write(operation)
        logger.debug("OperationStore: Created %s for %s", operation.id, path)
        return operation

    def get(self, operation_id: str) -> Optional[UploadOperation]:
        return self._read(self._workspace.load(), operation_id)

    def update(self, operation_id: str, **changes: Any) -> Optional[UploadOperation]:
        """
        Apply field changes to a record and persist it.

        Returns:
            The updated record, or None if the ID is unknown
        """
        if "id" in changes:
            raise ValueError("operation id is immutable")
        existing = self.get(operation_id)
        if existing is None:
            return None
        updated = replace(existing, **changes)
        self._write(updated)
        return updated

    def list_all(self) -> List[UploadOperation]:
        state = self._workspace.load()
        operations = []
        for operation_id in state[OPERATIONS_KEY]:
            operation = self._read(state, operation_id)
            if operation is not None:
                operations.append(operation)
        return operations

    # Lifecycle helpers

    def _transition(self, operation_id: str, **changes: Any) -> Optional[UploadOperation]:
        existing = self.get(operation_id)
        if existing is None:
            return None
        if existing.status.is_terminal:
            logger.warning(
                "OperationStore: %s is already %s, ignoring update",
                operation_id, existing.status.value
            )
            return existing
        return self.update(operation_id, **changes)

    def mark_in_progress(self, operation_id: str, total_files: int) -> Optional[UploadOperation]:
        return self._transition(
            operation_id, status=OperationStatus.IN_PROGRESS, total_files=total_files
        )

    def mark_completed(self, operation_id: str) -> Optional[UploadOperation]:
        return self._transition(
            operation_id, status=OperationStatus.COMPLETED, completed_at=utc_now_iso()
        )

    def mark_failed(self, operation_id: str, error: str) -> Optional[UploadOperation]:
        return self._transition(
            operation_id,
            status=OperationStatus.FAILED,
            error=error,
            completed_at=utc_now_iso(),
        )

    def update_progress(
        self,
        operation_id: str,
        completed_files: int,
        skipped_files: int,
        failed_files: int,
    ) -> Optional[UploadOperation]:
        existing = self.get(operation_id)
        if existing is None:
            return None
        # Counters never move backwards
        return self._transition(
            operation_id,
            completed_files=max(existing.completed_files, completed_files),
            skipped_files=max(existing.skipped_files, skipped_files),
            failed_files=max(existing.failed_files, failed_files),
        )

    def add_failed_file(self, operation_id: str, file: str, error: str) -> Optional[UploadOperation]:
        existing = self.get(operation_id)
        if existing is None:
            return None
        failed_list = existing.failed_files_list + [FailedFile(file=file, error=error)]
        return self._transition(
            operation_id,
            failed_files_list=failed_list,
            failed_files=max(existing.failed_files, len(failed_list)),
        )
