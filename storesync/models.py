"""
Models for storesync.

Dataclasses for job records, progress events and transfer requests.
"""
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

MB = 1024 * 1024
DEFAULT_MAX_CONCURRENT = 5
DEFAULT_MAX_FILE_SIZE_BYTES = 100 * MB
HASH_ALGORITHMS = ("sha256", "blake3")


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def compute_percentage(completed: int, skipped: int, total: int) -> int:
    if total <= 0:
        return 0
    # Halves round up; round() would round them to even
    return ((completed + skipped) * 200 + total) // (2 * total)


class OperationStatus(Enum):
    """Upload operation lifecycle state."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.COMPLETED, OperationStatus.FAILED)


@dataclass(frozen=True)
class FailedFile:
    """A file that failed during an operation."""
    file: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"file": self.file, "error": self.error}


def _require(data: Dict[str, Any], key: str, expected: type) -> Any:
    if key not in data:
        raise ValueError(f"missing key: {key}")
    value = data[key]
    # bool is an int subclass; counters must not accept it
    if expected is int and isinstance(value, bool):
        raise ValueError(f"invalid type for {key}: bool")
    if not isinstance(value, expected):
        raise ValueError(f"invalid type for {key}: {type(value).__name__}")
    return value


@dataclass
class UploadOperation:
    """One upload job, persisted in the workspace file."""
    id: str
    path: str
    store_name: str
    smart_sync: bool
    status: OperationStatus = OperationStatus.PENDING
    total_files: int = 0
    completed_files: int = 0
    skipped_files: int = 0
    failed_files: int = 0
    failed_files_list: List[FailedFile] = field(default_factory=list)
    started_at: str = field(default_factory=utc_now_iso)
    completed_at: Optional[str] = None
    error: Optional[str] = None

    @property
    def percentage(self) -> int:
        return compute_percentage(self.completed_files, self.skipped_files, self.total_files)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted (camelCase) record shape."""
        data: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "path": self.path,
            "storeName": self.store_name,
            "smartSync": self.smart_sync,
            "totalFiles": self.total_files,
            "completedFiles": self.completed_files,
            "skippedFiles": self.skipped_files,
            "failedFiles": self.failed_files,
            "failedFilesList": [f.to_dict() for f in self.failed_files_list],
            "startedAt": self.started_at,
        }
        if self.completed_at is not None:
            data["completedAt"] = self.completed_at
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadOperation":
        """
        Parse a persisted record.

        Raises:
            ValueError: if the record is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("operation record must be an object")

        failed_list = []
        for item in data.get("failedFilesList") or []:
            if not isinstance(item, dict):
                raise ValueError("failedFilesList entries must be objects")
            failed_list.append(FailedFile(
                file=_require(item, "file", str),
                error=_require(item, "error", str),
            ))

        try:
            status = OperationStatus(_require(data, "status", str))
        except ValueError as e:
            raise ValueError(f"invalid status: {e}") from e

        completed_at = data.get("completedAt")
        error = data.get("error")
        return cls(
            id=_require(data, "id", str),
            status=status,
            path=_require(data, "path", str),
            store_name=_require(data, "storeName", str),
            smart_sync=_require(data, "smartSync", bool),
            total_files=_require(data, "totalFiles", int),
            completed_files=_require(data, "completedFiles", int),
            skipped_files=_require(data, "skippedFiles", int),
            failed_files=_require(data, "failedFiles", int),
            failed_files_list=failed_list,
            started_at=_require(data, "startedAt", str),
            completed_at=completed_at if isinstance(completed_at, str) else None,
            error=error if isinstance(error, str) else None,
        )

    def to_status(self) -> Dict[str, Any]:
        """Build the job status payload returned to polling callers."""
        status: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "path": self.path,
            "storeName": self.store_name,
            "smartSync": self.smart_sync,
            "progress": {
                "totalFiles": self.total_files,
                "completedFiles": self.completed_files,
                "skippedFiles": self.skipped_files,
                "failedFiles": self.failed_files,
                "percentage": self.percentage,
            },
            "startedAt": self.started_at,
        }
        if self.completed_at is not None:
            status["completedAt"] = self.completed_at
        if self.error is not None:
            status["error"] = self.error
        if self.failed_files_list:
            status["failedFilesList"] = [f.to_dict() for f in self.failed_files_list]
        return status


@dataclass(frozen=True)
class RemoteDocumentInfo:
    """A document already present in the remote store."""
    relative_path: str
    content_hash: str
    remote_id: str


class SyncDecision(Enum):
    """Smart sync outcome for one local file."""
    NEW = "new"
    UNCHANGED = "unchanged"
    CHANGED = "changed"

    @property
    def needs_upload(self) -> bool:
        return self != SyncDecision.UNCHANGED


class ProgressEventType(Enum):
    START = "start"
    FILE_START = "file_start"
    FILE_COMPLETE = "file_complete"
    FILE_SKIPPED = "file_skipped"
    FILE_ERROR = "file_error"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressEvent:
    """
    Immutable progress event emitted by the scheduler.

    Counters are the values visible at emission time, so a listener can
    rebuild the whole progress picture from the stream alone.
    """
    type: ProgressEventType
    total_files: int
    completed_files: int = 0
    skipped_files: int = 0
    failed_files: int = 0
    current_file: Optional[str] = None
    current_file_index: Optional[int] = None
    error: Optional[BaseException] = None

    @property
    def percentage(self) -> int:
        return compute_percentage(self.completed_files, self.skipped_files, self.total_files)

    @classmethod
    def start(cls, total_files: int) -> "ProgressEvent":
        return cls(type=ProgressEventType.START, total_files=total_files)

    @classmethod
    def file_event(
        cls,
        event_type: ProgressEventType,
        current_file: str,
        current_file_index: int,
        total_files: int,
        completed_files: int,
        skipped_files: int,
        failed_files: int,
        error: Optional[BaseException] = None,
    ) -> "ProgressEvent":
        if event_type in (ProgressEventType.START, ProgressEventType.COMPLETE):
            raise ValueError(f"{event_type.value} is not a per-file event")
        if (event_type == ProgressEventType.FILE_ERROR) != (error is not None):
            raise ValueError("error is required for file_error and only for file_error")
        return cls(
            type=event_type,
            total_files=total_files,
            completed_files=completed_files,
            skipped_files=skipped_files,
            failed_files=failed_files,
            current_file=current_file,
            current_file_index=current_file_index,
            error=error,
        )

    @classmethod
    def complete(
        cls, total_files: int, completed_files: int, skipped_files: int, failed_files: int
    ) -> "ProgressEvent":
        return cls(
            type=ProgressEventType.COMPLETE,
            total_files=total_files,
            completed_files=completed_files,
            skipped_files=skipped_files,
            failed_files=failed_files,
        )


@dataclass(frozen=True)
class ContentType:
    """Classification result for a file."""
    mime_type: str
    is_fallback: bool = False


@dataclass(frozen=True)
class TransferRequest:
    """Everything the transfer collaborator needs to upload one file."""
    store_name: str
    local_path: Path
    content_type: str
    display_name: str
    relative_path: str
    content_hash: str
    last_modified: str
    chunking_config: Optional[Dict[str, Any]] = None

    @property
    def custom_metadata(self) -> Dict[str, str]:
        return {
            "path": self.relative_path,
            "hash": self.content_hash,
            "last_modified": self.last_modified,
        }


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for upload operations."""
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    hash_algorithm: str = "sha256"
    chunking_config: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {self.max_concurrent}")
        if self.max_file_size_bytes < 1:
            raise ValueError(f"max_file_size_bytes must be >= 1, got {self.max_file_size_bytes}")
        if self.hash_algorithm not in HASH_ALGORITHMS:
            raise ValueError(f"unsupported hash algorithm: {self.hash_algorithm}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "UploadConfig":
        """Build config from STORESYNC_* environment variables; explicit overrides win."""
        values: Dict[str, Any] = {}
        max_concurrent = os.getenv("STORESYNC_MAX_CONCURRENT")
        if max_concurrent:
            values["max_concurrent"] = int(max_concurrent)
        max_size_mb = os.getenv("STORESYNC_MAX_FILE_SIZE_MB")
        if max_size_mb:
            values["max_file_size_bytes"] = int(float(max_size_mb) * MB)
        algorithm = os.getenv("STORESYNC_HASH_ALGORITHM")
        if algorithm:
            values["hash_algorithm"] = algorithm.strip().lower()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
