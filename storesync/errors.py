"""
Error taxonomy for storesync.

Per-file errors (UnsupportedContentType, SizeExceeded, TransferFailure) are
recorded into the job record and never cross the job boundary.
OrchestrationFailure terminates a job. RemoteListingUnavailable is only
logged by the differ.
"""
from enum import Enum
from typing import Any, Optional

COMPATIBILITY_URL = "https://ai.google.dev/gemini-api/docs/file-search#supported-files"


class ErrorKind(Enum):
    """Closed set of error kinds."""
    UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"
    SIZE_EXCEEDED = "size_exceeded"
    TRANSFER_FAILURE = "transfer_failure"
    ORCHESTRATION_FAILURE = "orchestration_failure"
    REMOTE_LISTING_UNAVAILABLE = "remote_listing_unavailable"
    REMOTE_API = "remote_api"


class StoreSyncError(Exception):
    """Base class for all storesync errors."""
    kind: ErrorKind


class UnsupportedContentType(StoreSyncError):
    """Raised when a file extension is neither verified nor a known text type."""
    kind = ErrorKind.UNSUPPORTED_CONTENT_TYPE

    def __init__(self, path: str, extension: str):
        # Local import: content_types imports this module
        from .services.content_types import get_supported_extensions

        self.path = str(path)
        self.extension = extension
        supported = get_supported_extensions()
        self.supported_sample = supported[:10]
        self.supported_count = len(supported)
        super().__init__(
            f"Unsupported file type: {self.path} (extension: {extension or '<none>'})\n"
            f"Supported extensions include: {', '.join(self.supported_sample)}... "
            f"({self.supported_count} total)\n"
            f"See {COMPATIBILITY_URL} for full list."
        )


class SizeExceeded(StoreSyncError):
    """Raised when a file is larger than the configured ceiling."""
    kind = ErrorKind.SIZE_EXCEEDED

    def __init__(self, path: str, actual_bytes: int, limit_bytes: int):
        self.path = str(path)
        self.actual_bytes = actual_bytes
        self.limit_bytes = limit_bytes
        size_mb = actual_bytes / 1024 / 1024
        limit_mb = limit_bytes / 1024 / 1024
        super().__init__(
            f"File size exceeded: {self.path} ({size_mb:.2f} MB) exceeds limit of {limit_mb:.2f} MB"
        )


class TransferFailure(StoreSyncError):
    """Uniform per-file failure wrapping whatever went wrong for that file."""
    kind = ErrorKind.TRANSFER_FAILURE

    def __init__(self, path: str, cause: BaseException):
        self.path = str(path)
        self.cause = cause
        detail = str(cause) or type(cause).__name__
        super().__init__(f"Failed to upload {self.path}: {detail}")
        self.__cause__ = cause

    @property
    def cause_kind(self) -> Optional[ErrorKind]:
        return getattr(self.cause, "kind", None)


class OrchestrationFailure(StoreSyncError):
    """Job-level setup failure (bad root path, not a file or directory, ...)."""
    kind = ErrorKind.ORCHESTRATION_FAILURE

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = None if path is None else str(path)
        super().__init__(message)


class RemoteListingUnavailable(StoreSyncError):
    """The remote document listing could not be fetched."""
    kind = ErrorKind.REMOTE_LISTING_UNAVAILABLE

    def __init__(self, store_name: str, cause: BaseException):
        self.store_name = store_name
        self.cause = cause
        super().__init__(f"Could not list documents of {store_name}: {cause}")
        self.__cause__ = cause


class RemoteAPIError(StoreSyncError):
    """HTTP error returned by the remote store API."""
    kind = ErrorKind.REMOTE_API

    def __init__(self, status_code: int, method: str, endpoint: str, detail: Any = None):
        self.status_code = status_code
        self.method = method
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(f"API error {status_code} on {method} {endpoint}: {detail}")

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500 or self.status_code == 429
