"""
storesync - Synchronize local folders into Gemini File Search stores.

Uploads run as background jobs whose progress is persisted in a workspace
file, so status can be queried long after the submitting call returned.

Usage:
    from storesync import (
        FileSearchClient, OperationStore, UploadOrchestrator, WorkspaceState,
    )

    operations = OperationStore(WorkspaceState(".storesync.json"))
    async with FileSearchClient(api_key) as client:
        async with UploadOrchestrator(client, operations) as orchestrator:
            operation_id = await orchestrator.submit(
                "docs/", "fileSearchStores/my-store", smart_sync=True
            )
            print(orchestrator.get_status(operation_id))
"""
from .errors import (
    ErrorKind,
    OrchestrationFailure,
    RemoteAPIError,
    RemoteListingUnavailable,
    SizeExceeded,
    StoreSyncError,
    TransferFailure,
    UnsupportedContentType,
)
from .models import (
    OperationStatus,
    ProgressEvent,
    ProgressEventType,
    UploadConfig,
    UploadOperation,
)
from .orchestrator import BoundedUploadScheduler, UploadOrchestrator, UploadOutcome
from .services import (
    ContentClassifier,
    DirectoryScanner,
    FileDigest,
    FileSearchClient,
    OperationStore,
    RemoteStateDiffer,
    WorkspaceState,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "UploadOutcome",
    "BoundedUploadScheduler",
    # Models
    "OperationStatus",
    "ProgressEvent",
    "ProgressEventType",
    "UploadConfig",
    "UploadOperation",
    # Services
    "ContentClassifier",
    "DirectoryScanner",
    "FileDigest",
    "FileSearchClient",
    "OperationStore",
    "RemoteStateDiffer",
    "WorkspaceState",
    # Errors
    "ErrorKind",
    "StoreSyncError",
    "UnsupportedContentType",
    "SizeExceeded",
    "TransferFailure",
    "OrchestrationFailure",
    "RemoteListingUnavailable",
    "RemoteAPIError",
]
