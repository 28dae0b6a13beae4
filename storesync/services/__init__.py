"""Services for storesync."""
from .content_types import ContentClassifier
from .digest import FileDigest, hash_bytes, hash_file
from .file_search import FileSearchClient
from .operation_store import OperationStore
from .remote_state import RemoteStateDiffer
from .scanner import DirectoryScanner
from .workspace import WorkspaceState

__all__ = [
    "ContentClassifier",
    "FileDigest",
    "hash_bytes",
    "hash_file",
    "FileSearchClient",
    "OperationStore",
    "RemoteStateDiffer",
    "DirectoryScanner",
    "WorkspaceState",
]
