"""
Protocols (Interfaces) for Dependency Inversion.

The remote store is a collaborator: the pipeline only needs to upload one
file and to list the documents a store already holds.
"""
from typing import Any, Dict, List, Protocol, runtime_checkable

from .models import TransferRequest


@runtime_checkable
class ITransferClient(Protocol):
    """Interface for the remote document store."""

    async def upload(self, request: TransferRequest) -> Any:
        """Upload one file with its content type and custom metadata."""
        ...

    async def list_documents(self, store_name: str) -> List[Dict[str, Any]]:
        """List raw document records of a store (may fail or be empty)."""
        ...
