"""
RemoteStateDiffer - smart sync against documents already in a store.

Documents uploaded by storesync carry `path` and `hash` custom metadata.
The differ turns the store listing into a relative-path -> hash map and
decides, per local file, whether it is new, unchanged or changed.
"""
import logging
from typing import Any, Dict, Optional

from ..errors import RemoteListingUnavailable
from ..models import RemoteDocumentInfo, SyncDecision
from ..protocols import ITransferClient

logger = logging.getLogger(__name__)

PATH_KEY = "path"
HASH_KEY = "hash"


def _metadata_value(entry: Any) -> Optional[str]:
    if not isinstance(entry, dict):
        return None
    value = entry.get("stringValue")
    return value if isinstance(value, str) and value else None


def extract_document_info(document: Any) -> Optional[RemoteDocumentInfo]:
    """
    Pull path, hash and remote id out of a raw document record.

    Returns None for records that lack any of them.
    """
    if not isinstance(document, dict):
        return None
    remote_id = document.get("name")
    metadata = document.get("customMetadata")
    if not isinstance(remote_id, str) or not isinstance(metadata, list):
        return None

    values: Dict[str, str] = {}
    for entry in metadata:
        if not isinstance(entry, dict):
            continue
        key = entry.get("key")
        value = _metadata_value(entry)
        if key in (PATH_KEY, HASH_KEY) and value is not None:
            values[key] = value

    if PATH_KEY not in values or HASH_KEY not in values:
        return None
    return RemoteDocumentInfo(
        relative_path=values[PATH_KEY],
        content_hash=values[HASH_KEY],
        remote_id=remote_id,
    )


class RemoteStateDiffer:
    """Compares local content hashes with the hashes recorded remotely."""

    def __init__(self, client: ITransferClient):
        self._client = client

    async def fetch_known_hashes(self, store_name: str) -> Dict[str, RemoteDocumentInfo]:
        """
        Map relative path -> RemoteDocumentInfo for every parsable document.

        A failing listing yields an empty map: smart sync then treats every
        file as new instead of aborting the job.
        """
        try:
            documents = await self._client.list_documents(store_name)
        except Exception as e:
            unavailable = RemoteListingUnavailable(store_name, e)
            logger.warning("RemoteStateDiffer: %s - uploading all files", unavailable)
            return {}

        known: Dict[str, RemoteDocumentInfo] = {}
        ignored = 0
        for document in documents or []:
            info = extract_document_info(document)
            if info is None:
                ignored += 1
                continue
            known[info.relative_path] = info

        if ignored:
            logger.debug("RemoteStateDiffer: Ignored %d documents without path/hash metadata", ignored)
        logger.info("RemoteStateDiffer: %d known documents in %s", len(known), store_name)
        return known

    @staticmethod
    def needs_hash_comparison(relative_path: str, known: Dict[str, RemoteDocumentInfo]) -> bool:
        """Only files with a remote entry can ever be skipped."""
        return relative_path in known

    @staticmethod
    def decide(
        relative_path: str,
        local_hash: str,
        known: Dict[str, RemoteDocumentInfo],
    ) -> SyncDecision:
        info = known.get(relative_path)
        if info is None:
            return SyncDecision.NEW
        if info.content_hash == local_hash:
            return SyncDecision.UNCHANGED
        return SyncDecision.CHANGED
