from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import asyncio
import logging

from ..errors import TransferFailure
from ..models import (
    ProgressEvent,
    ProgressEventType,
    RemoteDocumentInfo,
    SyncDecision,
    TransferRequest,
    UploadConfig,
    format_timestamp,
)
from ..protocols import ITransferClient
from ..services.content_types import ContentClassifier
from ..services.digest import FileDigest
from ..services.remote_state import RemoteStateDiffer
from ..utils.events import ProgressCallback, ProgressEmitter

logger = logging.getLogger(__name__)


@dataclass
class _Counters:
    total: int
    completed: int = 0
    skipped: int = 0
    failed: int = 0


class _Outcome:
    """Marker result for files that produced no transfer result."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return f"<{self.name}>"


SKIPPED = _Outcome("skipped")
FAILED = _Outcome("failed")


def relative_posix(file_path: Path, root: Path) -> str:
    """Relative path with forward slashes, as recorded in remote metadata."""
    try:
        return file_path.relative_to(root).as_posix()
    except ValueError:
        return file_path.name


class BoundedUploadScheduler:
    """
    Uploads a file set in contiguous batches of `max_concurrent`.

    Every file of a batch runs concurrently and the whole batch settles
    before the next one starts. A file that fails is recorded and reported
    through a file_error event; its siblings keep going.
    """

    def __init__(
        self,
        client: ITransferClient,
        config: Optional[UploadConfig] = None,
        digest: Optional[FileDigest] = None,
        classifier: Optional[ContentClassifier] = None,
    ):
        self._client = client
        self._config = config or UploadConfig()
        self._digest = digest or FileDigest(
            self._config.max_file_size_bytes, self._config.hash_algorithm
        )
        self._classifier = classifier or ContentClassifier()

    async def run(
        self,
        files: Sequence[Path],
        root: Path,
        store_name: str,
        on_progress: Optional[ProgressCallback] = None,
        known_hashes: Optional[Dict[str, RemoteDocumentInfo]] = None,
    ) -> List[Any]:
        """
        Upload files and return the successful transfer results.

        Args:
            files: Absolute file paths, in batch assignment order
            root: Folder that relative paths are computed against
            store_name: Destination store resource name
            on_progress: Sync or async callback receiving ProgressEvent
            known_hashes: Remote path -> document map; None disables smart sync
        """
        emitter = ProgressEmitter(on_progress)
        root = Path(root)
        files = list(files)
        counters = _Counters(total=len(files))
        batch_size = self._config.max_concurrent
        results: List[Any] = []

        logger.info(
            "Starting upload: %d files to %s (batches of %d%s)",
            counters.total, store_name, batch_size,
            ", smart sync" if known_hashes is not None else ""
        )
        await emitter.emit(ProgressEvent.start(counters.total))

        for offset in range(0, len(files), batch_size):
            batch = files[offset:offset + batch_size]
            outcomes = await asyncio.gather(
                *(
                    self._process_file(
                        file_path, root, store_name, offset + idx + 1,
                        counters, emitter, known_hashes
                    )
                    for idx, file_path in enumerate(batch)
                ),
                return_exceptions=True,
            )

            for file_path, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    # _process_file reports its own failures; this is a bug path
                    logger.error("Unexpected error for %s: %s", file_path, outcome)
                elif not isinstance(outcome, _Outcome):
                    results.append(outcome)

        logger.info(
            "Upload complete: %d uploaded, %d skipped, %d failed",
            counters.completed, counters.skipped, counters.failed
        )
        await emitter.emit(ProgressEvent.complete(
            counters.total, counters.completed, counters.skipped, counters.failed
        ))
        return results

    async def _process_file(
        self,
        file_path: Path,
        root: Path,
        store_name: str,
        index: int,
        counters: _Counters,
        emitter: ProgressEmitter,
        known_hashes: Optional[Dict[str, RemoteDocumentInfo]],
    ) -> Any:
        rel_path = relative_posix(file_path, root)

        def event(event_type: ProgressEventType, error: Optional[BaseException] = None) -> ProgressEvent:
            return ProgressEvent.file_event(
                event_type,
                current_file=rel_path,
                current_file_index=index,
                total_files=counters.total,
                completed_files=counters.completed,
                skipped_files=counters.skipped,
                failed_files=counters.failed,
                error=error,
            )

        try:
            stat_result = await asyncio.to_thread(file_path.stat)
            self._digest.validate_size(file_path, stat_result)
            content_type = self._classifier.classify(file_path)
            content_hash = await self._digest.digest(file_path)

            if known_hashes is not None and RemoteStateDiffer.needs_hash_comparison(rel_path, known_hashes):
                decision = RemoteStateDiffer.decide(rel_path, content_hash, known_hashes)
                if decision == SyncDecision.UNCHANGED:
                    counters.skipped += 1
                    logger.info("[%d/%d] Skipped (unchanged): %s", index, counters.total, rel_path)
                    await emitter.emit(event(ProgressEventType.FILE_SKIPPED))
                    return SKIPPED
                logger.debug("[%d/%d] Changed since last sync: %s", index, counters.total, rel_path)

            last_modified = format_timestamp(
                datetime.fromtimestamp(stat_result.st_mtime, timezone.utc)
            )
            request = TransferRequest(
                store_name=store_name,
                local_path=file_path,
                content_type=content_type.mime_type,
                display_name=file_path.name,
                relative_path=rel_path,
                content_hash=content_hash,
                last_modified=last_modified,
                chunking_config=self._config.chunking_config,
            )

            await emitter.emit(event(ProgressEventType.FILE_START))
            result = await self._client.upload(request)
        except Exception as e:
            failure = e if isinstance(e, TransferFailure) else TransferFailure(str(file_path), e)
            counters.failed += 1
            logger.error("[%d/%d] Error uploading %s: %s", index, counters.total, rel_path, e)
            await emitter.emit(event(ProgressEventType.FILE_ERROR, failure))
            return FAILED

        counters.completed += 1
        logger.info("[%d/%d] Uploaded: %s", index, counters.total, rel_path)
        await emitter.emit(event(ProgressEventType.FILE_COMPLETE))
        return result
