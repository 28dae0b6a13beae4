from enum import Enum
from typing import Any, Awaitable, Callable, Optional
import asyncio
import logging

logger = logging.getLogger(__name__)


class JobState(Enum):
    """State of a background upload job (task lifecycle, not the record status)."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadJob:
    """
    Background task running one upload operation.

    The job is decoupled from whoever submitted it: the operation ID is the
    only link, and progress is read back from the operation store.

    Usage:
        job = UploadJob(operation_id, lambda: orchestrator.execute(...))
        job.start()
        outcome = await job.wait()
    """

    def __init__(self, operation_id: str, runner: Callable[[], Awaitable[Any]]):
        self._operation_id = operation_id
        self._runner = runner
        self._state = JobState.PENDING
        self._task: Optional[asyncio.Task] = None
        self._result: Any = None
        self._error: Optional[BaseException] = None

    @property
    def operation_id(self) -> str:
        return self._operation_id

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state in (JobState.COMPLETED, JobState.FAILED)

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def start(self) -> "UploadJob":
        """Schedule the job on the running event loop (non-blocking)."""
        if self._state != JobState.PENDING:
            raise RuntimeError(f"Cannot start job in state: {self._state}")

        self._state = JobState.RUNNING
        self._task = asyncio.create_task(self._run(), name=f"upload-{self._operation_id}")
        return self

    async def _run(self) -> None:
        try:
            self._result = await self._runner()
            self._state = JobState.COMPLETED
        except Exception as e:
            self._error = e
            self._state = JobState.FAILED
            logger.error("[%s] Job crashed: %s", self._operation_id, e)

    async def wait(self) -> Any:
        """Wait for the job to finish and return the runner's result."""
        if self._state == JobState.PENDING:
            self.start()
        if self._task:
            await self._task
        return self._result
