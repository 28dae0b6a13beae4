"""Orchestrator package - turns upload requests into tracked jobs."""
from .core import UploadOrchestrator
from .job import JobState, UploadJob
from .models import UploadOutcome
from .scheduler import BoundedUploadScheduler

__all__ = [
    "UploadOrchestrator",
    "UploadJob",
    "JobState",
    "UploadOutcome",
    "BoundedUploadScheduler",
]
