"""Orchestrator data models."""
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..models import OperationStatus, UploadOperation


@dataclass
class UploadOutcome:
    """Result of one upload operation once it reached a terminal state."""
    operation: Optional[UploadOperation]
    results: List[Any] = field(default_factory=list)

    @property
    def status(self) -> Optional[OperationStatus]:
        return self.operation.status if self.operation else None

    @property
    def all_success(self) -> bool:
        return (
            self.operation is not None
            and self.operation.status == OperationStatus.COMPLETED
            and self.operation.failed_files == 0
        )
