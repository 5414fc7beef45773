"""Orchestrator data models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SubmissionState(Enum):
    """Orchestrator state machine."""
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SubmissionStatus(Enum):
    """Terminal status of one submit() call."""
    SUCCESS = "success"
    FAILED = "failed"
    INVALID = "invalid"  # validation/configuration, no network call
    BUSY = "busy"        # another submission in flight
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class UploadProgress:
    """Cumulative item progress of the submission in flight."""
    completed_items: int
    total_items: int

    @property
    def percent(self) -> float:
        if self.total_items <= 0:
            return 0.0
        return 100.0 * self.completed_items / self.total_items

    @property
    def done(self) -> bool:
        return self.completed_items >= self.total_items


@dataclass(frozen=True)
class SubmissionOutcome:
    """Immutable result of a submission attempt."""
    status: SubmissionStatus
    error: Optional[str] = None
    total_items: int = 0
    uploaded_items: int = 0
    batches_sent: int = 0
    responses: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == SubmissionStatus.SUCCESS

    @classmethod
    def ok(cls, total_items: int, batches_sent: int, responses: List[Dict[str, Any]]):
        return cls(
            status=SubmissionStatus.SUCCESS,
            total_items=total_items,
            uploaded_items=total_items,
            batches_sent=batches_sent,
            responses=list(responses),
        )

    @classmethod
    def fail(cls, error: str, total_items: int, uploaded_items: int, batches_sent: int):
        return cls(
            status=SubmissionStatus.FAILED,
            error=error,
            total_items=total_items,
            uploaded_items=uploaded_items,
            batches_sent=batches_sent,
        )

    @classmethod
    def invalid(cls, error: str):
        return cls(status=SubmissionStatus.INVALID, error=error)

    @classmethod
    def busy(cls):
        return cls(status=SubmissionStatus.BUSY, error="A submission is already in progress")

    @classmethod
    def cancelled(cls, total_items: int, uploaded_items: int, batches_sent: int):
        return cls(
            status=SubmissionStatus.CANCELLED,
            error="Upload cancelled",
            total_items=total_items,
            uploaded_items=uploaded_items,
            batches_sent=batches_sent,
        )
