"""Orchestrator package - coordinates selection and batched submission."""
from .batching import plan_batches
from .core import UploadOrchestrator
from .models import SubmissionOutcome, SubmissionState, SubmissionStatus, UploadProgress
from .selection import SelectionSet

__all__ = [
    "UploadOrchestrator",
    "SelectionSet",
    "plan_batches",
    "SubmissionOutcome",
    "SubmissionState",
    "SubmissionStatus",
    "UploadProgress",
]
