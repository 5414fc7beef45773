"""
photodrop - batched, retrying photo delivery to an HTTP upload endpoint.

Components:
- JSONAPIClient: JSON-over-HTTP call with bounded, linear-backoff retry
- plan_batches: greedy size/count-bounded partition of the selection
- UploadOrchestrator: owns the selection and its preview handles, sends
  batches one after another and publishes progress

Usage:
    from photodrop import UploadOrchestrator, EndpointConfig, SourceFile

    endpoint = EndpointConfig(url="https://example.com/upload", secret="s3cret")
    async with UploadOrchestrator(endpoint) as uploader:
        report = uploader.add_files([SourceFile.from_path(p) for p in paths])
        uploader.on("progress", lambda p: print(p and f"{p.completed_items}/{p.total_items}"))
        outcome = await uploader.submit("Alice & Bob")
        if not outcome.success:
            print(outcome.error)
"""
from .exceptions import (
    ApplicationError,
    ConfigurationError,
    MalformedResponseError,
    PhotoDropError,
    PreviewError,
    SelectionLockedError,
    TransportError,
    UploadError,
    ValidationError,
)
from .models import (
    EndpointConfig,
    FileRejection,
    RejectionReason,
    RequestSpec,
    SelectedItem,
    SelectionReport,
    SourceFile,
    UploadConfig,
)
from .orchestrator import (
    SelectionSet,
    SubmissionOutcome,
    SubmissionState,
    SubmissionStatus,
    UploadOrchestrator,
    UploadProgress,
    plan_batches,
)
from .services import (
    Base64JSONEncoder,
    JSONAPIClient,
    MultipartEncoder,
    PreviewService,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "SelectionSet",
    "plan_batches",
    # Models
    "SourceFile",
    "SelectedItem",
    "SelectionReport",
    "FileRejection",
    "RejectionReason",
    "UploadConfig",
    "EndpointConfig",
    "RequestSpec",
    "UploadProgress",
    "SubmissionOutcome",
    "SubmissionState",
    "SubmissionStatus",
    # Services
    "JSONAPIClient",
    "MultipartEncoder",
    "Base64JSONEncoder",
    "PreviewService",
    # Errors
    "PhotoDropError",
    "ValidationError",
    "ConfigurationError",
    "SelectionLockedError",
    "PreviewError",
    "UploadError",
    "TransportError",
    "MalformedResponseError",
    "ApplicationError",
]
