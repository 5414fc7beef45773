"""Error taxonomy for photodrop."""
from typing import Optional


class PhotoDropError(Exception):
    """Base class for all photodrop errors."""


class ValidationError(PhotoDropError):
    """Blank name or empty selection; reported locally, no network call."""


class ConfigurationError(PhotoDropError):
    """Missing or invalid endpoint configuration."""


class SelectionLockedError(PhotoDropError):
    """Selection or name edited while a submission is in flight."""


class PreviewError(PhotoDropError):
    """Preview handle released twice or never issued."""


class UploadError(PhotoDropError):
    """Base class for failures raised by the fetch wrapper."""

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(UploadError):
    """Network error, timeout or abort before a response was read."""

    retryable = True


class MalformedResponseError(UploadError):
    """Response body present but not parseable as JSON."""

    retryable = True


class ApplicationError(UploadError):
    """The endpoint answered and explicitly rejected the request."""
