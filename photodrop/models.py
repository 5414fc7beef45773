"""
Models for photodrop.

Immutable dataclasses for configuration and files, plus the selection entry type.
"""
import mimetypes
import os
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List

MB = 1024 * 1024


@dataclass(frozen=True)
class SourceFile:
    """
    A file picked by the guest.

    Either backed by a path on disk or by in-memory bytes. ``last_modified`` is
    a millisecond timestamp, the same resolution a browser ``File`` exposes.
    """
    name: str
    size: int
    last_modified: int
    content_type: str = "application/octet-stream"
    path: Optional[Path] = None
    data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: Path, content_type: Optional[str] = None) -> "SourceFile":
        path = Path(path)
        stat = path.stat()
        if content_type is None:
            guessed, _ = mimetypes.guess_type(str(path))
            content_type = guessed or "application/octet-stream"
        return cls(
            name=path.name,
            size=stat.st_size,
            last_modified=int(stat.st_mtime * 1000),
            content_type=content_type,
            path=path,
        )

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        content_type: Optional[str] = None,
        last_modified: int = 0,
    ) -> "SourceFile":
        if content_type is None:
            guessed, _ = mimetypes.guess_type(name)
            content_type = guessed or "application/octet-stream"
        return cls(
            name=name,
            size=len(data),
            last_modified=last_modified,
            content_type=content_type,
            data=data,
        )

    @property
    def fingerprint(self) -> str:
        """Dedup key: name, byte size and modification time."""
        return f"{self.name}-{self.size}-{self.last_modified}"

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"{self.name} has neither a path nor in-memory data")
        return self.path.read_bytes()


@dataclass(frozen=True)
class SelectedItem:
    """One entry of the selection set, paired with its preview handle."""
    identity: str
    file: SourceFile
    preview_handle: str

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def size(self) -> int:
        return self.file.size

    @property
    def fingerprint(self) -> str:
        return self.file.fingerprint

    @staticmethod
    def make_identity(file: SourceFile) -> str:
        # Random suffix keeps keys unique even for identical re-selections
        return f"{file.fingerprint}-{uuid.uuid4()}"


class RejectionReason(Enum):
    """Why a picked file was not added to the selection."""
    NOT_IMAGE = "not_image"
    TOO_LARGE = "too_large"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class FileRejection:
    """Per-file rejection reported by ``add_files``; never aborts the rest."""
    filename: str
    reason: RejectionReason
    message: str


@dataclass
class SelectionReport:
    """Result of adding a group of files to the selection."""
    accepted: List[SelectedItem] = field(default_factory=list)
    rejected: List[FileRejection] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


@dataclass(frozen=True)
class UploadConfig:
    """Immutable limits for validation, batching and retry."""
    max_file_bytes: int = 25 * MB
    max_batch_bytes: int = 30 * MB
    max_batch_count: int = 3
    batch_retries: int = 1
    retry_base_delay: float = 0.15
    accepted_type_prefix: str = "image/"
    max_name_length: int = 64

    def accepts_type(self, content_type: str) -> bool:
        return (content_type or "").startswith(self.accepted_type_prefix)


ENCODINGS = ("multipart", "base64")


@dataclass(frozen=True)
class EndpointConfig:
    """Where and how batches are delivered."""
    url: Optional[str] = None
    secret: Optional[str] = None
    encoding: str = "multipart"
    timeout: float = 60
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.url.strip())

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, Any]] = None) -> "EndpointConfig":
        """
        Build from ``PHOTODROP_ENDPOINT``, ``PHOTODROP_SECRET`` and
        ``PHOTODROP_ENCODING``. Missing values stay unset; a missing URL is
        reported when a submission is attempted.
        """
        env = os.environ if environ is None else environ
        return cls(
            url=env.get("PHOTODROP_ENDPOINT") or None,
            secret=env.get("PHOTODROP_SECRET") or None,
            encoding=(env.get("PHOTODROP_ENCODING") or "multipart").strip().lower(),
        )


@dataclass
class RequestSpec:
    """Description of one HTTP call, independent of the client sending it."""
    url: str
    method: str = "POST"
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    data: Optional[Dict[str, Any]] = None
    files: Optional[List[Any]] = None
    json: Optional[Any] = None

    def as_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient.request``."""
        kwargs: Dict[str, Any] = {}
        if self.params:
            kwargs["params"] = self.params
        if self.headers:
            kwargs["headers"] = self.headers
        if self.data is not None:
            kwargs["data"] = self.data
        if self.files is not None:
            kwargs["files"] = self.files
        if self.json is not None:
            kwargs["json"] = self.json
        return kwargs
