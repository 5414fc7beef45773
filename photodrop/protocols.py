"""
Protocols (Interfaces) for Dependency Inversion.

Small, focused seams: the request encoding, the preview factory and the
fetch client can each be swapped without touching the orchestrator.
"""
from typing import Any, Dict, Protocol, Sequence, runtime_checkable

from .models import EndpointConfig, RequestSpec, SelectedItem, SourceFile


@runtime_checkable
class IRequestEncoder(Protocol):
    """Turns one batch into a request for the configured endpoint."""

    def encode(
        self,
        endpoint: EndpointConfig,
        batch: Sequence[SelectedItem],
        subfolder: str,
    ) -> RequestSpec:
        ...


@runtime_checkable
class IPreviewFactory(Protocol):
    """Creates and releases preview handles."""

    def create(self, file: SourceFile) -> str:
        """Create a preview handle for a newly selected file."""
        ...

    def revoke(self, handle: str) -> None:
        """Release a handle. Called exactly once per created handle."""
        ...


@runtime_checkable
class IFetchClient(Protocol):
    """JSON-over-HTTP call with bounded retry."""

    async def fetch_json(
        self,
        request: RequestSpec,
        retries: int = 2,
        base_delay: float = 0.15,
        require_ok: bool = True,
    ) -> Dict[str, Any]:
        ...
