"""
Request encoders - turn a batch of selected files into one endpoint request.

Batching and retry do not depend on the encoding; only the body shape does.
"""
import base64
from typing import Dict, Sequence

from ..exceptions import ConfigurationError
from ..models import EndpointConfig, RequestSpec, SelectedItem


class _BaseEncoder:
    """Shared URL, secret and header handling."""

    def _request(self, endpoint: EndpointConfig) -> RequestSpec:
        if not endpoint.is_configured:
            raise ConfigurationError("Upload endpoint not configured")
        params: Dict[str, str] = {}
        if endpoint.secret:
            params["secret"] = endpoint.secret
        return RequestSpec(
            url=endpoint.url.strip(),
            method="POST",
            params=params,
            headers=dict(endpoint.headers),
        )


class MultipartEncoder(_BaseEncoder):
    """
    multipart/form-data: one binary part per file under ``file_field``, with
    the original filename, plus an optional subfolder text field.
    """

    def __init__(self, file_field: str = "files", subfolder_field: str = "subfolderName"):
        self.file_field = file_field
        self.subfolder_field = subfolder_field

    def encode(
        self,
        endpoint: EndpointConfig,
        batch: Sequence[SelectedItem],
        subfolder: str,
    ) -> RequestSpec:
        request = self._request(endpoint)
        folder = (subfolder or "").strip()
        request.data = {self.subfolder_field: folder} if folder else {}
        request.files = [
            (self.file_field, (item.file.name, item.file.read_bytes(), item.file.content_type))
            for item in batch
        ]
        return request


class Base64JSONEncoder(_BaseEncoder):
    """Single JSON body with base64 file payloads, for endpoints without multipart."""

    def __init__(self, files_key: str = "files", subfolder_key: str = "subfolderName"):
        self.files_key = files_key
        self.subfolder_key = subfolder_key

    def encode(
        self,
        endpoint: EndpointConfig,
        batch: Sequence[SelectedItem],
        subfolder: str,
    ) -> RequestSpec:
        request = self._request(endpoint)
        body = {
            self.files_key: [
                {
                    "name": item.file.name,
                    "mimeType": item.file.content_type,
                    "data": base64.b64encode(item.file.read_bytes()).decode("ascii"),
                }
                for item in batch
            ]
        }
        folder = (subfolder or "").strip()
        if folder:
            body[self.subfolder_key] = folder
        request.json = body
        return request


_ENCODERS = {
    "multipart": MultipartEncoder,
    "base64": Base64JSONEncoder,
}


def get_encoder(name: str):
    """Encoder for an ``EndpointConfig.encoding`` value."""
    try:
        return _ENCODERS[(name or "").strip().lower()]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown encoding '{name}'. Available: {', '.join(_ENCODERS)}"
        ) from None
