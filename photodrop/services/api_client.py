"""HTTP adapter for JSON upload endpoints."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import httpx

from ..exceptions import (
    ApplicationError,
    MalformedResponseError,
    TransportError,
    UploadError,
)
from ..models import RequestSpec

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200
DEFAULT_RETRIES = 2
DEFAULT_BASE_DELAY = 0.15


def parse_response(response: httpx.Response, require_ok: bool = True) -> Dict[str, Any]:
    """
    Classify a completed response.

    Returns the parsed payload, or raises MalformedResponseError (body is not
    JSON) or ApplicationError (non-2xx status, or ``ok`` flag not true).
    """
    status = response.status_code
    text = response.text
    try:
        payload = json.loads(text) if text else {}
    except ValueError as exc:
        raise MalformedResponseError(
            f"Invalid JSON response ({status}): {text[:SNIPPET_LENGTH]}",
            status_code=status,
        ) from exc

    error = payload.get("error") if isinstance(payload, dict) else None

    if not response.is_success:
        raise ApplicationError(error or f"HTTP {status}", status_code=status)

    if require_ok and not (isinstance(payload, dict) and payload.get("ok") is True):
        raise ApplicationError(error or "Upload failed", status_code=status)

    return payload


class JSONAPIClient:
    """
    HTTP client adapter for JSON-over-HTTP calls with bounded retry.

    Implements IFetchClient protocol. Knows nothing about files or batches.
    """

    def __init__(self, timeout: float = 60, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _send_once(self, request: RequestSpec, require_ok: bool) -> Dict[str, Any]:
        try:
            response = await self._client.request(
                request.method, request.url, **request.as_kwargs()
            )
        except httpx.TransportError as exc:
            raise TransportError(
                f"Network error on {request.method} {request.url}: {str(exc) or type(exc).__name__}"
            ) from exc
        return parse_response(response, require_ok=require_ok)

    async def fetch_json(
        self,
        request: RequestSpec,
        retries: int = DEFAULT_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        require_ok: bool = True,
    ) -> Dict[str, Any]:
        """
        Send ``request`` and return the parsed JSON payload.

        Transport and malformed-response failures are retried up to
        ``retries`` times, sleeping ``base_delay * attempt`` between attempts.
        ApplicationError is raised at once. After the budget is spent the last
        error is raised.
        """
        if not self._client:
            raise RuntimeError("JSONAPIClient not initialized. Use 'async with' context.")

        max_attempts = max(retries, 0) + 1
        last_exception: Optional[UploadError] = None

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._send_once(request, require_ok)
            except UploadError as exc:
                if not exc.retryable:
                    raise
                last_exception = exc
                if attempt < max_attempts:
                    delay = base_delay * attempt
                    logger.warning(
                        "%s %s failed on attempt %d/%d (%s), retrying in %.2fs",
                        request.method, request.url, attempt, max_attempts, exc, delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

        raise last_exception or RuntimeError(
            f"Failed to {request.method} {request.url} after {max_attempts} attempts"
        )
