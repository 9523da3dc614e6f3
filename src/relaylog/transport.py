"""
HTTP transport: POSTs a batch envelope to the remote collector with httpx.
"""

from __future__ import annotations

from typing import Optional

import httpx

from .constants import DEFAULT_CLIENT_ID, DEFAULT_REMOTE_TIMEOUT
from .exceptions import DeliveryFailure
from .types import Batch
from .wire import encode_batch


class HttpTransport:
    """Transport capability backed by :class:`httpx.AsyncClient`.

    Any 2xx response is success. Other status codes and network errors
    raise :class:`DeliveryFailure` for the coordinator to retry.

    Args:
        endpoint: Collector URL.
        client_id: Sent as ``clientId`` in every envelope.
        headers: Extra request headers (auth, tenant, ...).
        timeout: Per-request timeout in seconds.
        client: Pre-built client; the transport then does not own it.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        client_id: str = DEFAULT_CLIENT_ID,
        headers: Optional[dict[str, str]] = None,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._endpoint = endpoint
        self._client_id = client_id
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def __call__(self, batch: Batch) -> None:
        body = encode_batch(batch, self._client_id)
        try:
            response = await self._get_client().post(self._endpoint, content=body, headers=self._headers)
        except httpx.HTTPError as exc:
            raise DeliveryFailure(reason=f"network error: {exc!r}") from exc

        if not response.is_success:
            raise DeliveryFailure(
                reason=f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
