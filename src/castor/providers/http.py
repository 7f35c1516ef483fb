"""httpx-backed transport for JSON calls to the Responses endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from castor._http import DEFAULT_TIMEOUT_S
from castor.errors import APIError, RequestTimeoutError
from castor.providers._errors import TIMEOUT_HINT
from castor.providers.models import TransportResponse

logger = logging.getLogger(__name__)


def decode_body(response: httpx.Response) -> Any:
    """Decode a JSON body, falling back to ``{"raw": text}``."""
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


class HttpxTransport:
    """Transport that sends JSON requests over a shared ``httpx.AsyncClient``.

    Non-2xx responses are returned, not raised; the caller decides what a
    provider status means. Only transport-level failures raise.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Wrap *client*, or lazily create one owned by this transport."""
        self._client = client
        self._owns_client = client is None
        self._timeout_s = timeout_s

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s)
        return self._client

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: dict[str, Any] | None = None,
        timeout_s: float | None = None,
    ) -> TransportResponse:
        timeout = timeout_s if timeout_s is not None else self._timeout_s
        client = self._get_client()
        try:
            response = await client.request(
                method, url, headers=headers, json=json, timeout=timeout
            )
        except asyncio.CancelledError:
            raise
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Request to {url} timed out after {timeout}s",
                hint=TIMEOUT_HINT,
                provider="openai",
                phase="generate",
            ) from e
        except httpx.RequestError as e:
            raise APIError(
                f"Request to {url} failed: {e}",
                hint="Check network connectivity and Config.base_url.",
                provider="openai",
                phase="generate",
            ) from e

        logger.debug("%s %s -> %d", method, url, response.status_code)
        return TransportResponse(
            status_code=response.status_code,
            body=decode_body(response),
            reason=response.reason_phrase,
        )

    async def aclose(self) -> None:
        """Close the underlying client when this transport created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
