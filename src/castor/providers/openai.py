"""OpenAI collaborators: Files API uploads and Responses API calls."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from castor._http import API_PREFIX, RESPONSES_PATH
from castor.errors import APIError, UploadError
from castor.providers._errors import (
    _auth_hint,
    error_message_from_body,
    wrap_provider_error,
)
from castor.providers.http import HttpxTransport

if TYPE_CHECKING:
    from castor.config import Config
    from castor.providers.base import Transport

logger = logging.getLogger(__name__)

DEFAULT_PURPOSE = "user_data"


class OpenAIFileUploader:
    """Uploads bytes through the ``openai`` SDK Files API."""

    def __init__(self, config: Config, *, client: Any = None) -> None:
        """Bind to *config*; *client* overrides the lazily created AsyncOpenAI."""
        self.config = config
        self._client = client

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                organization=self.config.organization_id,
                base_url=self.config.url(API_PREFIX),
                timeout=self.config.timeout_s,
                max_retries=0,
            )
        return self._client

    async def upload(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        purpose: str = DEFAULT_PURPOSE,
    ) -> str:
        """Upload *data* as a multipart file and return its provider id."""
        client = self._get_client()
        try:
            result = await client.files.create(
                file=(filename, data, mime_type),
                purpose=purpose or DEFAULT_PURPOSE,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider="openai",
                phase="upload",
                message=f"OpenAI upload of {filename!r} failed",
            ) from e

        file_id = getattr(result, "id", None)
        if not isinstance(file_id, str) or not file_id:
            raise UploadError(
                "OpenAI upload did not return a file id",
                provider="openai",
                phase="upload",
            )
        logger.debug("Uploaded %s (%d bytes) as %s", filename, len(data), file_id)
        return file_id

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


class ResponsesClient:
    """Posts request bodies to the Responses endpoint over a Transport."""

    def __init__(self, config: Config, transport: Transport | None = None) -> None:
        self.config = config
        self.transport = transport or HttpxTransport(timeout_s=config.timeout_s)

    @property
    def responses_url(self) -> str:
        return self.config.url(RESPONSES_PATH)

    async def create(self, body: dict[str, Any]) -> dict[str, Any]:
        """Send *body* and return the decoded provider response.

        Raises:
            APIError: For any non-2xx status; ``details`` holds the provider body.
            RequestTimeoutError: When the transport deadline is exceeded.
        """
        headers = {**self.config.headers(), "Content-Type": "application/json"}
        response = await self.transport.send(
            "POST",
            self.responses_url,
            headers=headers,
            json=body,
            timeout_s=self.config.timeout_s,
        )

        if not response.ok:
            fallback = response.reason or f"HTTP {response.status_code}"
            details = response.body if isinstance(response.body, dict) else {}
            message = error_message_from_body(details, fallback)
            raise APIError(
                message,
                hint=_auth_hint(response.status_code, message),
                status_code=response.status_code,
                details=details,
                provider="openai",
                phase="generate",
            )

        if not isinstance(response.body, dict):
            return {"raw": response.body}
        return response.body

    async def aclose(self) -> None:
        aclose = getattr(self.transport, "aclose", None)
        if callable(aclose):
            await aclose()
