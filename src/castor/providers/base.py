"""Collaborator protocols: the narrow seams the node talks through."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from castor.providers.models import TransportResponse


@runtime_checkable
class Transport(Protocol):
    """Performs one HTTP call and returns the decoded response."""

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: dict[str, Any] | None = None,
        timeout_s: float | None = None,
    ) -> TransportResponse:
        """Send a request; raise APIError or RequestTimeoutError on transport failure."""
        ...


@runtime_checkable
class Uploader(Protocol):
    """Uploads raw bytes to the provider's file store."""

    async def upload(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        purpose: str = "user_data",
    ) -> str:
        """Upload *data* and return the provider file id; raise UploadError on failure."""
        ...
