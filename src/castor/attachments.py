"""Attachment: bytes to upload, loaded from host binaries, disk, or a URL."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from dataclasses import dataclass
import mimetypes
from pathlib import Path
import re
from typing import Any
from urllib.parse import unquote, urlparse

import httpx

from castor.errors import APIError, RequestTimeoutError, SourceError
from castor.providers._errors import TIMEOUT_HINT

DEFAULT_FILENAME = "document.pdf"
DEFAULT_MIME_TYPE = "application/octet-stream"

_DISPOSITION_RE = re.compile(r"filename\*?=(?:UTF-8'')?\"?([^\";]+)\"?", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Attachment:
    """An in-memory file ready for upload."""

    filename: str
    mime_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        *,
        filename: str = DEFAULT_FILENAME,
        mime_type: str | None = None,
    ) -> Attachment:
        """Wrap raw bytes, guessing the MIME type from *filename* when not given."""
        mt = mime_type or mimetypes.guess_type(filename)[0] or DEFAULT_MIME_TYPE
        return cls(filename=filename, mime_type=mt, data=bytes(data))

    @classmethod
    def from_binary(
        cls, entry: Mapping[str, Any], *, default_filename: str = DEFAULT_FILENAME
    ) -> Attachment:
        """Create an Attachment from a host binary entry.

        Args:
            entry: Mapping with ``data`` (base64 text or bytes) and optional
                ``fileName``/``file_name`` and ``mimeType``/``mime_type``.
            default_filename: Used when the entry carries no file name.
        """
        raw = entry.get("data")
        if isinstance(raw, (bytes, bytearray)):
            data = bytes(raw)
        elif isinstance(raw, str):
            try:
                data = base64.b64decode(raw, validate=True)
            except (binascii.Error, ValueError) as e:
                raise SourceError(
                    "Binary entry data is not valid base64",
                    hint="Pass raw bytes or base64-encoded text in the 'data' key.",
                ) from e
        else:
            raise SourceError(
                "Binary entry has no data",
                hint="Expected a mapping with a 'data' key holding bytes or base64 text.",
            )

        filename = entry.get("fileName") or entry.get("file_name") or default_filename
        mime_type = entry.get("mimeType") or entry.get("mime_type")
        return cls.from_bytes(data, filename=str(filename), mime_type=mime_type)

    @classmethod
    def from_file(cls, path: str | Path, *, mime_type: str | None = None) -> Attachment:
        """Read a local file. Must exist or ``SourceError`` is raised."""
        p = Path(path)
        if not p.is_file():
            raise SourceError(f"File not found: {p}")
        return cls.from_bytes(
            p.read_bytes(), filename=p.name or DEFAULT_FILENAME, mime_type=mime_type
        )

    @classmethod
    async def from_url(
        cls,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
    ) -> Attachment:
        """Download *url*; the file name comes from Content-Disposition or the path."""
        owns_client = client is None
        http = client or httpx.AsyncClient(timeout=timeout_s, follow_redirects=True)
        try:
            response = await http.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Download timed out: {url}",
                hint=TIMEOUT_HINT,
                provider="http",
                phase="download",
            ) from e
        except httpx.HTTPStatusError as e:
            raise APIError(
                f"Download failed with HTTP {e.response.status_code}: {url}",
                status_code=e.response.status_code,
                provider="http",
                phase="download",
            ) from e
        except httpx.RequestError as e:
            raise APIError(
                f"Download failed: {url}: {e}", provider="http", phase="download"
            ) from e
        finally:
            if owns_client:
                await http.aclose()

        filename = _filename_from_disposition(
            response.headers.get("content-disposition")
        ) or _filename_from_url(url)
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        return cls.from_bytes(
            response.content, filename=filename, mime_type=content_type or None
        )


def _filename_from_disposition(header: str | None) -> str | None:
    if not header:
        return None
    match = _DISPOSITION_RE.search(header)
    if not match:
        return None
    return unquote(match.group(1).strip()) or None


def _filename_from_url(url: str) -> str:
    name = urlparse(url).path.rsplit("/", 1)[-1]
    return unquote(name) or DEFAULT_FILENAME
