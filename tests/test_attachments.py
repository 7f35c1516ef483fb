"""Attachment loading tests: host binaries, local files and URL downloads."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from castor.attachments import Attachment
from castor.errors import APIError, RequestTimeoutError, SourceError
from castor.providers._errors import TIMEOUT_HINT
from tests.helpers import binary_entry

pytestmark = pytest.mark.unit


def test_from_binary_decodes_base64_and_keeps_metadata() -> None:
    attachment = Attachment.from_binary(binary_entry(b"hello", file_name="a.pdf"))

    assert attachment.data == b"hello"
    assert attachment.filename == "a.pdf"
    assert attachment.mime_type == "application/pdf"
    assert attachment.size_bytes == 5


def test_from_binary_accepts_raw_bytes_and_snake_case_keys() -> None:
    attachment = Attachment.from_binary(
        {"data": b"\x89PNG", "file_name": "chart.png", "mime_type": "image/png"}
    )
    assert attachment.data == b"\x89PNG"
    assert attachment.filename == "chart.png"
    assert attachment.mime_type == "image/png"


def test_from_binary_defaults_filename_and_guesses_mime_type() -> None:
    attachment = Attachment.from_binary(binary_entry(file_name=None, mime_type=None))
    assert attachment.filename == "document.pdf"
    assert attachment.mime_type == "application/pdf"


@pytest.mark.parametrize("entry", [{"data": "not base64!!"}, {"data": None}, {}])
def test_from_binary_rejects_bad_payloads(entry: dict) -> None:
    with pytest.raises(SourceError) as exc:
        Attachment.from_binary(entry)
    assert exc.value.hint is not None


def test_from_file_reads_bytes_and_name(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"some notes")

    attachment = Attachment.from_file(path)

    assert attachment.data == b"some notes"
    assert attachment.filename == "notes.txt"
    assert attachment.mime_type == "text/plain"


def test_from_file_missing_raises_source_error(tmp_path: Path) -> None:
    with pytest.raises(SourceError, match="File not found"):
        Attachment.from_file(tmp_path / "missing.pdf")


# =============================================================================
# URL Downloads
# =============================================================================


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_from_url_uses_content_disposition_filename() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            content=b"%PDF-1.7",
            headers={
                "content-type": "application/pdf; charset=binary",
                "content-disposition": 'attachment; filename="Quarterly Report.pdf"',
            },
        )

    async with _client(handler) as client:
        attachment = await Attachment.from_url(
            "https://files.example/download?id=7", client=client
        )

    assert attachment.filename == "Quarterly Report.pdf"
    assert attachment.mime_type == "application/pdf"
    assert attachment.data == b"%PDF-1.7"


@pytest.mark.asyncio
async def test_from_url_falls_back_to_url_path_filename() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"data")

    async with _client(handler) as client:
        attachment = await Attachment.from_url(
            "https://files.example/docs/paper%201.pdf?sig=abc", client=client
        )

    assert attachment.filename == "paper 1.pdf"
    assert attachment.mime_type == "application/pdf"


@pytest.mark.asyncio
async def test_from_url_without_path_uses_default_filename() -> None:
    async with _client(lambda request: httpx.Response(200, content=b"x")) as client:
        attachment = await Attachment.from_url("https://files.example", client=client)
    assert attachment.filename == "document.pdf"


@pytest.mark.asyncio
async def test_from_url_http_error_becomes_download_api_error() -> None:
    async with _client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(APIError) as exc:
            await Attachment.from_url("https://files.example/gone.pdf", client=client)

    assert exc.value.status_code == 404
    assert exc.value.phase == "download"


@pytest.mark.asyncio
async def test_from_url_deadline_becomes_timeout_error_with_hint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    async with _client(handler) as client:
        with pytest.raises(RequestTimeoutError) as exc:
            await Attachment.from_url("https://files.example/slow.pdf", client=client)

    assert exc.value.hint == TIMEOUT_HINT
    assert exc.value.phase == "download"
    assert exc.value.status_code is None
