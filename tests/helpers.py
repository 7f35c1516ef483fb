"""Test helpers (small, reusable builders).

Keep this file tiny and purpose-built: it exists so suites share one way of
spelling host items and provider response payloads.
"""

from __future__ import annotations

import base64
from typing import Any


def binary_entry(
    data: bytes = b"%PDF-1.4 test",
    *,
    file_name: str | None = "report.pdf",
    mime_type: str | None = "application/pdf",
) -> dict[str, Any]:
    """Build a host binary entry with base64 data, as workflow hosts store it."""
    entry: dict[str, Any] = {"data": base64.b64encode(data).decode("ascii")}
    if file_name is not None:
        entry["fileName"] = file_name
    if mime_type is not None:
        entry["mimeType"] = mime_type
    return entry


def host_item(
    json: dict[str, Any] | None = None, **binaries: dict[str, Any]
) -> dict[str, Any]:
    """Build a host item; keyword arguments become binary properties."""
    item: dict[str, Any] = {"json": json or {}}
    if binaries:
        item["binary"] = dict(binaries)
    return item


def message_response(
    text: str,
    *,
    model: str = "gpt-5",
    annotations: list[dict[str, Any]] | None = None,
    usage: dict[str, Any] | None = None,
    extra_output: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a Responses API payload whose text lives in a message output item."""
    output: list[dict[str, Any]] = list(extra_output or [])
    output.append(
        {
            "type": "message",
            "role": "assistant",
            "content": [
                {"type": "output_text", "text": text, "annotations": annotations or []}
            ],
        }
    )
    payload: dict[str, Any] = {"model": model, "output": output}
    if usage is not None:
        payload["usage"] = usage
    return payload
