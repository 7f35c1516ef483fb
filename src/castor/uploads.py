"""Bulk upload with per-item outcomes: failures are recorded, never fatal."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from castor.errors import APIError, SourceError
from castor.files import FileId
from castor.providers.openai import DEFAULT_PURPOSE

if TYPE_CHECKING:
    from collections.abc import Iterable

    from castor.attachments import Attachment
    from castor.providers.base import Uploader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadFailure:
    """One attachment that could not be uploaded."""

    name: str
    error: str
    status_code: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "error": self.error, "status_code": self.status_code}


@dataclass
class UploadBatch:
    """Outcome of uploading several attachments, in input order."""

    references: list[FileId] = field(default_factory=list)
    skipped: list[UploadFailure] = field(default_factory=list)

    @property
    def file_ids(self) -> list[str]:
        return [ref.identifier for ref in self.references]


async def upload_all(
    uploader: Uploader,
    attachments: Iterable[tuple[str, Attachment | Exception]],
    *,
    purpose: str = DEFAULT_PURPOSE,
) -> UploadBatch:
    """Upload each named attachment sequentially, skipping the ones that fail.

    Entries may carry an exception in place of an attachment when loading it
    already failed; those are recorded as skipped without an upload attempt.
    """
    batch = UploadBatch()
    for name, attachment in attachments:
        if isinstance(attachment, Exception):
            _skip(batch, name, attachment)
            continue
        try:
            file_id = await uploader.upload(
                attachment.data, attachment.filename, attachment.mime_type, purpose
            )
        except asyncio.CancelledError:
            raise
        except (APIError, SourceError) as e:
            _skip(batch, name, e)
            continue
        batch.references.append(FileId(file_id, mime_type=attachment.mime_type))
    return batch


def _skip(batch: UploadBatch, name: str, exc: Exception) -> None:
    status_code = getattr(exc, "status_code", None)
    logger.warning("Skipping upload of %r: %s", name, exc)
    batch.skipped.append(
        UploadFailure(
            name=name,
            error=str(exc),
            status_code=status_code if isinstance(status_code, int) else None,
        )
    )
