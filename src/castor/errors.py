"""Exception hierarchy for Castor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator


class CastorError(Exception):
    """Base exception for all Castor errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CastorError):
    """Credentials or node options failed validation."""


class SourceError(CastorError):
    """An attachment could not be loaded."""


class APIError(CastorError):
    """A provider or transport call failed.

    ``details`` carries the provider's decoded error body (when there was one)
    so failure records can surface it verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        provider: str | None = None,
        phase: str | None = None,
        item_index: int | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.details = details
        self.provider = provider
        self.phase = phase
        self.item_index = item_index


class RequestTimeoutError(APIError):
    """The transport exceeded the configured deadline."""


class UploadError(APIError):
    """A file upload to the provider failed."""


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
