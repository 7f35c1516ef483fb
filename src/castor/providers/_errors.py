"""Shared provider-side error helpers.

Every failure that crosses a provider seam leaves as an APIError subclass
carrying the status code and decoded body, so the node can turn it into a
failure record without inspecting SDK-specific exception types.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import openai

from castor.errors import (
    APIError,
    RequestTimeoutError,
    UploadError,
    _walk_exception_chain,
)

TIMEOUT_HINT = (
    "Increase Config.timeout_s, lower reasoning_effort, or enable quick_mode."
)


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def extract_error_body(exc: BaseException) -> dict[str, Any] | None:
    """Return the provider's decoded error body from an SDK exception, if any."""
    for e in _walk_exception_chain(exc):
        body = getattr(e, "body", None)
        if isinstance(body, dict):
            return body
    return None


def error_message_from_body(body: Any, fallback: str) -> str:
    """Prefer the provider's embedded ``error.message`` over *fallback*."""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return message
        elif isinstance(error, str) and error.strip():
            return error
        # Some SDKs hand over the inner error object directly.
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return fallback


def _auth_hint(status_code: int | None, cause_message: str) -> str | None:
    """Generate a hint for auth errors where naming the env var is useful."""
    cause_lower = cause_message.lower()
    if status_code in {401, 403} or (
        status_code == 400 and ("api key" in cause_lower or "api_key" in cause_lower)
    ):
        return "Check credentials/permissions (try setting OPENAI_API_KEY or Config.api_key)."
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
    hint: str | None = None,
) -> APIError:
    """Map SDK and transport exceptions into APIError with stable metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        if hint is not None and exc.hint is None:
            exc.hint = hint
        return exc

    status_code = extract_status_code(exc)
    details = extract_error_body(exc)

    timed_out = any(
        isinstance(e, (httpx.TimeoutException, openai.APITimeoutError))
        for e in _walk_exception_chain(exc)
    )

    err_cls: type[APIError] = APIError
    if timed_out:
        err_cls = RequestTimeoutError
    elif phase == "upload":
        err_cls = UploadError

    derived_hint = hint
    if derived_hint is None:
        derived_hint = TIMEOUT_HINT if timed_out else _auth_hint(status_code, str(exc))

    msg = message or f"{provider} {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = error_message_from_body(details, str(exc))
    return err_cls(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=derived_hint,
        status_code=status_code,
        details=details,
        provider=provider,
        phase=phase,
    )
