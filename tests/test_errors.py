from __future__ import annotations

import pytest

from castor.errors import (
    APIError,
    CastorError,
    ConfigurationError,
    RequestTimeoutError,
    SourceError,
    UploadError,
    _walk_exception_chain,
)

pytestmark = pytest.mark.unit


def test_api_error_structured_metadata() -> None:
    err = APIError(
        "boom",
        hint="do this",
        status_code=400,
        details={"error": {"message": "boom"}},
        provider="openai",
        phase="generate",
        item_index=1,
    )

    assert str(err) == "boom"
    assert err.hint == "do this"
    assert err.status_code == 400
    assert err.details == {"error": {"message": "boom"}}
    assert err.provider == "openai"
    assert err.phase == "generate"
    assert err.item_index == 1


def test_api_error_defaults_to_none() -> None:
    err = APIError("fail")
    assert err.hint is None
    assert err.status_code is None
    assert err.details is None
    assert err.provider is None
    assert err.phase is None
    assert err.item_index is None


def test_subclass_hierarchy() -> None:
    """Timeout and upload failures are catchable as APIError and CastorError."""
    timeout = RequestTimeoutError("slow", phase="generate")
    upload = UploadError("rejected", status_code=400, phase="upload")

    for err in (timeout, upload):
        assert isinstance(err, APIError)
        assert isinstance(err, CastorError)
    assert isinstance(ConfigurationError("x"), CastorError)
    assert isinstance(SourceError("x"), CastorError)
    assert not isinstance(SourceError("x"), APIError)


def test_walk_exception_chain_visits_cause_and_context_once() -> None:
    root = ValueError("root")
    middle = RuntimeError("middle")
    middle.__cause__ = root
    top = APIError("top")
    top.__context__ = middle
    # Cycle back to the top must not loop forever.
    root.__context__ = top

    seen = list(_walk_exception_chain(top))

    assert seen == [top, middle, root]
