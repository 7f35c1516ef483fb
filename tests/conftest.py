"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, marker registration,
and automatic API test skipping. All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import logging
import os
from typing import Any

import pytest

from castor.config import Config
from castor.errors import UploadError
from castor.providers.models import TransportResponse

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class FakeTransport:
    """Transport test double that records calls and replays scripted responses.

    Script entries may be TransportResponse instances, plain dict bodies
    (returned with status 200), or exceptions to raise.
    """

    script: list[TransportResponse | dict[str, Any] | BaseException] = field(
        default_factory=list
    )
    calls: list[dict[str, Any]] = field(default_factory=list)
    closed: bool = False

    @property
    def last_body(self) -> dict[str, Any] | None:
        return self.calls[-1]["json"] if self.calls else None

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: dict[str, Any] | None = None,
        timeout_s: float | None = None,
    ) -> TransportResponse:
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "json": json,
                "timeout_s": timeout_s,
            }
        )
        if not self.script:
            return TransportResponse(
                status_code=200,
                body={"model": (json or {}).get("model"), "output_text": "ok"},
                reason="OK",
            )
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, TransportResponse):
            return item
        return TransportResponse(status_code=200, body=item, reason="OK")

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeUploader:
    """Uploader test double: returns sequential ids, failing for chosen names."""

    fail_names: set[str] = field(default_factory=set)
    uploads: list[dict[str, Any]] = field(default_factory=list)

    async def upload(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        purpose: str = "user_data",
    ) -> str:
        if filename in self.fail_names:
            raise UploadError(
                f"upload of {filename!r} failed",
                status_code=400,
                provider="openai",
                phase="upload",
            )
        self.uploads.append(
            {"data": data, "filename": filename, "mime_type": mime_type, "purpose": purpose}
        )
        return f"file-{len(self.uploads)}"


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(request, monkeypatch):
    """Ensure a clean provider environment for each test.

    Clears OPENAI_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith("OPENAI_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


# =============================================================================
# Shared Fixtures
# =============================================================================

# Cheapest model that still exercises the nested reasoning path.
OPENAI_TEST_MODEL = "gpt-5-nano"


@pytest.fixture
def config() -> Config:
    """Config with a dummy key; no network is ever touched with it."""
    return Config(api_key="sk-test")


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def openai_api_key():
    """Return OPENAI_API_KEY or skip the test if unavailable."""
    key = os.getenv("OPENAI_API_KEY")
    if not key:
        pytest.skip("OPENAI_API_KEY not set")
    return key


@pytest.fixture
def openai_test_model():
    """Return the model to use for OpenAI API tests."""
    return OPENAI_TEST_MODEL
