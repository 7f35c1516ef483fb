"""Configuration: frozen credentials and batch policy for the Responses node."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from castor._http import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_S, ORGANIZATION_HEADER
from castor.errors import ConfigurationError

load_dotenv()

_API_KEY_ENV_VAR = "OPENAI_API_KEY"
_ORG_ENV_VAR = "OPENAI_ORG_ID"
_BASE_URL_ENV_VAR = "OPENAI_BASE_URL"


@dataclass(frozen=True)
class Config:
    """Immutable connection settings shared by every row of a batch.

    API key, organization and base URL are auto-resolved from the standard
    OpenAI environment variables when not passed explicitly.

    Example:
        config = Config(continue_on_fail=True)
        # API key is automatically resolved from OPENAI_API_KEY
    """

    #: Auto-resolved from ``OPENAI_API_KEY`` when *None*.
    api_key: str | None = None
    #: Auto-resolved from ``OPENAI_ORG_ID`` when *None*.
    organization_id: str | None = None
    #: Auto-resolved from ``OPENAI_BASE_URL``; the ``/v1`` suffix is added per call.
    base_url: str | None = None
    timeout_s: float = DEFAULT_TIMEOUT_S
    #: When True a failing row becomes an error record instead of aborting the batch.
    continue_on_fail: bool = False

    def __post_init__(self) -> None:
        """Auto-resolve environment values and validate configuration."""
        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(_API_KEY_ENV_VAR))
        if self.organization_id is None:
            object.__setattr__(
                self, "organization_id", os.environ.get(_ORG_ENV_VAR) or None
            )

        base_url = self.base_url or os.environ.get(_BASE_URL_ENV_VAR) or DEFAULT_BASE_URL
        base_url = base_url.strip().rstrip("/")
        if base_url.endswith("/v1"):
            base_url = base_url[: -len("/v1")]
        object.__setattr__(self, "base_url", base_url)

        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                "API key required for OpenAI",
                hint=f"Set {_API_KEY_ENV_VAR} environment variable or pass api_key=...",
            )
        if not base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"base_url must be an http(s) URL, got {base_url!r}",
                hint="Use the default https://api.openai.com or a compatible proxy URL.",
            )
        if self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="This bounds each upload and completion call in seconds.",
            )

    def headers(self) -> dict[str, str]:
        """Return authorization headers for provider calls."""
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self.organization_id:
            headers[ORGANIZATION_HEADER] = self.organization_id
        return headers

    def url(self, path: str) -> str:
        """Join *path* onto the configured base URL."""
        return f"{self.base_url}{path}"

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(base_url={self.base_url!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"organization_id={self.organization_id!r}, "
            f"timeout_s={self.timeout_s}, continue_on_fail={self.continue_on_fail})"
        )

    __repr__ = __str__
