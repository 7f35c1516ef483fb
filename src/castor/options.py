"""Per-row request settings and the quick-mode transform."""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import TYPE_CHECKING

from castor.errors import ConfigurationError
from castor.models import DEFAULT_MODEL, SUPPORTED_MODELS, quick_model

if TYPE_CHECKING:
    from castor.files import FileReference
    from castor.models import (
        ModelId,
        ReasoningEffort,
        ReasoningSummary,
        SearchContextSize,
        Verbosity,
    )

logger = logging.getLogger(__name__)

MAX_ALLOWED_DOMAINS = 20


@dataclass(frozen=True)
class UserLocation:
    """Approximate location hint for web search; empty fields are omitted."""

    country: str | None = None
    city: str | None = None
    region: str | None = None
    timezone: str | None = None

    def to_dict(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for key in ("country", "city", "region", "timezone"):
            value = getattr(self, key)
            if isinstance(value, str) and value.strip():
                out[key] = value.strip()
        return out


@dataclass(frozen=True)
class WebSearchOptions:
    """Web search tool settings."""

    enabled: bool = False
    #: Truncated to the first 20 entries when the request is built.
    allowed_domains: tuple[str, ...] = ()
    search_context_size: SearchContextSize | None = None
    #: Ask the provider to return the list of sources it consulted.
    include_sources: bool = False
    user_location: UserLocation | None = None


@dataclass(frozen=True)
class RequestConfig:
    """Immutable snapshot of one invocation's settings.

    Enum-like fields are passed through to the provider as given; the
    provider is the authority on which values it accepts.
    """

    prompt: str
    #: One of ``SUPPORTED_MODELS``; other provider ids are passed through.
    model: ModelId | str = DEFAULT_MODEL
    files: tuple[FileReference, ...] = ()
    #: Mapped to ``max_output_tokens``; ignored unless positive.
    max_tokens: int | None = None
    #: Dropped for reasoning-family models.
    temperature: float | None = None
    reasoning_effort: ReasoningEffort | None = None
    #: ``"none"`` is treated the same as unset.
    reasoning_summary: ReasoningSummary | None = None
    verbosity: Verbosity | None = None
    web_search: WebSearchOptions | None = None
    #: Applied by ``apply_quick_mode`` before the request is built.
    quick_mode: bool = False

    def __post_init__(self) -> None:
        """Validate option shapes early for clear errors."""
        if not isinstance(self.prompt, str) or not self.prompt.strip():
            raise ConfigurationError(
                "prompt must be a non-empty string",
                hint="Pass prompt='Summarize this document.'",
            )
        if not isinstance(self.model, str) or not self.model.strip():
            raise ConfigurationError(
                "model must be a non-empty string",
                hint=f"Pass model='{DEFAULT_MODEL}' or another Responses API model id.",
            )
        if self.model not in SUPPORTED_MODELS:
            logger.debug("Model %r is not a listed model; sending it as given", self.model)
        if self.temperature is not None and not 0 <= self.temperature <= 2:
            raise ConfigurationError(
                f"temperature must be between 0 and 2, got {self.temperature}",
                hint="Use a value between 0 and 2, or leave temperature unset.",
            )
        if not isinstance(self.files, tuple):
            object.__setattr__(self, "files", tuple(self.files))


def apply_quick_mode(config: RequestConfig) -> RequestConfig:
    """Return *config* rewritten for latency: low effort, faster sibling model.

    A no-op when ``quick_mode`` is off.
    """
    if not config.quick_mode:
        return config

    web_search = config.web_search
    if web_search is not None:
        web_search = replace(web_search, search_context_size="medium")

    return replace(
        config,
        model=quick_model(config.model),
        reasoning_effort="low",
        web_search=web_search,
    )
