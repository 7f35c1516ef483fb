"""Model families and the field-placement rules that differ between them."""

from __future__ import annotations

import re
from typing import Literal, get_args

ReasoningEffort = Literal["minimal", "low", "medium", "high"]
ReasoningSummary = Literal["none", "auto", "concise", "detailed"]
Verbosity = Literal["low", "medium", "high"]
SearchContextSize = Literal["low", "medium", "high"]

ModelId = Literal[
    "gpt-5",
    "gpt-5-mini",
    "gpt-5-nano",
    "gpt-4.1",
    "gpt-4.1-mini",
    "o3",
    "o3-mini",
    "o3-pro",
    "o4-mini",
]

#: Models offered by the node. Other ids are sent as given.
SUPPORTED_MODELS: tuple[str, ...] = get_args(ModelId)

DEFAULT_MODEL: ModelId = "gpt-5"

#: Faster sibling used when quick mode is on. Unlisted models are kept as-is.
QUICK_MODE_MODELS: dict[ModelId, ModelId] = {
    "gpt-5": "gpt-5-mini",
    "gpt-5-mini": "gpt-5-nano",
    "gpt-4.1": "gpt-4.1-mini",
    "o3-pro": "o3",
    "o3": "o3-mini",
}

_O_SERIES_RE = re.compile(r"^o[134]")


def uses_nested_reasoning(model: str) -> bool:
    """GPT-5 family: effort and summary both live under ``reasoning``."""
    return model.startswith("gpt-5")


def uses_flat_reasoning(model: str) -> bool:
    """o-series: effort is top-level ``reasoning_effort``, summary stays nested."""
    return bool(_O_SERIES_RE.match(model))


def is_reasoning_model(model: str) -> bool:
    """Return True for families that reject classic sampling controls."""
    return uses_nested_reasoning(model) or uses_flat_reasoning(model)


def supports_verbosity(model: str) -> bool:
    return model.startswith("gpt-5")


def quick_model(model: str) -> str:
    return QUICK_MODE_MODELS.get(model, model)
