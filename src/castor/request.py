"""Request building: RequestConfig to the Responses API JSON body."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from castor.files import FileId, FileUrl
from castor.models import (
    is_reasoning_model,
    supports_verbosity,
    uses_flat_reasoning,
    uses_nested_reasoning,
)
from castor.options import MAX_ALLOWED_DOMAINS

if TYPE_CHECKING:
    from castor.files import FileReference
    from castor.options import RequestConfig, WebSearchOptions

logger = logging.getLogger(__name__)

SEARCH_SOURCES_INCLUDE = "web_search_call.action.sources"


def build_request(config: RequestConfig) -> dict[str, Any]:
    """Build the provider request body for *config*.

    Pure and total: optional fields that are missing or non-positive are
    simply left out, and enum values are forwarded unvalidated.

    Example:
        body = build_request(RequestConfig(model="gpt-5", prompt="hi"))
        # {"model": "gpt-5", "input": "hi"}
    """
    model = config.model
    body: dict[str, Any] = {"model": model, "input": _build_input(config)}

    if isinstance(config.max_tokens, int) and config.max_tokens > 0:
        body["max_output_tokens"] = config.max_tokens

    # Reasoning-family models reject sampling controls outright.
    if config.temperature is not None and not is_reasoning_model(model):
        body["temperature"] = config.temperature

    _apply_reasoning(body, config)

    if config.verbosity and supports_verbosity(model):
        body.setdefault("text", {})["verbosity"] = config.verbosity

    if config.web_search is not None and config.web_search.enabled:
        body.setdefault("tools", []).append(_web_search_tool(config.web_search))
        if config.web_search.include_sources:
            body.setdefault("include", []).append(SEARCH_SOURCES_INCLUDE)

    logger.debug(
        "Built request: model=%s input=%s files=%d keys=%s",
        model,
        "text" if isinstance(body["input"], str) else "content",
        len(config.files),
        sorted(body),
    )
    return body


def _build_input(config: RequestConfig) -> str | list[dict[str, Any]]:
    if not config.files:
        return config.prompt

    content: list[dict[str, Any]] = [{"type": "input_text", "text": config.prompt}]
    content.extend(_file_segment(ref) for ref in config.files)
    return [{"role": "user", "content": content}]


def _file_segment(ref: FileReference) -> dict[str, Any]:
    if isinstance(ref, FileId):
        if ref.is_image:
            return {"type": "input_image", "file_id": ref.identifier}
        return {"type": "input_file", "file_id": ref.identifier}
    if isinstance(ref, FileUrl) and ref.is_pdf:
        return {"type": "input_file", "file_url": ref.url}
    return {"type": "input_image", "image_url": ref.url}


def _apply_reasoning(body: dict[str, Any], config: RequestConfig) -> None:
    reasoning: dict[str, Any] = {}
    if config.reasoning_effort:
        reasoning["effort"] = config.reasoning_effort
    if config.reasoning_summary and config.reasoning_summary != "none":
        reasoning["summary"] = config.reasoning_summary
    if not reasoning:
        return

    model = config.model
    if uses_nested_reasoning(model):
        body["reasoning"] = reasoning
    elif uses_flat_reasoning(model):
        # The o-series takes a flat effort field but still nests the summary.
        if "effort" in reasoning:
            body["reasoning_effort"] = reasoning["effort"]
        if "summary" in reasoning:
            body["reasoning"] = {"summary": reasoning["summary"]}


def _web_search_tool(options: WebSearchOptions) -> dict[str, Any]:
    tool: dict[str, Any] = {"type": "web_search"}
    if options.search_context_size:
        tool["search_context_size"] = options.search_context_size

    domains = [d for d in options.allowed_domains if d][:MAX_ALLOWED_DOMAINS]
    if domains:
        tool["filters"] = {"allowed_domains": domains}

    if options.user_location is not None:
        location = options.user_location.to_dict()
        if location:
            tool["user_location"] = {"type": "approximate", **location}
    return tool
