"""Response extraction: provider JSON to a flat, stable result record.

The Responses API returns different shapes depending on the model family and
on whether tools ran. Each known shape is a small pydantic model; extraction
tries them in precedence order and falls through when a shape does not
validate, so an unfamiliar or empty response yields an empty result rather
than an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

_SUMMARY_MODES = frozenset({"none", "auto", "concise", "detailed"})

_ShapeT = TypeVar("_ShapeT", bound=BaseModel)


# --- Response shapes (Pydantic wall) ---


class _Shape(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _FlatText(_Shape):
    output_text: str


class _UrlCitation(_Shape):
    type: Literal["url_citation"]
    url: str
    title: str | None = None
    start_index: int | None = None
    end_index: int | None = None


class _OutputText(_Shape):
    type: Literal["output_text"]
    text: str = ""
    annotations: list[Any] = []


class _Message(_Shape):
    type: Literal["message"]
    content: list[Any]


class _SearchSource(_Shape):
    url: str
    title: str | None = None


class _SearchAction(_Shape):
    query: str | None = None
    domains: list[str] | None = None
    sources: list[Any] | None = None


class _WebSearchCallItem(_Shape):
    type: Literal["web_search_call"]
    id: str | None = None
    status: str | None = None
    action: _SearchAction | None = None


class _SummaryText(_Shape):
    type: Literal["summary_text"]
    text: str


class _ReasoningItem(_Shape):
    type: Literal["reasoning"]
    summary: list[Any] = []


class _LegacyMessage(_Shape):
    content: str


class _LegacyChoice(_Shape):
    message: _LegacyMessage


class _LegacyChoices(_Shape):
    choices: list[_LegacyChoice]


def _decode(shape: type[_ShapeT], data: Any) -> _ShapeT | None:
    """Validate *data* against *shape*, returning None on mismatch."""
    try:
        return shape.model_validate(data)
    except ValidationError:
        return None


# --- Result records ---


@dataclass(frozen=True)
class Citation:
    """A URL citation attached to the output text."""

    url: str
    title: str | None = None
    start_index: int | None = None
    end_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "start_index": self.start_index,
            "end_index": self.end_index,
        }


@dataclass(frozen=True)
class WebSearchCall:
    """Side-channel record of one web search the provider performed."""

    id: str | None = None
    status: str | None = None
    query: str | None = None
    domains: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "query": self.query,
            "domains": list(self.domains),
            "sources": list(self.sources),
        }


@dataclass(frozen=True)
class ExtractionResult:
    """Stable output record for one processed row."""

    text: str
    model: str
    #: Verbatim provider usage: ``input_tokens``, ``output_tokens``,
    #: ``total_tokens`` and, when reported, ``output_tokens_details``.
    usage: dict[str, Any] | None = None
    reasoning_summary: str | None = None
    citations: tuple[Citation, ...] = ()
    sources: tuple[str, ...] = ()
    web_search: tuple[WebSearchCall, ...] = ()
    file_id: str | None = None

    @property
    def reasoning_tokens(self) -> int | None:
        """Reasoning-token count when the provider reported one."""
        if not self.usage:
            return None
        details = self.usage.get("output_tokens_details")
        if isinstance(details, dict) and isinstance(
            details.get("reasoning_tokens"), int
        ):
            return details["reasoning_tokens"]
        value = self.usage.get("reasoning_tokens")
        return value if isinstance(value, int) else None

    def to_dict(self) -> dict[str, Any]:
        """Render the caller-facing JSON record; empty optional parts are omitted."""
        out: dict[str, Any] = {
            "text": self.text,
            "model": self.model,
            "usage": self.usage,
        }
        if self.file_id is not None:
            out["file_id"] = self.file_id
        if self.reasoning_summary is not None:
            out["reasoning_summary"] = self.reasoning_summary
        if self.citations:
            out["citations"] = [c.to_dict() for c in self.citations]
        if self.sources:
            out["sources"] = list(self.sources)
        if self.web_search:
            out["web_search"] = [w.to_dict() for w in self.web_search]
        return out


@dataclass
class _OutputScan:
    text: str = ""
    citations: list[Citation] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    searches: list[WebSearchCall] = field(default_factory=list)


def extract_result(
    response: Any, fallback_model: str, *, file_id: str | None = None
) -> ExtractionResult:
    """Extract text, usage, reasoning summary and citations from *response*.

    Text precedence (first non-empty wins): top-level ``output_text``, the
    first ``output_text`` segment of a ``message`` output item, then the
    legacy ``choices[0].message.content``. Never raises for a dict response.
    """
    if not isinstance(response, dict):
        logger.debug("Non-dict response (%s); returning empty result", type(response))
        return ExtractionResult(text="", model=fallback_model, file_id=file_id)

    scan = _scan_output(response.get("output"))

    text = ""
    flat = _decode(_FlatText, response)
    if flat is not None and flat.output_text:
        text = flat.output_text
    elif scan.text:
        text = scan.text
    else:
        legacy = _decode(_LegacyChoices, response)
        if legacy is not None and legacy.choices:
            text = legacy.choices[0].message.content

    model = response.get("model")
    usage = response.get("usage")
    return ExtractionResult(
        text=text,
        model=model if isinstance(model, str) and model else fallback_model,
        usage=dict(usage) if isinstance(usage, dict) else None,
        reasoning_summary=extract_reasoning_summary(response),
        citations=tuple(scan.citations),
        sources=tuple(scan.sources),
        web_search=tuple(scan.searches),
        file_id=file_id,
    )


def _scan_output(output: Any) -> _OutputScan:
    scan = _OutputScan()
    if not isinstance(output, list):
        return scan

    for item in output:
        search = _decode(_WebSearchCallItem, item)
        if search is not None:
            call = _search_call(search)
            scan.searches.append(call)
            for url in call.sources:
                if url not in scan.sources:
                    scan.sources.append(url)
            continue

        message = _decode(_Message, item)
        if message is None:
            continue
        for segment in message.content:
            part = _decode(_OutputText, segment)
            if part is None or not part.text:
                continue
            scan.text = part.text
            for annotation in part.annotations:
                cite = _decode(_UrlCitation, annotation)
                if cite is not None:
                    scan.citations.append(
                        Citation(
                            url=cite.url,
                            title=cite.title,
                            start_index=cite.start_index,
                            end_index=cite.end_index,
                        )
                    )
            break
        # Entries after the first message with text are not visited.
        if scan.text:
            break
    return scan


def _search_call(item: _WebSearchCallItem) -> WebSearchCall:
    action = item.action or _SearchAction()
    sources: list[str] = []
    for raw in action.sources or ():
        source = _decode(_SearchSource, raw)
        if source is not None and source.url not in sources:
            sources.append(source.url)
    return WebSearchCall(
        id=item.id,
        status=item.status,
        query=action.query,
        domains=tuple(action.domains or ()),
        sources=tuple(sources),
    )


def extract_reasoning_summary(response: dict[str, Any]) -> str | None:
    """Return the provider's reasoning digest, or None when it sent none.

    Prefers a nested ``reasoning.summary`` carrying text, then a top-level
    ``summary`` list, then ``summary`` lists on ``reasoning`` output items.
    """
    reasoning = response.get("reasoning")
    if isinstance(reasoning, dict):
        nested = reasoning.get("summary")
        # A bare mode keyword is the provider echoing the request setting.
        if isinstance(nested, str) and nested.strip() and nested not in _SUMMARY_MODES:
            return nested
        if isinstance(nested, list):
            joined = _join_summary_texts(nested)
            if joined:
                return joined

    top_level = response.get("summary")
    if isinstance(top_level, list):
        joined = _join_summary_texts(top_level)
        if joined:
            return joined

    output = response.get("output")
    if isinstance(output, list):
        parts: list[str] = []
        for item in output:
            decoded = _decode(_ReasoningItem, item)
            if decoded is None:
                continue
            joined = _join_summary_texts(decoded.summary)
            if joined:
                parts.append(joined)
        if parts:
            return "\n\n".join(parts)
    return None


def _join_summary_texts(entries: list[Any]) -> str | None:
    texts: list[str] = []
    for entry in entries:
        decoded = _decode(_SummaryText, entry)
        if decoded is not None and decoded.text.strip():
            texts.append(decoded.text.strip())
    return "\n\n".join(texts) if texts else None
