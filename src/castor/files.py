"""File reference normalization: heterogeneous user input to canonical tokens.

Users hand the node file references in whatever shape the previous workflow
step produced: a single id, a comma-separated string, a JSON array string, an
already-parsed list, or a wrapper dict. ``normalize_references`` flattens all
of them into an ordered list of string tokens; ``to_file_references`` then
classifies each token as a provider file id or a URL and silently drops the
rest, so one malformed token never aborts a batch.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

FILE_ID_PREFIXES: tuple[str, ...] = ("file-", "file_")

# Tokens produced when an upstream step stringified a structure it should not have.
_PLACEHOLDERS = frozenset({"[object Object]", "undefined", "null", "None"})
_PREFERRED_KEYS = ("url", "path", "value", "file_id", "fileId", "id")
_WRAPPER_KEYS = ("data", "body")

_SCAN_RE = re.compile(r"https?://[^\s\"'<>\[\]{}(),|\\^`]+|\bfile[-_][A-Za-z0-9_-]+")
_URL_RE = re.compile(r"https?://[^\s\"'<>\[\]{}()|\\^`]+")
_URL_TRAILING = ".,;:!?"


@dataclass(frozen=True)
class FileId:
    """An opaque provider-assigned file handle."""

    identifier: str
    #: Known only when the handle came from an upload in the same row.
    mime_type: str | None = None

    @property
    def is_image(self) -> bool:
        return bool(self.mime_type and self.mime_type.startswith("image/"))


@dataclass(frozen=True)
class FileUrl:
    """A fetchable resource location."""

    url: str

    @property
    def is_pdf(self) -> bool:
        path = self.url.split("?", 1)[0].split("#", 1)[0]
        return path.lower().endswith(".pdf")


FileReference = FileId | FileUrl

_Matcher = Callable[[Any], "list[str] | None"]


# --- Shape matchers (first match wins) ---


def _match_empty(raw: Any) -> list[str] | None:
    if raw is None:
        return []
    if isinstance(raw, (str, list, tuple, dict)) and not raw:
        return []
    if isinstance(raw, str) and not raw.strip():
        return []
    return None


def _match_sequence(raw: Any) -> list[str] | None:
    if not isinstance(raw, (list, tuple)):
        return None
    return _tokens_from_elements(raw)


def _match_json_array(raw: Any) -> list[str] | None:
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not (text.startswith("[") and text.endswith("]")):
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return _SCAN_RE.findall(text)
    if not isinstance(parsed, list):
        return _SCAN_RE.findall(text)
    return _tokens_from_elements(parsed)


def _match_comma_list(raw: Any) -> list[str] | None:
    if not isinstance(raw, str) or "," not in raw:
        return None
    return [part.strip() for part in raw.split(",") if part.strip()]


def _match_single(raw: Any) -> list[str] | None:
    if not isinstance(raw, str):
        return None
    return [raw.strip()]


def _match_wrapper(raw: Any) -> list[str] | None:
    if not isinstance(raw, Mapping):
        return None
    for key in _WRAPPER_KEYS:
        if key in raw:
            return normalize_references(raw[key])
    return _tokens_from_elements([raw])


_MATCHERS: tuple[_Matcher, ...] = (
    _match_empty,
    _match_sequence,
    _match_json_array,
    _match_comma_list,
    _match_single,
    _match_wrapper,
)


def normalize_references(raw: Any) -> list[str]:
    """Parse a user-supplied file value into an ordered list of tokens.

    Example:
        tokens = normalize_references("file_a , https://x/y.pdf ,,")
        # ["file_a", "https://x/y.pdf"]
    """
    for matcher in _MATCHERS:
        result = matcher(raw)
        if result is not None:
            return result
    # Scalars (numbers, booleans) fall through every matcher.
    return _tokens_from_elements([raw])


def _tokens_from_elements(elements: list[Any] | tuple[Any, ...]) -> list[str]:
    """Flatten one level and stringify, dropping empties and placeholders."""
    flat: list[Any] = []
    for element in elements:
        if isinstance(element, (list, tuple)):
            flat.extend(element)
        else:
            flat.append(element)

    tokens: list[str] = []
    for element in flat:
        token = _element_to_string(element).strip()
        if token and token not in _PLACEHOLDERS:
            tokens.append(token)
    return tokens


def _element_to_string(element: Any) -> str:
    if element is None:
        return ""
    if isinstance(element, str):
        return element
    if isinstance(element, Mapping):
        for key in _PREFERRED_KEYS:
            value = element.get(key)
            if isinstance(value, str) and value.strip():
                return value
        try:
            return json.dumps(element, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return ""
    return str(element)


# --- Consumption ---


def classify_reference(token: str, *, mime_type: str | None = None) -> FileReference | None:
    """Tag a normalized token, or return None when it is neither an id nor a URL."""
    token = token.strip()
    if token.startswith(FILE_ID_PREFIXES):
        return FileId(token, mime_type=mime_type)
    if "http://" in token or "https://" in token:
        url = extract_url(token)
        if url:
            return FileUrl(url)
    return None


def extract_url(token: str) -> str | None:
    """Return the longest URL-safe substring of *token*, minus trailing punctuation."""
    candidates = [m.rstrip(_URL_TRAILING) for m in _URL_RE.findall(token)]
    candidates = [c for c in candidates if c.split("://", 1)[1]]
    if not candidates:
        return None
    return max(candidates, key=len)


def to_file_references(raw: Any) -> list[FileReference]:
    """Normalize *raw* and classify each token, dropping unrecognised ones."""
    refs: list[FileReference] = []
    for token in normalize_references(raw):
        ref = classify_reference(token)
        if ref is None:
            logger.debug("Dropping unrecognised file reference token: %r", token)
            continue
        refs.append(ref)
    return refs
