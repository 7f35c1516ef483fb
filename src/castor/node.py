"""Responses node: per-row orchestration over host items.

Each input item is processed independently and in order. A row runs at most
one upload phase followed by one Responses call; its outcome becomes exactly
one output item paired with the input index. Under ``continue_on_fail`` a
failing row becomes an error record and the batch carries on; otherwise the
failure propagates with the row index attached.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any

from castor.attachments import Attachment
from castor.errors import APIError, ConfigurationError, SourceError
from castor.files import FileId, normalize_references, to_file_references
from castor.models import DEFAULT_MODEL
from castor.options import (
    RequestConfig,
    UserLocation,
    WebSearchOptions,
    apply_quick_mode,
)
from castor.providers.openai import (
    DEFAULT_PURPOSE,
    OpenAIFileUploader,
    ResponsesClient,
)
from castor.request import build_request
from castor.result import extract_result
from castor.uploads import UploadFailure, upload_all

if TYPE_CHECKING:
    from collections.abc import Sequence

    from castor.config import Config
    from castor.files import FileReference
    from castor.providers.base import Transport, Uploader

logger = logging.getLogger(__name__)

Parameters = Mapping[str, Any] | Callable[[str, int], Any]

OPERATIONS = ("ai_tool", "upload_and_process", "process_file_id")
INPUT_TYPES = ("binary", "url", "file_path")
ALL_BINARIES = "*"

DEFAULT_PROMPT = "Analyze this document and provide a summary."

#: Settings the agent-facing operation starts from; explicit options override them.
AI_TOOL_DEFAULTS: dict[str, Any] = {
    "model": DEFAULT_MODEL,
    "reasoning_effort": "medium",
    "verbosity": "medium",
}


def _with_item_index(err: APIError, item_index: int) -> APIError:
    """Return an APIError instance attributed to *item_index*."""
    if err.item_index is not None:
        return err
    message = err.args[0] if err.args else str(err)
    cls: type[APIError] = type(err)
    return cls(
        message,
        hint=err.hint,
        status_code=err.status_code,
        details=err.details,
        provider=err.provider,
        phase=err.phase,
        item_index=item_index,
    )


def failure_record(exc: BaseException) -> dict[str, Any]:
    """Render a captured row failure as ``{error, details, status_code}``."""
    details: dict[str, Any] = {}
    status_code = None
    if isinstance(exc, APIError):
        details.update(exc.details or {})
        status_code = exc.status_code
    hint = getattr(exc, "hint", None)
    if hint:
        details.setdefault("hint", hint)
    return {
        "error": str(exc) or type(exc).__name__,
        "details": details,
        "status_code": status_code,
    }


@dataclass
class _Row:
    """Mutable working state for one input item."""

    index: int
    item: Mapping[str, Any]
    files: list[FileReference] = field(default_factory=list)
    file_ids: list[str] = field(default_factory=list)
    skipped: list[UploadFailure] = field(default_factory=list)

    @property
    def binaries(self) -> Mapping[str, Any]:
        binary = self.item.get("binary")
        return binary if isinstance(binary, Mapping) else {}

    def add_uploaded(self, ref: FileId) -> None:
        self.files.append(ref)
        self.file_ids.append(ref.identifier)


class ResponsesNode:
    """Workflow node that sends each row to the OpenAI Responses API."""

    def __init__(
        self,
        config: Config,
        *,
        transport: Transport | None = None,
        uploader: Uploader | None = None,
    ) -> None:
        self.config = config
        self.client = ResponsesClient(config, transport)
        self._owns_uploader = uploader is None
        self.uploader: Uploader = uploader or OpenAIFileUploader(config)

    async def execute(
        self, items: Sequence[Mapping[str, Any]], parameters: Parameters
    ) -> list[dict[str, Any]]:
        """Process *items* and return one output item per input item.

        Args:
            items: Host items shaped ``{"json": {...}, "binary": {name: entry}}``.
            parameters: A mapping of parameter values, or a ``(name, index)``
                callable that evaluates them per row.

        Returns:
            ``[{"json": record, "paired_item": {"item": index}}, ...]``.
        """
        outputs: list[dict[str, Any]] = []
        for index, item in enumerate(items):
            try:
                record = await self._process_item(_Row(index, item), parameters)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if not self.config.continue_on_fail:
                    if isinstance(e, APIError):
                        raise _with_item_index(e, index) from e
                    raise
                logger.warning("Item %d failed; continuing: %s", index, e)
                record = failure_record(e)
            outputs.append({"json": record, "paired_item": {"item": index}})
        return outputs

    async def aclose(self) -> None:
        try:
            await self.client.aclose()
        finally:
            if self._owns_uploader and isinstance(self.uploader, OpenAIFileUploader):
                await self.uploader.aclose()

    # --- Per-row pipeline ---

    async def _process_item(self, row: _Row, parameters: Parameters) -> dict[str, Any]:
        def param(name: str, default: Any = None) -> Any:
            return _get_param(parameters, name, row.index, default)

        operation = param("operation", "upload_and_process")
        if operation not in OPERATIONS:
            raise ConfigurationError(
                f"Unknown operation: {operation!r}",
                hint=f"Use one of: {', '.join(OPERATIONS)}.",
            )

        options = dict(_as_mapping(param("additional_options"), "additional_options"))
        if operation == "ai_tool":
            options = {**AI_TOOL_DEFAULTS, **options}
            simplify = True
        else:
            simplify = bool(param("simplify_output", True))
        prompt = param("prompt", DEFAULT_PROMPT)
        purpose = options.get("purpose") or DEFAULT_PURPOSE
        logger.debug("Item %d: operation=%s simplify=%s", row.index, operation, simplify)

        if operation == "ai_tool":
            if param("include_file", False):
                await self._upload_binaries(row, param("binary_property", "data"), purpose)
        elif operation == "upload_and_process":
            await self._upload_input(row, param, purpose)
        else:
            row.files.extend(to_file_references(param("file_id")))
            row.file_ids.extend(
                ref.identifier for ref in row.files if isinstance(ref, FileId)
            )

        row.files.extend(to_file_references(_additional_files(options.get("additional_files"))))

        config = apply_quick_mode(_request_config(prompt, row.files, options))
        response = await self.client.create(build_request(config))

        file_id = ",".join(row.file_ids) or None
        if not simplify:
            return {**response, "file_id": file_id, "prompt": config.prompt}

        record = extract_result(response, config.model, file_id=file_id).to_dict()
        if row.skipped:
            record["skipped_files"] = [s.to_dict() for s in row.skipped]
        return record

    async def _upload_input(
        self, row: _Row, param: Callable[..., Any], purpose: str
    ) -> None:
        input_type = param("input_type", "binary")
        if input_type == "binary":
            await self._upload_binaries(row, param("binary_property", "data"), purpose)
            return

        if input_type == "url":
            url = param("file_url", "")
            if not isinstance(url, str) or not url.strip():
                raise ConfigurationError(
                    "file_url is required when input_type is 'url'",
                    hint="Pass file_url='https://example.com/report.pdf'.",
                )
            attachment = await Attachment.from_url(
                url.strip(), timeout_s=self.config.timeout_s
            )
        elif input_type == "file_path":
            path = param("file_path", "")
            if not isinstance(path, str) or not path.strip():
                raise ConfigurationError(
                    "file_path is required when input_type is 'file_path'",
                    hint="Pass file_path='/data/report.pdf'.",
                )
            attachment = Attachment.from_file(path.strip())
        else:
            raise ConfigurationError(
                f"Unknown input_type: {input_type!r}",
                hint=f"Use one of: {', '.join(INPUT_TYPES)}.",
            )
        await self._upload_one(row, attachment, purpose)

    async def _upload_binaries(self, row: _Row, binary_property: str, purpose: str) -> None:
        binaries = row.binaries
        if binary_property != ALL_BINARIES:
            entry = binaries.get(binary_property)
            if not isinstance(entry, Mapping):
                raise ConfigurationError(
                    f"Item {row.index} has no binary property {binary_property!r}",
                    hint="Check binary_property, or use '*' to upload every binary entry.",
                )
            await self._upload_one(row, Attachment.from_binary(entry), purpose)
            return

        if not binaries:
            raise ConfigurationError(
                f"Item {row.index} has no binary data",
                hint="binary_property='*' needs at least one binary entry on the item.",
            )
        batch = await upload_all(
            self.uploader, _load_binaries(binaries), purpose=purpose
        )
        for ref in batch.references:
            row.add_uploaded(ref)
        row.skipped.extend(batch.skipped)

    async def _upload_one(self, row: _Row, attachment: Attachment, purpose: str) -> None:
        file_id = await self.uploader.upload(
            attachment.data, attachment.filename, attachment.mime_type, purpose
        )
        row.add_uploaded(FileId(file_id, mime_type=attachment.mime_type))


async def run_items(
    items: Sequence[Mapping[str, Any]],
    parameters: Parameters,
    *,
    config: Config,
    transport: Transport | None = None,
    uploader: Uploader | None = None,
) -> list[dict[str, Any]]:
    """Process *items* with a short-lived node and close its resources.

    Example:
        out = await run_items(
            [{"json": {}}],
            {"operation": "process_file_id", "file_id": "file-abc"},
            config=Config(),
        )
    """
    node = ResponsesNode(config, transport=transport, uploader=uploader)
    try:
        return await node.execute(items, parameters)
    finally:
        try:
            await node.aclose()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Cleanup should never mask the primary failure.
            logger.warning("Transport cleanup failed: %s", exc)


# --- Parameter decoding ---


def _get_param(parameters: Parameters, name: str, index: int, default: Any) -> Any:
    if callable(parameters):
        value = parameters(name, index)
    else:
        value = parameters.get(name)
    return default if value is None else value


def _as_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"{name} must be a mapping, got {type(value).__name__}",
            hint=f"Pass {name}={{'model': 'gpt-5'}}.",
        )
    return value


def _load_binaries(binaries: Mapping[str, Any]) -> list[tuple[str, Attachment | Exception]]:
    loaded: list[tuple[str, Attachment | Exception]] = []
    for name, entry in binaries.items():
        try:
            if not isinstance(entry, Mapping):
                raise SourceError(f"Binary property {name!r} is not a binary entry")
            loaded.append((name, Attachment.from_binary(entry)))
        except SourceError as e:
            loaded.append((name, e))
    return loaded


def _additional_files(value: Any) -> Any:
    # Accepts the host's fixed-collection shape ``{"files": [...]}`` as well as
    # anything the reference normalizer takes.
    if isinstance(value, Mapping) and "files" in value:
        return value["files"]
    return value


def _request_config(
    prompt: Any, files: list[FileReference], options: Mapping[str, Any]
) -> RequestConfig:
    return RequestConfig(
        prompt=prompt if isinstance(prompt, str) else str(prompt),
        model=options.get("model") or DEFAULT_MODEL,
        files=tuple(files),
        max_tokens=_optional_int(options.get("max_tokens"), "max_tokens"),
        temperature=_optional_float(options.get("temperature"), "temperature"),
        reasoning_effort=options.get("reasoning_effort") or None,
        reasoning_summary=options.get("reasoning_summary") or None,
        verbosity=options.get("verbosity") or None,
        web_search=_web_search_options(options.get("web_search")),
        quick_mode=bool(options.get("quick_mode", False)),
    )


def _optional_int(value: Any, name: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _optional_float(value: Any, name: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


def _web_search_options(value: Any) -> WebSearchOptions | None:
    if value is None or value is False:
        return None
    if value is True:
        return WebSearchOptions(enabled=True)
    raw = _as_mapping(value, "web_search")

    location = raw.get("user_location")
    user_location = None
    if isinstance(location, Mapping):
        user_location = UserLocation(
            country=location.get("country"),
            city=location.get("city"),
            region=location.get("region"),
            timezone=location.get("timezone"),
        )

    return WebSearchOptions(
        enabled=bool(raw.get("enabled", True)),
        allowed_domains=tuple(normalize_references(raw.get("allowed_domains"))),
        search_context_size=raw.get("search_context_size") or None,
        include_sources=bool(raw.get("include_sources", False)),
        user_location=user_location,
    )
