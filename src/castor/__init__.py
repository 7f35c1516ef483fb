"""Castor: an OpenAI Responses API node for workflow automation.

Public API:
    - ResponsesNode / run_items(): Process host items row by row
    - build_request(): RequestConfig to provider request body
    - extract_result(): Provider response to a stable result record
    - normalize_references(): Heterogeneous file input to reference tokens
    - Config: Connection settings and batch policy
"""

from __future__ import annotations

import logging

from castor.config import Config
from castor.errors import (
    APIError,
    CastorError,
    ConfigurationError,
    RequestTimeoutError,
    SourceError,
    UploadError,
)
from castor.files import FileId, FileUrl, normalize_references, to_file_references
from castor.node import ResponsesNode, run_items
from castor.options import (
    RequestConfig,
    UserLocation,
    WebSearchOptions,
    apply_quick_mode,
)
from castor.request import build_request
from castor.result import ExtractionResult, extract_result

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("castor-responses")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("castor").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "CastorError",
    "Config",
    "ConfigurationError",
    "ExtractionResult",
    "FileId",
    "FileUrl",
    "RequestConfig",
    "RequestTimeoutError",
    "ResponsesNode",
    "SourceError",
    "UploadError",
    "UserLocation",
    "WebSearchOptions",
    "apply_quick_mode",
    "build_request",
    "extract_result",
    "normalize_references",
    "run_items",
    "to_file_references",
]
