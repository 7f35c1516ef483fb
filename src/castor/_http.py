"""Small HTTP-related constants shared across Castor.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

DEFAULT_BASE_URL = "https://api.openai.com"
API_PREFIX = "/v1"
RESPONSES_PATH = f"{API_PREFIX}/responses"
ORGANIZATION_HEADER = "OpenAI-Organization"

#: Seconds. Reasoning models at high effort routinely take minutes.
DEFAULT_TIMEOUT_S = 300.0
