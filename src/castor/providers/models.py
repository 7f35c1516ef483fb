"""Domain models for the transport layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TransportResponse:
    """A completed HTTP exchange, whatever its status."""

    status_code: int
    #: Decoded JSON body, or ``{"raw": text}`` when the body was not JSON.
    body: Any
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
