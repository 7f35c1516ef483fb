"""Provider collaborators: HTTP transport and file upload."""

from .base import Transport, Uploader
from .http import HttpxTransport
from .models import TransportResponse
from .openai import OpenAIFileUploader, ResponsesClient

__all__ = [
    "HttpxTransport",
    "OpenAIFileUploader",
    "ResponsesClient",
    "Transport",
    "TransportResponse",
    "Uploader",
]
