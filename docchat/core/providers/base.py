from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from docchat.schemas.tts import TTSRequest


class ProviderError(Exception):
    """Raised when an upstream SaaS API rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ParserError(ProviderError):
    pass


class SpeechProviderError(ProviderError):
    pass


class BaseDocumentParser(ABC):
    """Abstract document-parsing service.

    Concrete implementation: ReductoParser. Parsing itself happens upstream;
    implementations only submit a document URL and return the raw response.
    """

    @abstractmethod
    async def parse(self, document_url: str) -> dict[str, Any]:
        """Parse the document at document_url and return the raw response body."""
        ...


class BaseSpeechProvider(ABC):
    """Abstract text-to-speech service. Concrete implementation: PlayAISpeechProvider."""

    @property
    @abstractmethod
    def configured(self) -> bool:
        """False when credentials are missing and no request can succeed."""
        ...

    @abstractmethod
    async def synthesize(self, request: TTSRequest) -> bytes:
        """Return encoded audio for request.text in request.output_format."""
        ...
