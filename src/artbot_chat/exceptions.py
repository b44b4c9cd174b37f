"""Domain exception hierarchy for the ArtBot chat client."""

from __future__ import annotations

EMPTY_RESPONSE_TEXT = (
    "I apologize, but I could not generate a response. Please try again."
)


class ArtBotChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class ConfigError(ArtBotChatError):
    """Raised when the provider credential is missing or config is unusable."""


class TransportError(ArtBotChatError):
    """Raised when the provider cannot be reached or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, detail: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class DecodeError(ArtBotChatError):
    """Raised when a single SSE fragment cannot be decoded."""


class RequestCancelledError(ArtBotChatError):
    """Raised when an in-flight request was cancelled by the user."""
