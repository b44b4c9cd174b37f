"""Async client for an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
import logging
import time
from typing import Any

import httpx

from .cancellation import CancellationToken
from .config import MISSING_CREDENTIAL_MESSAGE, ProviderConfig
from .exceptions import (
    EMPTY_RESPONSE_TEXT,
    ArtBotChatError,
    ConfigError,
    TransportError,
)
from .models import (
    HistoryEntry,
    ImageAttachment,
    MessageContent,
    TextContent,
    TextWithImageContent,
    content_to_payload,
)
from .stream_decoder import iter_deltas

LOGGER = logging.getLogger(__name__)


def build_user_content(
    text: str, attachment: ImageAttachment | None = None
) -> MessageContent:
    """Return the tagged content for a new user turn."""
    if attachment is None:
        return TextContent(text)
    return TextWithImageContent(text=text, image=attachment)


def extract_completion_text(body: Any) -> str:
    """Return ``choices[0].message.content`` from a complete response body."""
    if not isinstance(body, dict):
        return ""
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


def _error_detail(response: httpx.Response) -> str:
    """Best-effort ``error.message`` from a provider error body."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return ""


class ProviderClient:
    """Stateless request builder and transport for the LLM provider.

    The client holds no conversation state: every call receives the history
    it should send.
    """

    def __init__(
        self,
        config: ProviderConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)

    async def __aenter__(self) -> ProviderClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    def _require_credential(self) -> None:
        if not self.config.has_credential:
            raise ConfigError(MISSING_CREDENTIAL_MESSAGE)

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.referer,
            "X-Title": self.config.app_title,
        }

    def build_messages(
        self, turn: MessageContent, history: Sequence[HistoryEntry]
    ) -> list[dict[str, Any]]:
        """Return ``[system prompt, *history, new user turn]`` as provider JSON."""
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.config.system_prompt}
        ]
        messages.extend(entry.to_payload() for entry in history)
        messages.append({"role": "user", "content": content_to_payload(turn)})
        return messages

    def build_payload(
        self, messages: list[dict[str, Any]], stream: bool
    ) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "frequency_penalty": self.config.frequency_penalty,
            "presence_penalty": self.config.presence_penalty,
            "stream": stream,
        }

    def _map_exception(self, exc: Exception) -> ArtBotChatError:
        if isinstance(exc, ArtBotChatError):
            return exc
        if isinstance(exc, httpx.TimeoutException):
            return TransportError(
                f"Request to {self.config.endpoint} timed out."
            )
        return TransportError(
            f"Unable to reach provider at {self.config.endpoint}: {exc}"
        )

    async def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        await response.aread()
        detail = _error_detail(response)
        LOGGER.warning(
            "provider.request.failed",
            extra={
                "event": "provider.request.failed",
                "status_code": response.status_code,
                "model": self.config.model,
            },
        )
        raise TransportError(
            f"API Error: {response.status_code} - {detail or 'Unknown error'}",
            status_code=response.status_code,
            detail=detail,
        )

    async def stream(
        self,
        turn: MessageContent,
        history: Sequence[HistoryEntry],
        token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """Stream a reply and yield text deltas in arrival order."""
        self._require_credential()
        if token is not None:
            token.raise_if_cancelled()
        payload = self.build_payload(self.build_messages(turn, history), stream=True)
        LOGGER.info(
            "provider.request.start",
            extra={
                "event": "provider.request.start",
                "model": self.config.model,
                "stream": True,
                "history_size": len(history),
            },
        )
        started = time.monotonic()
        delta_count = 0
        try:
            async with self._http.stream(
                "POST", self.config.endpoint, headers=self.headers(), json=payload
            ) as response:
                await self._raise_for_status(response)
                async for delta in iter_deltas(response.aiter_bytes(), token):
                    delta_count += 1
                    yield delta
        except httpx.HTTPError as exc:
            raise self._map_exception(exc) from exc
        LOGGER.info(
            "provider.request.complete",
            extra={
                "event": "provider.request.complete",
                "model": self.config.model,
                "deltas": delta_count,
                "elapsed_ms": int((time.monotonic() - started) * 1000),
            },
        )

    async def complete(
        self, turn: MessageContent, history: Sequence[HistoryEntry]
    ) -> str:
        """Request a complete (non-streamed) reply and return its text."""
        self._require_credential()
        payload = self.build_payload(self.build_messages(turn, history), stream=False)
        LOGGER.info(
            "provider.request.start",
            extra={
                "event": "provider.request.start",
                "model": self.config.model,
                "stream": False,
                "history_size": len(history),
            },
        )
        try:
            response = await self._http.post(
                self.config.endpoint, headers=self.headers(), json=payload
            )
        except httpx.HTTPError as exc:
            raise self._map_exception(exc) from exc
        await self._raise_for_status(response)
        try:
            body = response.json()
        except ValueError:
            body = None
        return extract_completion_text(body) or EMPTY_RESPONSE_TEXT

    async def send(
        self,
        text: str,
        history: Sequence[HistoryEntry],
        attachment: ImageAttachment | None = None,
        on_delta: Callable[[str], None] | None = None,
        token: CancellationToken | None = None,
    ) -> str:
        """Send one user turn and resolve with the reply text.

        With ``on_delta`` the reply is streamed and the callback receives each
        delta; without it a single complete response is awaited.
        """
        turn = build_user_content(text, attachment)
        if on_delta is None:
            return await self.complete(turn, history)
        parts: list[str] = []
        async for delta in self.stream(turn, history, token):
            parts.append(delta)
            on_delta(delta)
        return "".join(parts) or EMPTY_RESPONSE_TEXT
