"""Incremental decoder for server-sent-event chat completion streams.

The provider frames its streamed reply as ``data: <json>`` lines separated by
blank lines and ends with ``data: [DONE]``.  Chunks arriving from the
transport may split a line, or even a multi-byte UTF-8 sequence, at any point,
so the decoder keeps undecoded bytes and the pending partial line between
calls.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
import codecs
import json
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import DecodeError

if TYPE_CHECKING:
    from .cancellation import CancellationToken

LOGGER = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def parse_fragment(payload: str) -> dict[str, Any]:
    """Parse one SSE data payload into a JSON object."""
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Malformed stream fragment: {exc}") from exc
    if not isinstance(parsed, dict):
        raise DecodeError("Stream fragment is not a JSON object.")
    return parsed


def extract_delta_text(fragment: dict[str, Any]) -> str:
    """Return ``choices[0].delta.content`` or an empty string."""
    choices = fragment.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


class StreamDecoder:
    """Turn raw SSE bytes into ordered text deltas."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one transport chunk and return the deltas it completed."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._process_lines(lines)

    def close(self) -> list[str]:
        """Flush buffered input at end of body, including an unterminated line."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return self._process_lines([remainder]) if remainder else []

    def _process_lines(self, lines: list[str]) -> list[str]:
        deltas: list[str] = []
        for raw_line in lines:
            line = raw_line.rstrip("\r")
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):]
            if payload.startswith(" "):
                payload = payload[1:]
            if payload.strip() == DONE_SENTINEL:
                self.done = True
                self._buffer = ""
                break
            try:
                fragment = parse_fragment(payload)
            except DecodeError:
                LOGGER.debug(
                    "stream.fragment.skipped",
                    extra={"event": "stream.fragment.skipped", "size": len(payload)},
                )
                continue
            text = extract_delta_text(fragment)
            if text:
                deltas.append(text)
        return deltas


async def iter_deltas(
    chunks: AsyncIterable[bytes],
    token: CancellationToken | None = None,
) -> AsyncIterator[str]:
    """Lazily decode a byte stream into deltas, stopping at ``[DONE]``.

    Transport end without ``[DONE]`` is a normal end of stream.
    """
    decoder = StreamDecoder()
    async for chunk in chunks:
        if token is not None:
            token.raise_if_cancelled()
        for delta in decoder.feed(chunk):
            yield delta
        if decoder.done:
            return
    for delta in decoder.close():
        yield delta
