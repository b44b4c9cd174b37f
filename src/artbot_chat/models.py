"""Conversation data model: messages, chats, attachments, and history entries."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
import mimetypes
from pathlib import Path
from typing import Any, Literal
from uuid import uuid4

# Image file extensions accepted for vision attachments
IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tiff", ".tif"}
)

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024
TITLE_PREVIEW_CHARS = 30


def _utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid4())


class Sender(str, Enum):
    """Author of a transcript message."""

    USER = "user"
    BOT = "bot"


@dataclass
class Message:
    """A single transcript entry.

    ``content`` is the only field that changes while a reply streams in.
    ``liked`` and ``disliked`` are kept mutually exclusive by the controller.
    """

    content: str
    sender: Sender
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=_utcnow)
    rating: float | None = None
    liked: bool = False
    disliked: bool = False

    @property
    def is_placeholder(self) -> bool:
        """Return True for an empty bot reply that is still waiting for text."""
        return self.sender is Sender.BOT and self.content == ""


@dataclass
class Chat:
    """A chat session holding an ordered transcript."""

    messages: list[Message]
    title: str = ""
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def find_message(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    @property
    def display_title(self) -> str:
        """Return the explicit title or one derived from the first user message."""
        if self.title:
            return self.title
        for message in self.messages:
            if message.sender is Sender.USER:
                preview = message.content[:TITLE_PREVIEW_CHARS]
                if len(message.content) > TITLE_PREVIEW_CHARS:
                    preview += "..."
                return preview
        return "New Chat"


@dataclass(frozen=True)
class ImageAttachment:
    """Raw image bytes plus the metadata needed to build a data URI."""

    data: bytes
    mime_type: str
    name: str

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_path(
        cls, path: str | Path, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    ) -> ImageAttachment:
        """Load and validate an image file.

        Raises:
            ValueError: when the path is missing, not an image, or too large.
        """
        resolved = Path(path).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Image not found: {path}")
        if not resolved.is_file():
            raise ValueError(f"Not a file: {path}")
        if resolved.suffix.lower() not in IMAGE_EXTENSIONS:
            exts = ", ".join(sorted(IMAGE_EXTENSIONS))
            raise ValueError(f"Invalid image type. Allowed: {exts}")
        size = resolved.stat().st_size
        if size > max_bytes:
            max_mb = max_bytes / (1024 * 1024)
            raise ValueError(f"Image too large (max {max_mb:.1f}MB)")

        mime_type, _ = mimetypes.guess_type(resolved.name)
        return cls(
            data=resolved.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
            name=resolved.name,
        )


@dataclass(frozen=True)
class TextContent:
    """Plain-text turn content."""

    text: str
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class TextWithImageContent:
    """Turn content carrying a text part and one image part."""

    text: str
    image: ImageAttachment
    kind: Literal["text_with_image"] = "text_with_image"


MessageContent = TextContent | TextWithImageContent


def content_to_payload(content: MessageContent) -> str | list[dict[str, Any]]:
    """Serialize turn content into the provider's message ``content`` shape."""
    if isinstance(content, TextContent):
        return content.text
    if isinstance(content, TextWithImageContent):
        return [
            {"type": "text", "text": content.text},
            {"type": "image_url", "image_url": {"url": content.image.data_uri}},
        ]
    raise TypeError(f"Unsupported message content: {content!r}")


@dataclass(frozen=True)
class HistoryEntry:
    """Provider-facing projection of a transcript message."""

    role: Literal["user", "assistant"]
    content: MessageContent

    @classmethod
    def from_message(cls, message: Message) -> HistoryEntry:
        role: Literal["user", "assistant"] = (
            "user" if message.sender is Sender.USER else "assistant"
        )
        return cls(role=role, content=TextContent(message.content))

    def to_payload(self) -> dict[str, Any]:
        return {"role": self.role, "content": content_to_payload(self.content)}
