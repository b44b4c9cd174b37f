"""One-shot export and share serialization for a chat transcript."""

from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import Chat

LOGGER = logging.getLogger(__name__)

DEFAULT_EXPORT_TITLE = "ArtBot Conversation"
DEFAULT_SHARE_TITLE = "My ArtBot Conversation"


def build_export(chat: Chat, now: datetime | None = None) -> dict[str, Any]:
    """Return a point-in-time snapshot of ``chat`` for download."""
    exported_at = now or datetime.now(UTC)
    return {
        "exportDate": exported_at.isoformat(),
        "chatTitle": chat.title or DEFAULT_EXPORT_TITLE,
        "messages": [
            {
                "sender": message.sender.value,
                "content": message.content,
                "timestamp": message.timestamp.isoformat(),
                "rating": message.rating,
                "liked": message.liked,
                "disliked": message.disliked,
            }
            for message in chat.messages
        ],
    }


def export_filename(now: datetime | None = None) -> str:
    day = (now or datetime.now(UTC)).strftime("%Y-%m-%d")
    return f"artbot-chat-{day}.json"


def write_export(
    document: dict[str, Any], directory: str | Path, now: datetime | None = None
) -> Path:
    """Write an export document as pretty JSON and return its path."""
    target_dir = Path(directory).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / export_filename(now)
    target.write_text(
        json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8"
    )
    if os.name == "posix":
        try:
            target.chmod(0o600)
        except OSError:
            LOGGER.warning("Unable to enforce 0600 permissions for %s", target)
    return target


def build_share_text(chat: Chat) -> str:
    """Flatten the transcript into ``SENDER: content`` blocks."""
    return "\n\n".join(
        f"{message.sender.value.upper()}: {message.content}"
        for message in chat.messages
    )


def share_title(chat: Chat) -> str:
    return chat.title or DEFAULT_SHARE_TITLE
