"""Pure parsing helpers for console slash commands."""

from __future__ import annotations

from dataclasses import dataclass
import os

KNOWN_COMMANDS = frozenset(
    {
        "chats",
        "clear",
        "delete",
        "dislike",
        "export",
        "help",
        "image",
        "like",
        "new",
        "quit",
        "rate",
        "rename",
        "retry",
        "share",
        "switch",
    }
)

HELP_TEXT = """\
/new                 start a new chat
/chats               list chats
/switch N            switch to chat N
/rename TITLE        rename the current chat
/delete              delete the current chat
/clear               cancel any reply and reset the current chat
/image PATH [TEXT]   send an image with optional text
/like N, /dislike N  toggle feedback on message N
/rate N VALUE        rate message N
/export              write the current chat to a JSON file
/share               print the chat as plain text
/retry               resend the last failed message
/quit                exit"""


@dataclass(frozen=True)
class Command:
    """A parsed slash command."""

    name: str
    args: tuple[str, ...] = ()
    rest: str = ""


def parse_command(text: str) -> Command | None:
    """Parse ``/name arg ...``; return None for plain chat text.

    Raises:
        ValueError: for an unknown command or a malformed /image line.
    """
    stripped = text.strip()
    if not stripped.startswith("/"):
        return None
    head, _, rest = stripped[1:].partition(" ")
    name = head.lower()
    if name not in KNOWN_COMMANDS:
        raise ValueError(f"Unknown command: /{head}")
    rest = rest.strip()
    if name == "image":
        # Everything after the path is the message text.
        parts = rest.split(maxsplit=1)
        if not parts:
            raise ValueError("Usage: /image PATH [TEXT]")
        text_part = parts[1] if len(parts) > 1 else ""
        return Command(name=name, args=(os.path.expanduser(parts[0]),), rest=text_part)
    return Command(name=name, args=tuple(rest.split()), rest=rest)


def parse_index(value: str, size: int) -> int:
    """Convert a 1-based user index into a list index.

    Raises:
        ValueError: when the value is not an integer within ``1..size``.
    """
    try:
        index = int(value)
    except ValueError as exc:
        raise ValueError(f"Not a number: {value}") from exc
    if not 1 <= index <= size:
        raise ValueError(f"Index out of range: {value}")
    return index - 1
