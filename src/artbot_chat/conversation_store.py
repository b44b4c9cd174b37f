"""In-memory collection of chat sessions and their transcripts."""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Any

from .models import Chat, HistoryEntry, Message, Sender

LOGGER = logging.getLogger(__name__)

IMMUTABLE_MESSAGE_FIELDS = frozenset({"id", "sender", "timestamp"})


class ConversationStore:
    """Own every chat and keep the collection invariants.

    Every chat always holds at least one message, and whenever the collection
    is non-empty exactly one chat is current.  All mutations complete
    synchronously so no await can interleave with a read-modify-write.
    """

    def __init__(self, welcome_message: str) -> None:
        self.welcome_message = welcome_message
        self._chats: list[Chat] = []
        self._current_chat_id: str | None = None

    @property
    def chats(self) -> list[Chat]:
        """Return chats newest first (shallow copy of the list)."""
        return list(self._chats)

    @property
    def current_chat_id(self) -> str | None:
        return self._current_chat_id

    @property
    def current_chat(self) -> Chat | None:
        if self._current_chat_id is None:
            return None
        return self.get_chat(self._current_chat_id)

    def get_chat(self, chat_id: str) -> Chat | None:
        for chat in self._chats:
            if chat.id == chat_id:
                return chat
        return None

    def welcome(self) -> Message:
        return Message(content=self.welcome_message, sender=Sender.BOT)

    def create_chat(self) -> str:
        """Create a chat seeded with the welcome message and make it current."""
        chat = Chat(messages=[self.welcome()])
        self._chats.insert(0, chat)
        self._current_chat_id = chat.id
        LOGGER.debug("store.chat.created", extra={"event": "store.chat.created"})
        return chat.id

    def switch_to(self, chat_id: str) -> bool:
        if self.get_chat(chat_id) is None:
            return False
        self._current_chat_id = chat_id
        return True

    def append_message(self, chat_id: str, message: Message) -> None:
        chat = self.get_chat(chat_id)
        if chat is None:
            return
        chat.messages.append(message)
        chat.touch()

    def patch_message(self, chat_id: str, message_id: str, **patch: Any) -> bool:
        """Merge ``patch`` into the message with ``message_id``.

        Returns False when the chat or message does not exist.
        """
        forbidden = IMMUTABLE_MESSAGE_FIELDS.intersection(patch)
        if forbidden:
            raise ValueError(f"Cannot patch immutable fields: {sorted(forbidden)}")
        chat = self.get_chat(chat_id)
        if chat is None:
            return False
        for index, message in enumerate(chat.messages):
            if message.id == message_id:
                chat.messages[index] = replace(message, **patch)
                chat.touch()
                return True
        return False

    def remove_empty_bot_messages(self, chat_id: str) -> int:
        """Drop empty bot placeholders and return how many were removed."""
        chat = self.get_chat(chat_id)
        if chat is None:
            return 0
        kept = [message for message in chat.messages if not message.is_placeholder]
        removed = len(chat.messages) - len(kept)
        if removed:
            chat.messages = kept or [self.welcome()]
            chat.touch()
        return removed

    def reset_messages(self, chat_id: str) -> None:
        """Replace the transcript with a single fresh welcome message."""
        chat = self.get_chat(chat_id)
        if chat is None:
            return
        chat.messages = [self.welcome()]
        chat.touch()

    def set_title(self, chat_id: str, title: str) -> None:
        chat = self.get_chat(chat_id)
        if chat is None:
            return
        chat.title = title.strip()
        chat.touch()

    def delete_chat(self, chat_id: str) -> None:
        """Remove a chat; keep a current chat available afterwards."""
        remaining = [chat for chat in self._chats if chat.id != chat_id]
        if len(remaining) == len(self._chats):
            return
        self._chats = remaining
        if chat_id != self._current_chat_id:
            return
        if self._chats:
            self._current_chat_id = self._chats[0].id
        else:
            self._current_chat_id = None
            self.create_chat()

    def is_seeded_welcome(self, chat: Chat, index: int) -> bool:
        message = chat.messages[index]
        return (
            index == 0
            and message.sender is Sender.BOT
            and message.content == self.welcome_message
        )

    def derive_history(self, chat_id: str) -> list[HistoryEntry]:
        """Project a transcript into provider history.

        The seeded welcome message and empty placeholders are skipped, and a
        user turn is only kept once a bot reply follows it, so the history
        always alternates user/assistant.
        """
        chat = self.get_chat(chat_id)
        if chat is None:
            return []
        kept = [
            message
            for index, message in enumerate(chat.messages)
            if not message.is_placeholder and not self.is_seeded_welcome(chat, index)
        ]
        history: list[HistoryEntry] = []
        for index, message in enumerate(kept):
            if message.sender is Sender.USER:
                following = kept[index + 1] if index + 1 < len(kept) else None
                if following is None or following.sender is not Sender.BOT:
                    continue
            history.append(HistoryEntry.from_message(message))
        return history
