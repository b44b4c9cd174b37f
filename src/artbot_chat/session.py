"""Session controller: one send-message round trip at a time.

The controller is the only writer of the conversation store.  A send appends
the user turn and an empty bot placeholder, then folds each streamed delta
into that placeholder by id so intermediate renders show partial text.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any

from .cancellation import CancellationToken
from .conversation_store import ConversationStore
from .exceptions import EMPTY_RESPONSE_TEXT, ArtBotChatError, RequestCancelledError
from .export import build_export, build_share_text
from .models import (
    Chat,
    HistoryEntry,
    ImageAttachment,
    Message,
    MessageContent,
    Sender,
    TextContent,
)
from .prompts import DEFAULT_IMAGE_PROMPT
from .provider import ProviderClient, build_user_content
from .state import SessionState, StateMachine

LOGGER = logging.getLogger(__name__)


def annotate_attachment(text: str, attachment: ImageAttachment | None) -> str:
    """Return the transcript text for a user turn, marking an attached image."""
    if attachment is None:
        return text
    return f"{text}\n\n📎 *Image uploaded: {attachment.name}*"


@dataclass(frozen=True)
class FailedTurn:
    """The user turn whose request failed, kept for a manual retry."""

    chat_id: str
    text: str
    attachment: ImageAttachment | None = None


class SessionController:
    """Orchestrate sends, cancellation, and transcript edits for a store."""

    def __init__(
        self,
        store: ConversationStore,
        client: ProviderClient,
        *,
        streaming: bool = True,
    ) -> None:
        self.store = store
        self.client = client
        self.streaming = streaming
        self.error: str | None = None
        self.last_failed: FailedTurn | None = None
        self._machine = StateMachine()
        self._token: CancellationToken | None = None
        self._task: asyncio.Task[tuple[str, str]] | None = None
        self._request_chat_id: str | None = None
        self._placeholder_id: str | None = None
        self._history: list[HistoryEntry] = []
        if store.current_chat is None:
            store.create_chat()
        else:
            self._history = store.derive_history(store.current_chat_id or "")

    @property
    def state(self) -> SessionState:
        return self._machine.state

    @property
    def is_awaiting_response(self) -> bool:
        return self._machine.state is SessionState.AWAITING_RESPONSE

    @property
    def history(self) -> list[HistoryEntry]:
        """Return a copy of the provider history cache for the current chat."""
        return list(self._history)

    @property
    def current_chat(self) -> Chat | None:
        return self.store.current_chat

    @property
    def messages(self) -> list[Message]:
        chat = self.store.current_chat
        return list(chat.messages) if chat is not None else []

    async def send_message(
        self, text: str, attachment: ImageAttachment | None = None
    ) -> None:
        """Send a user turn and stream the reply into the current chat.

        Ignored while another request is outstanding or when there is no
        current chat.  Failures land in ``error``; cancellations are silent.
        """
        chat_id = self.store.current_chat_id
        if chat_id is None:
            return
        normalized = text.strip()
        if not normalized:
            if attachment is None:
                return
            normalized = DEFAULT_IMAGE_PROMPT
        await self._run_turn(chat_id, normalized, attachment, append_user=True)

    async def retry(self) -> None:
        """Re-request the last failed turn without duplicating the user message."""
        failed = self.last_failed
        if failed is None or failed.chat_id != self.store.current_chat_id:
            return
        await self._run_turn(
            failed.chat_id, failed.text, failed.attachment, append_user=False
        )

    async def _run_turn(
        self,
        chat_id: str,
        text: str,
        attachment: ImageAttachment | None,
        *,
        append_user: bool,
    ) -> None:
        if not self._machine.transition_if(
            SessionState.IDLE, SessionState.AWAITING_RESPONSE
        ):
            LOGGER.debug("session.send.ignored", extra={"event": "session.send.ignored"})
            return

        self.error = None
        self.last_failed = None
        if append_user:
            self.store.append_message(
                chat_id,
                Message(content=annotate_attachment(text, attachment), sender=Sender.USER),
            )
        placeholder = Message(content="", sender=Sender.BOT)
        self.store.append_message(chat_id, placeholder)

        turn = build_user_content(text, attachment)
        history = list(self._history)
        self._history.append(HistoryEntry(role="user", content=turn))

        token = CancellationToken()
        task = asyncio.create_task(
            self._request(chat_id, placeholder.id, turn, history, token)
        )
        token.bind(task)
        self._token = token
        self._task = task
        self._request_chat_id = chat_id
        self._placeholder_id = placeholder.id
        LOGGER.info(
            "session.send.start",
            extra={
                "event": "session.send.start",
                "streaming": self.streaming,
                "has_attachment": attachment is not None,
            },
        )

        try:
            final_text, streamed = await task
        except asyncio.CancelledError:
            if not token.cancelled:
                raise
            self._on_cancelled()
        except RequestCancelledError:
            self._on_cancelled()
        except ArtBotChatError as exc:
            if token.cancelled:
                self._on_cancelled()
            else:
                self._on_failure(FailedTurn(chat_id, text, attachment), exc)
        else:
            if token.cancelled:
                self._on_cancelled()
            else:
                self._on_success(chat_id, placeholder.id, final_text, streamed)
        finally:
            if self._token is token:
                self._release_request()

    async def _request(
        self,
        chat_id: str,
        placeholder_id: str,
        turn: MessageContent,
        history: list[HistoryEntry],
        token: CancellationToken,
    ) -> tuple[str, str]:
        """Run the provider call, returning ``(final_text, streamed_text)``."""
        if not self.streaming:
            return await self.client.complete(turn, history), ""

        streamed = ""
        async for delta in self.client.stream(turn, history, token):
            token.raise_if_cancelled()
            streamed += delta
            self.store.patch_message(chat_id, placeholder_id, content=streamed)
        return streamed or EMPTY_RESPONSE_TEXT, streamed

    def _on_success(
        self, chat_id: str, placeholder_id: str, final_text: str, streamed: str
    ) -> None:
        # The final payload is authoritative over the streamed accumulation.
        if final_text != streamed:
            self.store.patch_message(chat_id, placeholder_id, content=final_text)
        self._history.append(
            HistoryEntry(role="assistant", content=TextContent(final_text))
        )
        LOGGER.info(
            "session.send.complete",
            extra={"event": "session.send.complete", "chars": len(final_text)},
        )

    def _on_failure(self, failed: FailedTurn, exc: ArtBotChatError) -> None:
        self.error = str(exc) or "Failed to send message. Please try again."
        self.last_failed = failed
        self.store.remove_empty_bot_messages(failed.chat_id)
        # Roll the unanswered user turn back out of the provider history so
        # the next request does not carry two consecutive user turns.
        if self._history and self._history[-1].role == "user":
            self._history.pop()
        LOGGER.warning(
            "session.send.failed",
            extra={
                "event": "session.send.failed",
                "error_type": exc.__class__.__name__,
            },
        )

    def _on_cancelled(self) -> None:
        LOGGER.info("session.send.cancelled", extra={"event": "session.send.cancelled"})

    def _release_request(self) -> None:
        self._token = None
        self._task = None
        self._request_chat_id = None
        self._placeholder_id = None
        self._machine.transition_to(SessionState.IDLE)

    def cancel(self) -> None:
        """Abort the in-flight request, if any, and return to IDLE.

        Partial reply text stays in the transcript and is kept as the
        assistant turn; a reply with no text drops the unanswered user turn
        from the provider history.
        """
        token = self._token
        if token is None:
            return
        chat_id = self._request_chat_id
        placeholder_id = self._placeholder_id
        token.cancel()
        self._release_request()
        if chat_id is None:
            return
        partial = ""
        chat = self.store.get_chat(chat_id)
        if chat is not None and placeholder_id is not None:
            placeholder = chat.find_message(placeholder_id)
            partial = placeholder.content if placeholder is not None else ""
        self.store.remove_empty_bot_messages(chat_id)
        if chat_id != self.store.current_chat_id:
            return
        if self._history and self._history[-1].role == "user":
            if partial:
                self._history.append(
                    HistoryEntry(role="assistant", content=TextContent(partial))
                )
            else:
                self._history.pop()

    def clear(self) -> None:
        """Cancel any request and reset the current chat to a fresh welcome."""
        self.cancel()
        chat_id = self.store.current_chat_id
        if chat_id is not None:
            self.store.reset_messages(chat_id)
        self._reload_history()

    def dismiss_error(self) -> None:
        self.error = None

    def _patch_current(self, message_id: str, **patch: Any) -> None:
        chat_id = self.store.current_chat_id
        if chat_id is not None:
            self.store.patch_message(chat_id, message_id, **patch)

    def _find_current(self, message_id: str) -> Message | None:
        chat = self.store.current_chat
        return chat.find_message(message_id) if chat is not None else None

    def rate(self, message_id: str, value: float) -> None:
        self._patch_current(message_id, rating=value)

    def like(self, message_id: str) -> None:
        message = self._find_current(message_id)
        if message is not None:
            self._patch_current(message_id, liked=not message.liked, disliked=False)

    def dislike(self, message_id: str) -> None:
        message = self._find_current(message_id)
        if message is not None:
            self._patch_current(
                message_id, disliked=not message.disliked, liked=False
            )

    def new_chat(self) -> str:
        self.cancel()
        chat_id = self.store.create_chat()
        self._reload_history()
        return chat_id

    def switch_chat(self, chat_id: str) -> bool:
        if chat_id == self.store.current_chat_id:
            return True
        if self.store.get_chat(chat_id) is None:
            return False
        self.cancel()
        self.store.switch_to(chat_id)
        self._reload_history()
        return True

    def delete_chat(self, chat_id: str) -> None:
        if chat_id == self._request_chat_id:
            self.cancel()
        previous = self.store.current_chat_id
        self.store.delete_chat(chat_id)
        if self.store.current_chat_id != previous:
            self._reload_history()

    def rename_chat(self, chat_id: str, title: str) -> None:
        self.store.set_title(chat_id, title)

    def _reload_history(self) -> None:
        chat_id = self.store.current_chat_id
        self._history = self.store.derive_history(chat_id) if chat_id else []
        self.error = None
        self.last_failed = None

    def export(self, now: datetime | None = None) -> dict[str, Any] | None:
        chat = self.store.current_chat
        return build_export(chat, now) if chat is not None else None

    def share(self) -> str:
        chat = self.store.current_chat
        return build_share_text(chat) if chat is not None else ""

    async def aclose(self) -> None:
        """Cancel any in-flight request and wait for it to unwind."""
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
