"""Terminal front-end: reads input, drives the controller, renders the store."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .commands import HELP_TEXT, Command, parse_command, parse_index
from .config import Config, credential_status
from .conversation_store import ConversationStore
from .export import share_title, write_export
from .models import ImageAttachment, Message, Sender
from .prompts import QUICK_REPLIES
from .provider import ProviderClient
from .session import SessionController

LOGGER = logging.getLogger(__name__)

REFRESH_PER_SECOND = 12
TYPING_TEXT = "_ArtBot is typing..._"


class ChatConsoleApp:
    """Interactive chat loop rendered with rich."""

    def __init__(
        self,
        config: Config,
        console: Console | None = None,
        client: ProviderClient | None = None,
    ) -> None:
        self.config = config
        self.console = console or Console()
        self.client = client or ProviderClient(config.provider)
        self.store = ConversationStore(config.chat.welcome_message)
        self.controller = SessionController(
            self.store, self.client, streaming=config.provider.stream
        )
        self._running = True

    def render_message(self, index: int, message: Message) -> Panel:
        is_user = message.sender is Sender.USER
        badges = []
        if message.liked:
            badges.append("👍")
        if message.disliked:
            badges.append("👎")
        if message.rating is not None:
            badges.append(f"★ {message.rating}")
        subtitle = " ".join(badges) or None
        body = Markdown(message.content or TYPING_TEXT)
        return Panel(
            body,
            title=f"[{index}] {'You' if is_user else 'ArtBot'}",
            title_align="left",
            subtitle=subtitle,
            border_style="blue" if is_user else "green",
        )

    def render_transcript(self) -> None:
        chat = self.store.current_chat
        if chat is None:
            return
        self.console.rule(chat.display_title)
        for index, message in enumerate(chat.messages, start=1):
            self.console.print(self.render_message(index, message))
        if len(chat.messages) <= 1:
            self.console.print("[dim]Quick questions to get started:[/dim]")
            for reply in QUICK_REPLIES:
                self.console.print(f"  [dim]-[/dim] {reply.text}")

    def render_error(self) -> None:
        if self.controller.error:
            self.console.print(
                Panel(
                    f"{self.controller.error}\n\n[dim]/retry to try again[/dim]",
                    title="Something went wrong",
                    border_style="red",
                )
            )

    async def send(self, text: str, attachment: ImageAttachment | None = None) -> None:
        """Send a turn and live-render the placeholder as deltas arrive."""
        task = asyncio.create_task(self.controller.send_message(text, attachment))
        chat = self.store.current_chat
        try:
            with Live(
                console=self.console,
                refresh_per_second=REFRESH_PER_SECOND,
                transient=True,
            ) as live:
                while not task.done():
                    if chat is not None and chat.messages:
                        last = chat.messages[-1]
                        live.update(self.render_message(len(chat.messages), last))
                    await asyncio.sleep(1 / REFRESH_PER_SECOND)
            await task
        except KeyboardInterrupt:
            self.controller.cancel()
            await asyncio.gather(task, return_exceptions=True)
            self.console.print("[yellow]Response cancelled.[/yellow]")
            return
        except asyncio.CancelledError:
            # The app itself is shutting down: stop the request, then unwind.
            self.controller.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise
        if chat is not None and chat.messages:
            last = chat.messages[-1]
            if last.sender is Sender.BOT:
                self.console.print(self.render_message(len(chat.messages), last))
        self.render_error()

    def _message_id(self, value: str) -> str:
        messages = self.controller.messages
        return messages[parse_index(value, len(messages))].id

    async def handle_command(self, command: Command) -> None:
        name, args = command.name, command.args
        if name == "quit":
            self._running = False
        elif name == "help":
            self.console.print(HELP_TEXT, markup=False)
        elif name == "new":
            self.controller.new_chat()
            self.render_transcript()
        elif name == "chats":
            table = Table("#", "Title", "Messages", "Updated")
            for index, chat in enumerate(self.store.chats, start=1):
                marker = "*" if chat.id == self.store.current_chat_id else ""
                table.add_row(
                    f"{index}{marker}",
                    chat.display_title,
                    str(len(chat.messages)),
                    chat.updated_at.strftime("%b %d"),
                )
            self.console.print(table)
        elif name == "switch":
            chats = self.store.chats
            if not args:
                raise ValueError("Usage: /switch N")
            self.controller.switch_chat(chats[parse_index(args[0], len(chats))].id)
            self.render_transcript()
        elif name == "rename":
            chat_id = self.store.current_chat_id
            if chat_id is not None:
                self.controller.rename_chat(chat_id, command.rest)
        elif name == "delete":
            chat_id = self.store.current_chat_id
            if chat_id is not None:
                self.controller.delete_chat(chat_id)
            self.render_transcript()
        elif name == "clear":
            self.controller.clear()
            self.render_transcript()
        elif name == "image":
            attachment = ImageAttachment.from_path(
                command.args[0], max_bytes=self.config.chat.max_image_bytes
            )
            await self.send(command.rest, attachment)
        elif name in {"like", "dislike"}:
            if not args:
                raise ValueError(f"Usage: /{name} N")
            action = self.controller.like if name == "like" else self.controller.dislike
            action(self._message_id(args[0]))
        elif name == "rate":
            if len(args) < 2:
                raise ValueError("Usage: /rate N VALUE")
            self.controller.rate(self._message_id(args[0]), float(args[1]))
        elif name == "export":
            document = self.controller.export()
            if document is not None:
                path = write_export(document, Path(self.config.chat.export_directory))
                self.console.print(f"Exported to [bold]{path}[/bold]")
        elif name == "share":
            chat = self.store.current_chat
            if chat is not None:
                self.console.rule(share_title(chat))
                self.console.print(self.controller.share(), markup=False)
        elif name == "retry":
            self.controller.dismiss_error()
            await self.controller.retry()
            self.render_transcript()
            self.render_error()

    async def run(self) -> None:
        missing = credential_status(self.config)
        if missing:
            self.console.print(Panel(missing, title="Configuration", border_style="red"))
        self.render_transcript()
        try:
            while self._running:
                try:
                    line = await asyncio.to_thread(self.console.input, "[bold]> [/bold]")
                except (EOFError, KeyboardInterrupt):
                    break
                try:
                    command = parse_command(line)
                    if command is None:
                        if line.strip():
                            await self.send(line)
                    else:
                        await self.handle_command(command)
                except ValueError as exc:
                    self.console.print(f"[red]{exc}[/red]")
        finally:
            await self.controller.aclose()
            await self.client.aclose()
