"""Tests for the in-memory conversation store and its invariants."""

from __future__ import annotations

from datetime import UTC, datetime
import unittest

from artbot_chat.conversation_store import ConversationStore
from artbot_chat.models import Message, Sender, TextContent

WELCOME = "Welcome!"
LONG_AGO = datetime(2000, 1, 1, tzinfo=UTC)


class ConversationStoreTests(unittest.TestCase):
    """Validate chat collection management and transcript edits."""

    def setUp(self) -> None:
        self.store = ConversationStore(WELCOME)
        self.chat_id = self.store.create_chat()

    def test_create_chat_seeds_welcome_and_becomes_current(self) -> None:
        second = self.store.create_chat()
        self.assertEqual(self.store.current_chat_id, second)
        self.assertEqual(self.store.chats[0].id, second)
        chat = self.store.get_chat(second)
        assert chat is not None
        self.assertEqual(len(chat.messages), 1)
        self.assertEqual(chat.messages[0].sender, Sender.BOT)
        self.assertEqual(chat.messages[0].content, WELCOME)

    def test_append_message_bumps_updated_at(self) -> None:
        chat = self.store.get_chat(self.chat_id)
        assert chat is not None
        chat.updated_at = LONG_AGO
        self.store.append_message(self.chat_id, Message(content="hi", sender=Sender.USER))
        self.assertEqual(chat.messages[-1].content, "hi")
        self.assertGreater(chat.updated_at, LONG_AGO)

    def test_patch_message_merges_fields_by_id(self) -> None:
        message = Message(content="", sender=Sender.BOT)
        self.store.append_message(self.chat_id, message)
        self.assertTrue(self.store.patch_message(self.chat_id, message.id, content="Hi"))
        chat = self.store.get_chat(self.chat_id)
        assert chat is not None
        patched = chat.find_message(message.id)
        assert patched is not None
        self.assertEqual(patched.content, "Hi")
        self.assertEqual(patched.timestamp, message.timestamp)

    def test_patch_unknown_message_is_noop(self) -> None:
        self.assertFalse(self.store.patch_message(self.chat_id, "missing", content="x"))
        self.assertFalse(self.store.patch_message("missing", "missing", content="x"))

    def test_patch_rejects_immutable_fields(self) -> None:
        chat = self.store.get_chat(self.chat_id)
        assert chat is not None
        with self.assertRaises(ValueError):
            self.store.patch_message(self.chat_id, chat.messages[0].id, sender=Sender.USER)

    def test_remove_empty_bot_messages_keeps_user_turns(self) -> None:
        self.store.append_message(self.chat_id, Message(content="q", sender=Sender.USER))
        self.store.append_message(self.chat_id, Message(content="", sender=Sender.BOT))
        self.store.append_message(self.chat_id, Message(content="", sender=Sender.USER))
        self.assertEqual(self.store.remove_empty_bot_messages(self.chat_id), 1)
        chat = self.store.get_chat(self.chat_id)
        assert chat is not None
        self.assertEqual([m.content for m in chat.messages], [WELCOME, "q", ""])

    def test_remove_restores_welcome_when_chat_would_be_empty(self) -> None:
        chat = self.store.get_chat(self.chat_id)
        assert chat is not None
        chat.messages = [Message(content="", sender=Sender.BOT)]
        self.store.remove_empty_bot_messages(self.chat_id)
        self.assertEqual(len(chat.messages), 1)
        self.assertEqual(chat.messages[0].content, WELCOME)

    def test_reset_messages_leaves_fresh_welcome(self) -> None:
        chat = self.store.get_chat(self.chat_id)
        assert chat is not None
        old_welcome_id = chat.messages[0].id
        self.store.append_message(self.chat_id, Message(content="q", sender=Sender.USER))
        self.store.reset_messages(self.chat_id)
        self.assertEqual(len(chat.messages), 1)
        self.assertNotEqual(chat.messages[0].id, old_welcome_id)

    def test_set_title(self) -> None:
        self.store.set_title(self.chat_id, "  Schedule  ")
        chat = self.store.get_chat(self.chat_id)
        assert chat is not None
        self.assertEqual(chat.title, "Schedule")

    def test_delete_only_chat_creates_fresh_current_chat(self) -> None:
        self.store.delete_chat(self.chat_id)
        self.assertEqual(len(self.store.chats), 1)
        current = self.store.current_chat
        assert current is not None
        self.assertNotEqual(current.id, self.chat_id)
        self.assertEqual(len(current.messages), 1)
        self.assertEqual(current.messages[0].content, WELCOME)

    def test_delete_current_chat_moves_to_first_remaining(self) -> None:
        newer = self.store.create_chat()
        newest = self.store.create_chat()
        self.store.delete_chat(newest)
        self.assertEqual(self.store.current_chat_id, newer)
        self.assertEqual(len(self.store.chats), 2)

    def test_delete_other_chat_keeps_current(self) -> None:
        newer = self.store.create_chat()
        self.store.delete_chat(self.chat_id)
        self.assertEqual(self.store.current_chat_id, newer)
        self.assertEqual(len(self.store.chats), 1)

    def test_switch_to_unknown_chat_is_rejected(self) -> None:
        self.assertFalse(self.store.switch_to("missing"))
        self.assertEqual(self.store.current_chat_id, self.chat_id)

    def test_derive_history_maps_roles_and_skips_welcome_and_placeholders(self) -> None:
        self.store.append_message(self.chat_id, Message(content="q", sender=Sender.USER))
        self.store.append_message(self.chat_id, Message(content="a", sender=Sender.BOT))
        self.store.append_message(self.chat_id, Message(content="q2", sender=Sender.USER))
        self.store.append_message(self.chat_id, Message(content="", sender=Sender.BOT))
        history = self.store.derive_history(self.chat_id)
        self.assertEqual(
            [(entry.role, entry.content) for entry in history],
            [
                ("user", TextContent("q")),
                ("assistant", TextContent("a")),
            ],
        )

    def test_fresh_chat_has_empty_history(self) -> None:
        self.assertEqual(self.store.derive_history(self.chat_id), [])
        self.store.reset_messages(self.chat_id)
        self.assertEqual(self.store.derive_history(self.chat_id), [])

    def test_derive_history_drops_unanswered_user_turns(self) -> None:
        for content, sender in (
            ("lost", Sender.USER),
            ("q", Sender.USER),
            ("a", Sender.BOT),
            ("trailing", Sender.USER),
        ):
            self.store.append_message(self.chat_id, Message(content=content, sender=sender))
        history = self.store.derive_history(self.chat_id)
        self.assertEqual(
            [(entry.role, entry.content.text) for entry in history],
            [("user", "q"), ("assistant", "a")],
        )

    def test_derive_history_never_contains_empty_bot_content(self) -> None:
        for index in range(6):
            sender = Sender.USER if index % 2 == 0 else Sender.BOT
            content = "" if index % 3 == 1 else f"m{index}"
            self.store.append_message(self.chat_id, Message(content=content, sender=sender))
        for entry in self.store.derive_history(self.chat_id):
            if entry.role == "assistant":
                self.assertNotEqual(entry.content, TextContent(""))


if __name__ == "__main__":
    unittest.main()
