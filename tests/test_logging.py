"""Tests for structured logging behavior."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
import unittest

import structlog

from artbot_chat.config import LoggingConfig
from artbot_chat.logging_utils import build_formatter, configure_logging
from artbot_chat.state import SessionState, StateMachine


class StructuredEventTests(unittest.TestCase):
    """Validate that components emit named events."""

    def test_state_transition_emits_event(self) -> None:
        machine = StateMachine()
        with self.assertLogs("artbot_chat.state", level="DEBUG") as logs:
            machine.transition_to(SessionState.AWAITING_RESPONSE)
        record = logs.records[0]
        self.assertEqual(record.event, "session.state.transition")
        self.assertEqual(record.from_state, "IDLE")
        self.assertEqual(record.to_state, "AWAITING_RESPONSE")

    def test_structured_formatter_renders_extra_fields(self) -> None:
        formatter = build_formatter(structured=True)
        record = logging.LogRecord(
            name="artbot_chat.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="provider.request.start",
            args=(),
            exc_info=None,
        )
        record.model = "openai/gpt-oss-120b:free"
        rendered = formatter.format(record)
        self.assertIn('"model":"openai/gpt-oss-120b:free"', rendered)
        self.assertIn('"level":"info"', rendered)


class ConfigureLoggingTests(unittest.TestCase):
    """Validate configure_logging() handler setup behavior."""

    def setUp(self) -> None:
        # Preserve root logger state so tests do not pollute each other.
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)

    def _stream_handlers(self) -> list[logging.Handler]:
        return [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]

    def test_structured_uses_processor_formatter(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG", structured=True))
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertTrue(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_plain_formatter_when_not_structured(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG", structured=False))
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertFalse(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_sets_root_level(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG", structured=False))
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_stderr_handler_only_passes_warnings(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG", structured=False))
        handlers = self._stream_handlers()
        self.assertEqual(len(handlers), 1)
        self.assertEqual(handlers[0].level, logging.WARNING)

    def test_noisy_loggers_set_to_warning(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG", structured=False))
        for name in ("httpx", "httpcore"):
            self.assertEqual(logging.getLogger(name).level, logging.WARNING)

    def test_file_handler_created(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "nested" / "test.log"
            configure_logging(
                LoggingConfig(
                    level="DEBUG",
                    structured=False,
                    log_to_file=True,
                    log_file_path=str(log_path),
                )
            )
            root = logging.getLogger()
            file_handlers = [
                h for h in root.handlers if isinstance(h, logging.FileHandler)
            ]
            self.assertEqual(len(file_handlers), 1)
            self.assertTrue(log_path.exists())
            for handler in file_handlers:
                handler.close()
                root.removeHandler(handler)

    def test_stderr_handler_filters_to_artbot_chat(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG", structured=False))
        handler = self._stream_handlers()[0]
        app_record = logging.LogRecord(
            name="artbot_chat.session",
            level=logging.WARNING,
            pathname="",
            lineno=0,
            msg="session.send.failed",
            args=(),
            exc_info=None,
        )
        library_record = logging.LogRecord(
            name="httpx",
            level=logging.WARNING,
            pathname="",
            lineno=0,
            msg="noise",
            args=(),
            exc_info=None,
        )
        self.assertTrue(handler.filter(app_record))
        self.assertFalse(handler.filter(library_record))


if __name__ == "__main__":
    unittest.main()
