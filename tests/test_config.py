"""Tests for configuration loading and validation."""

from __future__ import annotations

import tempfile
from pathlib import Path
import unittest

from artbot_chat.config import (
    DEFAULT_CONFIG,
    DEFAULT_ENDPOINT,
    DEFAULT_MODEL,
    MISSING_CREDENTIAL_MESSAGE,
    Config,
    ProviderConfig,
    credential_status,
    load_config,
)


class ConfigTests(unittest.TestCase):
    """Validate config merge, environment overlay, and fallback behavior."""

    def test_missing_config_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config = load_config(config_path=config_path, environ={})
            self.assertEqual(config.provider.model, DEFAULT_MODEL)
            self.assertEqual(config.provider.endpoint, DEFAULT_ENDPOINT)
            self.assertEqual(config.provider.api_key, "")
            self.assertTrue(config.provider.stream)
            self.assertEqual(
                config.logging.level, DEFAULT_CONFIG["logging"]["level"]
            )

    def test_partial_config_overrides_selected_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[provider]
api_key = "sk-file"
temperature = 0.2

[chat]
export_directory = "/tmp/exports"
                """.strip(),
                encoding="utf-8",
            )
            config = load_config(config_path=config_path, environ={})
            self.assertEqual(config.provider.api_key, "sk-file")
            self.assertEqual(config.provider.temperature, 0.2)
            self.assertEqual(config.provider.max_tokens, 1500)
            self.assertEqual(config.chat.export_directory, "/tmp/exports")

    def test_environment_overrides_file_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                '[provider]\napi_key = "sk-file"\nmodel = "file/model"\n',
                encoding="utf-8",
            )
            config = load_config(
                config_path=config_path,
                environ={
                    "OPENROUTER_API_KEY": " sk-env ",
                    "OPENROUTER_MODEL": "env/model",
                },
            )
            self.assertEqual(config.provider.api_key, "sk-env")
            self.assertEqual(config.provider.model, "env/model")

    def test_invalid_values_fall_back_but_keep_credential(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                '[provider]\napi_key = "sk-file"\nendpoint = "ftp://nowhere"\n',
                encoding="utf-8",
            )
            config = load_config(config_path=config_path, environ={})
            self.assertEqual(config.provider.endpoint, DEFAULT_ENDPOINT)
            self.assertEqual(config.provider.api_key, "sk-file")

    def test_malformed_toml_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text("[provider\nmodel = ", encoding="utf-8")
            config = load_config(config_path=config_path, environ={})
            self.assertEqual(config.provider.model, DEFAULT_MODEL)

    def test_log_level_is_normalized(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text('[logging]\nlevel = "debug"\n', encoding="utf-8")
            config = load_config(config_path=config_path, environ={})
            self.assertEqual(config.logging.level, "DEBUG")

    def test_credential_status(self) -> None:
        self.assertEqual(credential_status(Config()), MISSING_CREDENTIAL_MESSAGE)
        configured = Config(provider=ProviderConfig(api_key="sk-test"))
        self.assertIsNone(credential_status(configured))


if __name__ == "__main__":
    unittest.main()
