"""Configuration loading and validation for the ArtBot chat client."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigError
from .models import DEFAULT_MAX_IMAGE_BYTES
from .prompts import DEFAULT_SYSTEM_PROMPT, DEFAULT_WELCOME_MESSAGE

import tomllib

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "artbot-chat"
CONFIG_PATH = CONFIG_DIR / "config.toml"

API_KEY_ENV = "OPENROUTER_API_KEY"
MODEL_ENV = "OPENROUTER_MODEL"

DEFAULT_MODEL = "openai/gpt-oss-120b:free"
DEFAULT_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
MISSING_CREDENTIAL_MESSAGE = (
    "OpenRouter API key is not configured. "
    f"Set {API_KEY_ENV} in your environment or provider.api_key in {CONFIG_PATH}."
)
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ProviderConfig(BaseModel):
    """Endpoint, credential, and sampling settings for the LLM provider."""

    api_key: str = ""
    model: str = DEFAULT_MODEL
    endpoint: str = DEFAULT_ENDPOINT
    referer: str = "http://localhost"
    app_title: str = "Arts Festival Chatbot"
    timeout: float = Field(default=120.0, gt=0, le=3600)
    max_tokens: int = Field(default=1500, ge=1)
    temperature: float = Field(default=0.7, ge=0, le=2)
    top_p: float = Field(default=0.9, gt=0, le=1)
    frequency_penalty: float = Field(default=0.1, ge=-2, le=2)
    presence_penalty: float = Field(default=0.1, ge=-2, le=2)
    stream: bool = True
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("api_key must be a string.")
        return value.strip()

    @field_validator("model", "app_title", mode="before")
    @classmethod
    def _validate_required_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("String value must not be empty.")
        return normalized

    @field_validator("endpoint", mode="before")
    @classmethod
    def _validate_endpoint(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("endpoint must be a string.")
        normalized = value.strip()
        parsed = urlparse(normalized)
        if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
            raise ValueError("endpoint must be an http(s) URL with a hostname.")
        return normalized

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


class ChatConfig(BaseModel):
    """Conversation defaults and attachment limits."""

    welcome_message: str = DEFAULT_WELCOME_MESSAGE
    max_image_bytes: int = Field(default=DEFAULT_MAX_IMAGE_BYTES, ge=1)
    export_directory: str = "."

    @field_validator("welcome_message", mode="before")
    @classmethod
    def _validate_welcome(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("welcome_message must be a non-empty string.")
        return value


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/artbot-chat/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    provider: ProviderConfig = ProviderConfig()
    chat: ChatConfig = ChatConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _enforce_private_permissions(path: Path) -> None:
    """Best-effort enforcement of private file permissions on POSIX systems."""
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _apply_environment(raw: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay credential and model values supplied through the environment."""
    overrides: dict[str, Any] = {}
    api_key = environ.get(API_KEY_ENV, "").strip()
    if api_key:
        overrides["api_key"] = api_key
    model = environ.get(MODEL_ENV, "").strip()
    if model:
        overrides["model"] = model
    if not overrides:
        return raw
    return _deep_merge(raw, {"provider": overrides})


def _validate_config(raw: dict[str, Any]) -> Config:
    """Validate merged config and fall back to safe defaults when possible."""
    try:
        return Config.model_validate(raw)
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using safe defaults: %s", exc)
        # Keep the credential even when another setting is broken.
        provider = raw.get("provider")
        api_key = provider.get("api_key") if isinstance(provider, dict) else None
        if isinstance(api_key, str):
            return Config(provider=ProviderConfig(api_key=api_key))
        return Config()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigError(f"Unable to validate configuration: {exc}") from exc


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from TOML, merge with defaults, apply env, and validate.

    ``OPENROUTER_API_KEY`` and ``OPENROUTER_MODEL`` take precedence over the
    file.  The optional arguments are intended for tests and tooling.
    """
    target_path = config_path or CONFIG_PATH
    env = os.environ if environ is None else environ

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    merged = _deep_merge(DEFAULT_CONFIG, raw_data)
    return _validate_config(_apply_environment(merged, env))


def credential_status(config: Config) -> str | None:
    """Return the user-facing missing-credential message, or None when configured."""
    if config.provider.has_credential:
        return None
    return MISSING_CREDENTIAL_MESSAGE
