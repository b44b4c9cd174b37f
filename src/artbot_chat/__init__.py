"""Top-level package for artbot-chat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import ChatConsoleApp
    from .config import Config, load_config
    from .conversation_store import ConversationStore
    from .exceptions import (
        ArtBotChatError,
        ConfigError,
        DecodeError,
        RequestCancelledError,
        TransportError,
    )
    from .provider import ProviderClient
    from .session import SessionController
    from .state import SessionState, StateMachine
    from .stream_decoder import StreamDecoder

__all__ = [
    "ArtBotChatError",
    "ChatConsoleApp",
    "Config",
    "ConfigError",
    "ConversationStore",
    "DecodeError",
    "ProviderClient",
    "RequestCancelledError",
    "SessionController",
    "SessionState",
    "StateMachine",
    "StreamDecoder",
    "TransportError",
    "load_config",
]

_EXPORTS = {
    "ArtBotChatError": "exceptions",
    "ConfigError": "exceptions",
    "DecodeError": "exceptions",
    "RequestCancelledError": "exceptions",
    "TransportError": "exceptions",
    "Config": "config",
    "load_config": "config",
    "ConversationStore": "conversation_store",
    "ProviderClient": "provider",
    "SessionController": "session",
    "SessionState": "state",
    "StateMachine": "state",
    "StreamDecoder": "stream_decoder",
    "ChatConsoleApp": "app",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep the console dependencies optional at import time."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(f".{module_name}", __name__), name)
