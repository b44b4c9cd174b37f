"""CLI entrypoint for artbot-chat."""

from __future__ import annotations

import argparse
import asyncio
from importlib import metadata
from pathlib import Path
from typing import Sequence

from .app import ChatConsoleApp
from .config import load_config
from .logging_utils import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="artbot-chat", description="ArtBot chat client")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("--model", default=None, help="Override the provider model")
    parser.add_argument(
        "--no-stream",
        action="store_true",
        help="Wait for complete replies instead of streaming",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, handle CLI flags, and run the console chat."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("artbot-chat")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"artbot-chat {version}")
        return

    config = load_config(config_path=args.config)
    if args.model:
        config.provider.model = args.model.strip()
    if args.no_stream:
        config.provider.stream = False
    configure_logging(config.logging)

    app = ChatConsoleApp(config)
    asyncio.run(app.run())


if __name__ == "__main__":
    main()
