#!/usr/bin/env python3
"""Main entry point for NexChat - a terminal host for the chat feed."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .chat.connections.twitch import normalize_channel
from .chat.export import export_messages, load_export
from .chat.manager import ChatSession
from .chat.models import ChatMessage
from .core.models import ConnectionStatus, Sentiment
from .core.settings import MAX_MAX_MESSAGES, MIN_MAX_MESSAGES, Settings, get_data_dir

logger = logging.getLogger(__name__)

_SENTIMENT_MARKERS = {
    Sentiment.POSITIVE: "+",
    Sentiment.NEGATIVE: "-",
    Sentiment.NEUTRAL: " ",
}


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )

    # Suppress noisy third-party loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nexchat",
        description="Follow a Twitch channel's chat with emotes, alerts and statistics",
    )
    parser.add_argument(
        "channel",
        nargs="?",
        default=None,
        help="Channel name or twitch.tv URL (default: saved channel, if auto-connect is on)",
    )
    parser.add_argument(
        "--html",
        action="store_true",
        help="Print the overlay markup instead of plain text",
    )
    parser.add_argument(
        "--alerts",
        default=None,
        help='Comma-separated alert keywords (e.g. "pog, omg, hype")',
    )
    parser.add_argument(
        "--max-messages",
        type=int,
        default=None,
        help="Number of messages kept in the buffer",
    )
    parser.add_argument(
        "--bell",
        action="store_true",
        help="Ring the terminal bell when a message matches an alert keyword",
    )
    parser.add_argument(
        "--export",
        type=Path,
        nargs="?",
        const=None,
        default=argparse.SUPPRESS,
        help="Export the buffer as JSON on exit (default directory: app data dir)",
    )
    parser.add_argument(
        "--replay",
        type=Path,
        default=None,
        metavar="FILE",
        help="Print a previously exported buffer instead of connecting",
    )
    parser.add_argument(
        "--no-reconnect",
        action="store_true",
        help="Exit when the connection ends instead of reconnecting",
    )
    parser.add_argument(
        "--auto-connect",
        action="store_true",
        help="Join the saved channel when started without one",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Persist channel and alert options to the settings file",
    )
    parser.add_argument("--config", type=Path, default=None, help="Settings file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def format_message(session: ChatSession, message: ChatMessage, html: bool = False) -> str:
    """One terminal line for a chat message."""
    parts: list[str] = []
    if session.settings.timestamps_enabled:
        parts.append(message.time.astimezone().strftime("%H:%M:%S"))
    if session.settings.sentiment_enabled:
        parts.append(_SENTIMENT_MARKERS[session.sentiment(message)])
    body = session.render(message) if html else message.text
    parts.append(f"{message.username}: {body}")
    return " ".join(parts)


def format_summary(session: ChatSession) -> str:
    store = session.store
    top = ", ".join(f"{name} ({count})" for name, count in store.top_chatters())
    return (
        f"{store.total_messages} messages, {store.messages_per_minute()}/min, "
        f"uptime {store.uptime_str()}" + (f" | top: {top}" if top else "")
    )


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """Follow the channel until interrupted (or disconnected with --no-reconnect)."""
    chat_settings = settings.chat

    def on_message(message: ChatMessage) -> None:
        print(format_message(session, message, html=args.html), flush=True)

    def on_status(status: ConnectionStatus) -> None:
        print(f"*** {status.value}", file=sys.stderr, flush=True)

    def ring_bell(message: ChatMessage) -> None:
        sys.stdout.write("\a")
        sys.stdout.flush()

    session = ChatSession(
        chat_settings,
        on_message=on_message,
        on_status_change=on_status,
        notifier=ring_bell,
    )

    try:
        await session.start()
        # The connection never reconnects by itself
        while not args.no_reconnect:
            await session.connection.sleep_with_backoff()
            await session.start(reset=False)
    finally:
        await session.stop()
        print(format_summary(session), file=sys.stderr)
        if hasattr(args, "export"):
            directory = args.export or get_data_dir() / "exports"
            export_messages(
                session.store.messages, normalize_channel(chat_settings.channel), directory
            )

    return 0 if session.status != ConnectionStatus.ERROR else 1


def replay(path: Path, settings: Settings, html: bool = False) -> int:
    """Print the messages of an export file through the usual formatting."""
    try:
        messages = load_export(path)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read export {path}: {e}")
        return 1

    session = ChatSession(settings.chat, providers=[])
    for message in messages:
        session.store.add_message(message)
        print(format_message(session, message, html=html))
    logger.info(f"Replayed {len(messages)} messages from {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    settings = Settings.load(args.config)
    chat_settings = settings.chat
    if args.auto_connect:
        chat_settings.auto_connect = True
    if args.channel:
        chat_settings.channel = args.channel
    if args.alerts is not None:
        chat_settings.alerts = args.alerts
    if args.max_messages is not None:
        chat_settings.max_messages = Settings._validate_int(
            args.max_messages,
            chat_settings.max_messages,
            min_val=MIN_MAX_MESSAGES,
            max_val=MAX_MAX_MESSAGES,
        )
    if args.bell:
        chat_settings.audio_enabled = True

    if args.save:
        settings.save(args.config)

    if args.replay:
        return replay(args.replay, settings, html=args.html)

    if not args.channel and not (chat_settings.auto_connect and chat_settings.channel):
        logger.error("No channel given (use --auto-connect to join the saved one)")
        return 2

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
