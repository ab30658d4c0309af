"""Twitch IRC chat connection over WebSocket."""

import logging
import random
import re
from datetime import datetime, timezone
from typing import Callable, Optional

import aiohttp

from ...core.models import ConnectionEvent
from ..models import DEFAULT_USER_COLOR, UNKNOWN_USERNAME, ChatMessage, DecodeOutcome
from .base import BaseChatConnection, MessageCallback, RoomIdCallback, StatusCallback

logger = logging.getLogger(__name__)

TWITCH_IRC_WS_URL = "wss://irc-ws.chat.twitch.tv:443"

CAP_REQUEST = "CAP REQ :twitch.tv/tags twitch.tv/commands"
PONG_REPLY = "PONG :tmi.twitch.tv"

_CHANNEL_URL_PREFIX = re.compile(r"^(?:https?://)?(?:www\.)?twitch\.tv/", re.IGNORECASE)

_TAG_UNESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}


class DecodeError(ValueError):
    """Raised when a PRIVMSG line does not have the expected structure."""


def _unescape_tag_value(value: str) -> str:
    """Undo IRCv3 tag value escaping (\\: \\s \\\\ \\r \\n)."""
    if "\\" not in value:
        return value
    out: list[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            nxt = value[i + 1]
            out.append(_TAG_UNESCAPES.get(nxt, nxt))
            i += 2
            continue
        if ch != "\\":
            out.append(ch)
        i += 1
    return "".join(out)


def parse_irc_tags(tag_string: str) -> dict[str, str | None]:
    """Parse IRC tags string into a dictionary.

    Tags format: @key1=value1;key2=value2;...
    A key without '=' maps to None; "key=" maps to an empty string.
    """
    tags: dict[str, str | None] = {}
    if not tag_string:
        return tags

    # Remove leading '@' if present
    if tag_string.startswith("@"):
        tag_string = tag_string[1:]

    for pair in tag_string.split(";"):
        if not pair:
            continue
        if "=" in pair:
            key, value = pair.split("=", 1)
            tags[key] = _unescape_tag_value(value)
        else:
            tags[pair] = None

    return tags


def parse_irc_message(raw: str) -> dict:
    """Parse a raw IRC message into components.

    Returns dict with keys: tags, prefix, command, params, trailing.
    `trailing` is None when the line has no ' :' trailing part; otherwise it
    holds everything after the first ' :', so it may itself contain ' :'.
    """
    result: dict = {"tags": {}, "prefix": "", "command": "", "params": [], "trailing": None}

    pos = 0

    # Parse tags
    if raw.startswith("@"):
        space_idx = raw.find(" ")
        if space_idx < 0:
            return result
        result["tags"] = parse_irc_tags(raw[:space_idx])
        pos = space_idx + 1

    if pos >= len(raw):
        return result

    # Parse prefix
    if raw[pos] == ":":
        space_idx = raw.find(" ", pos)
        if space_idx < 0:
            return result
        result["prefix"] = raw[pos + 1 : space_idx]
        pos = space_idx + 1

    # Parse command and params
    trailing_idx = raw.find(" :", pos)
    if trailing_idx >= 0:
        result["trailing"] = raw[trailing_idx + 2 :]
        remaining = raw[pos:trailing_idx]
    else:
        remaining = raw[pos:]

    parts = remaining.split(" ")
    result["command"] = parts[0]
    result["params"] = parts[1:] if len(parts) > 1 else []

    return result


def parse_emotes_tag(emotes_tag: str) -> dict[str, str]:
    """Parse the Twitch emotes tag into a range -> emote id mapping.

    Format: emote_id:start-end,start-end/emote_id:start-end
    Range strings are kept verbatim; the renderer validates them.
    """
    emotes: dict[str, str] = {}
    if not emotes_tag:
        return emotes

    for emote_section in emotes_tag.split("/"):
        emote_id, sep, ranges = emote_section.partition(":")
        if not sep or not emote_id:
            raise DecodeError(f"malformed emote group {emote_section!r}")
        for range_str in ranges.split(","):
            emotes[range_str] = emote_id

    return emotes


def _decode(raw: str, received_at: datetime | None) -> ChatMessage:
    parsed = parse_irc_message(raw)
    if parsed["command"] != "PRIVMSG":
        raise DecodeError(f"expected PRIVMSG, got {parsed['command']!r}")
    if parsed["trailing"] is None:
        raise DecodeError("missing message body separator")

    tags = parsed["tags"]
    prefix = parsed["prefix"]
    login = prefix.split("!", 1)[0] if "!" in prefix else ""

    return ChatMessage(
        id=tags.get("id") or None,
        user_id=tags.get("user-id") or None,
        username=tags.get("display-name") or login or UNKNOWN_USERNAME,
        color=tags.get("color") or DEFAULT_USER_COLOR,
        text=parsed["trailing"].strip(),
        emotes=parse_emotes_tag(tags.get("emotes") or ""),
        time=received_at or datetime.now(timezone.utc),
    )


def decode_privmsg(raw: str, received_at: datetime | None = None) -> DecodeOutcome:
    """Decode a raw PRIVMSG line.

    Never raises: a malformed line yields an outcome without a message, so a
    single bad line cannot stop the stream.
    """
    try:
        return DecodeOutcome(message=_decode(raw, received_at))
    except DecodeError as e:
        logger.debug(f"Dropping malformed PRIVMSG ({e}): {raw[:200]}")
        return DecodeOutcome(reason=str(e))
    except Exception as e:
        logger.warning(f"Unexpected error decoding PRIVMSG: {e}")
        return DecodeOutcome(reason=f"unexpected error: {e}")


def parse_privmsg(raw: str, received_at: datetime | None = None) -> ChatMessage | None:
    """Decode a raw PRIVMSG line, returning None when it is malformed."""
    return decode_privmsg(raw, received_at).message


def normalize_channel(channel: str) -> str:
    """Turn user input ("twitch.tv/Foo/videos", "#Foo") into an IRC channel name."""
    channel = _CHANNEL_URL_PREFIX.sub("", channel.strip())
    channel = channel.split("/")[0].split("?")[0]
    return channel.lstrip("#").lower()


def anonymous_nick() -> str:
    """Random read-only login accepted by Twitch without authentication."""
    return f"justinfan{random.randrange(10000, 99999)}"


class TwitchChatConnection(BaseChatConnection):
    """Anonymous, read-only Twitch IRC chat connection over WebSocket.

    Connects to Twitch's IRC WebSocket endpoint, answers keepalives, reports
    the room id from ROOMSTATE and delivers decoded PRIVMSG lines.
    """

    def __init__(
        self,
        on_message: Optional[MessageCallback] = None,
        on_status_change: Optional[StatusCallback] = None,
        on_room_id: Optional[RoomIdCallback] = None,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
        url: str = TWITCH_IRC_WS_URL,
    ):
        super().__init__(on_message, on_status_change, on_room_id)
        self._session_factory = session_factory
        self._url = url
        self._nick = ""
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._session: aiohttp.ClientSession | None = None

    @property
    def nick(self) -> str:
        return self._nick

    async def connect_to_channel(self, channel_id: str) -> None:
        """Connect to a Twitch channel's chat and read until the socket ends.

        Any open connection is closed first. Returns when the connection is
        closed (by the server or by `disconnect`) or fails.
        """
        await self.disconnect()

        channel = normalize_channel(channel_id)
        if not channel:
            logger.warning(f"Twitch IRC: no channel in {channel_id!r}")
            return

        session = self._session_factory()
        try:
            ws = await session.ws_connect(self._url)
        except (aiohttp.ClientError, OSError) as e:
            await session.close()
            self._emit_error(f"Connection failed: {e}")
            return

        self._session = session
        self._ws = ws
        error: str | None = None
        try:
            self._nick = anonymous_nick()
            logger.info(f"Twitch IRC: connecting as {self._nick} to #{channel}")
            await ws.send_str(CAP_REQUEST)
            await ws.send_str(f"NICK {self._nick}")
            await ws.send_str(f"JOIN #{channel}")

            self._channel_id = channel
            self._apply_event(ConnectionEvent.OPENED)

            error = await self._read_loop(ws)
        except (aiohttp.ClientError, OSError) as e:
            error = str(e)
        finally:
            is_current = self._ws is ws
            if is_current:
                self._ws = None
                self._session = None
            await self._close_socket(session, ws)
            if is_current:
                if error:
                    self._emit_error(error)
                else:
                    self._apply_event(ConnectionEvent.CLOSED)

    async def disconnect(self) -> None:
        """Disconnect from the channel."""
        ws, session = self._ws, self._session
        self._ws = None
        self._session = None
        if ws is None:
            return
        await self._close_socket(session, ws)
        self._apply_event(ConnectionEvent.CLOSED)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> str | None:
        """Read frames until the socket closes. Returns an error description, if any."""
        msg_count = 0
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                msg_count += 1
                if msg_count <= 3:
                    logger.info(f"Twitch IRC raw [{msg_count}]: {msg.data[:200]}")
                for line in msg.data.split("\r\n"):
                    if line:
                        await self._handle_line(line)
                if self._ws is not ws:
                    break

            elif msg.type == aiohttp.WSMsgType.ERROR:
                return f"WebSocket error: {ws.exception()}"

            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
                break

        return None

    async def _handle_line(self, raw: str) -> None:
        """Handle a single IRC line."""
        # Keepalive is answered at the protocol level, never delivered
        if raw.startswith("PING"):
            if self._ws and not self._ws.closed:
                await self._ws.send_str(PONG_REPLY)
            return

        if not self.is_connected:
            logger.debug(f"Twitch IRC: dropping line while {self.status.value}")
            return

        parsed = parse_irc_message(raw)
        command = parsed["command"]

        if command == "PRIVMSG":
            outcome = decode_privmsg(raw)
            if outcome.ok:
                self._emit_message(outcome.message)
        elif command == "ROOMSTATE":
            room_id = parsed["tags"].get("room-id")
            if room_id and room_id.isdigit():
                self._emit_room_id(room_id)

    @staticmethod
    async def _close_socket(
        session: aiohttp.ClientSession | None, ws: aiohttp.ClientWebSocketResponse | None
    ) -> None:
        """Close WebSocket and session."""
        if ws is not None and not ws.closed:
            await ws.close()
        if session is not None and not session.closed:
            await session.close()
