"""Shared test fixtures for nexchat tests."""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import aiohttp
import pytest

from nexchat.chat.emotes.provider import BaseEmoteProvider, CatalogFetchError
from nexchat.chat.models import ChatEmote, ChatMessage

PRIVMSG_LINE = (
    "@badge-info=;badges=broadcaster/1;color=#FF0000;display-name=TestUser;"
    "emotes=25:0-4;id=msg-001;tmi-sent-ts=1700000000000;user-id=12345 "
    ":testuser!testuser@testuser.tmi.twitch.tv PRIVMSG #testchannel :Kappa hello world"
)


def privmsg(text: str, user: str = "viewer", tags: str = "") -> str:
    """Build a tagged PRIVMSG line from `user` with body `text`."""
    tag_block = f"@display-name={user};user-id=1{';' + tags if tags else ''} "
    return f"{tag_block}:{user.lower()}!{user.lower()}@{user.lower()}.tmi.twitch.tv PRIVMSG #chan :{text}"


def text_frame(data: str):
    return SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=data)


def error_frame():
    return SimpleNamespace(type=aiohttp.WSMsgType.ERROR, data=None)


class FakeWebSocket:
    """In-memory stand-in for aiohttp.ClientWebSocketResponse."""

    def __init__(self, frames=(), hold_open: bool = False):
        self.sent: list[str] = []
        self.closed = False
        self._frames = list(frames)
        self._hold_open = hold_open
        self._closed_event = asyncio.Event()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._frames and not self.closed:
            return self._frames.pop(0)
        if self._hold_open and not self.closed:
            await self._closed_event.wait()
        raise StopAsyncIteration

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True
        self._closed_event.set()

    def exception(self):
        return ConnectionResetError("reset by peer")


class FakeSession:
    """In-memory stand-in for aiohttp.ClientSession."""

    def __init__(self, ws: FakeWebSocket | None = None, error: Exception | None = None):
        self.ws = ws or FakeWebSocket()
        self.error = error
        self.closed = False
        self.urls: list[str] = []

    async def ws_connect(self, url: str):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.ws

    async def close(self) -> None:
        self.closed = True


class StubProvider(BaseEmoteProvider):
    """Emote provider returning canned emotes, optionally failing."""

    def __init__(
        self,
        name: str,
        global_emotes=(),
        channel_emotes: dict | None = None,
        fail_global: bool = False,
        fail_channel: bool = False,
    ):
        self._name = name
        self._global = list(global_emotes)
        self._channel = channel_emotes or {}
        self.fail_global = fail_global
        self.fail_channel = fail_channel
        self.channel_calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def get_global_emotes(self):
        if self.fail_global:
            raise CatalogFetchError(f"{self._name} global unavailable")
        return list(self._global)

    async def get_channel_emotes(self, room_id: str):
        self.channel_calls.append(room_id)
        if self.fail_channel:
            raise aiohttp.ClientConnectionError("connection refused")
        return list(self._channel.get(room_id, []))


def make_emote(name: str, provider: str = "bttv", url: str | None = None) -> ChatEmote:
    return ChatEmote(
        id=f"{provider}-{name.lower()}",
        name=name,
        url=url or f"https://cdn.example.com/{provider}/{name}/1x",
        provider=provider,
    )


async def wait_for(predicate, attempts: int = 100) -> None:
    """Yield to the event loop until predicate() holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def received_at():
    return datetime(2025, 1, 1, 12, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_message(received_at):
    def _make(text: str = "Hello world!", username: str = "TestUser", emotes=None) -> ChatMessage:
        return ChatMessage(
            id=None,
            user_id="12345",
            username=username,
            text=text,
            emotes=dict(emotes or {}),
            time=received_at,
        )

    return _make
