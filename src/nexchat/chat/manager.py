"""Chat session - wires the connection, message store and emote catalog together."""

import asyncio
import logging
from typing import Callable, Optional

from ..core.models import ConnectionStatus, Sentiment
from ..core.settings import ChatSettings
from .connections.base import BaseChatConnection, MessageCallback, StatusCallback
from .connections.twitch import TwitchChatConnection, normalize_channel
from .emotes.catalog import EMPTY_CATALOG, EmoteCatalog
from .emotes.provider import BaseEmoteProvider, create_providers, fetch_channel_catalog
from .emotes.renderer import render_message
from .models import ChatMessage
from .sentiment import detect_sentiment
from .store import ChatAggregateStore

logger = logging.getLogger(__name__)

AlertNotifier = Callable[[ChatMessage], None]


class ChatSession:
    """Runs one live chat feed.

    Messages flow connection -> store -> host callback. The emote catalog
    always belongs to the room the connection last reported; a new room id
    swaps in an empty catalog immediately and fills it in the background.
    Joining a different channel drops the catalog before any of that channel's
    messages arrive.
    """

    def __init__(
        self,
        settings: ChatSettings | None = None,
        connection: BaseChatConnection | None = None,
        providers: list[BaseEmoteProvider] | None = None,
        on_message: Optional[MessageCallback] = None,
        on_status_change: Optional[StatusCallback] = None,
        notifier: Optional[AlertNotifier] = None,
    ):
        self.settings = settings or ChatSettings()
        self.store = ChatAggregateStore(
            max_messages=self.settings.max_messages,
            alert_words=self.settings.alert_words,
        )
        self.connection = connection or TwitchChatConnection()
        self.connection.on_message = self._on_message
        self.connection.on_status_change = self._on_status_change
        self.connection.on_room_id = self._on_room_id

        self.on_message = on_message
        self.on_status_change = on_status_change
        self.notifier = notifier

        self._providers = (
            providers if providers is not None else create_providers(self.settings.emote_providers)
        )
        self._catalog: EmoteCatalog = EMPTY_CATALOG
        self._catalog_ready = False
        self._catalog_channel = ""
        self._refresh_task: asyncio.Task | None = None
        self._status = ConnectionStatus.DISCONNECTED

    @property
    def catalog(self) -> EmoteCatalog:
        return self._catalog

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    async def start(self, channel: str | None = None, reset: bool = True) -> None:
        """Run the connection until it ends.

        Args:
            channel: Channel to join; defaults to the configured channel.
            reset: Start a fresh statistics session. Pass False when
                reconnecting to keep the buffer and counters.
        """
        channel = channel or self.settings.channel
        if not channel:
            logger.warning("No channel configured, not connecting")
            return

        joined = normalize_channel(channel)
        if joined != self._catalog_channel:
            await self._cancel_refresh()
            self._catalog = EMPTY_CATALOG
            self._catalog_ready = False
            self._catalog_channel = joined

        if reset or self.store.start_time is None:
            self.store.start()
        await self.connection.connect_to_channel(channel)

    async def stop(self) -> None:
        """Disconnect and end the statistics session."""
        await self.connection.disconnect()
        self.store.stop()
        await self._cancel_refresh()
        if not self._catalog_ready:
            self._catalog = EMPTY_CATALOG

    def apply_settings(self, settings: ChatSettings) -> None:
        """Apply changed settings to the running session."""
        self.settings = settings
        self.store.set_max_messages(settings.max_messages)
        self.store.set_alert_words(settings.alerts)

    async def refresh_catalog(self, room_id: str) -> EmoteCatalog:
        """Fetch the catalog for `room_id` and install it if the room is still current."""
        catalog = await fetch_channel_catalog(room_id, self._providers)
        if self._catalog.room_id != room_id:
            logger.debug(f"Discarding emote catalog for stale room {room_id}")
            return catalog
        self._catalog = catalog
        # An empty result (every provider failed) is fetched again next time
        self._catalog_ready = len(catalog) > 0
        return catalog

    def render(self, message: ChatMessage) -> str:
        """Overlay markup for a message using the current catalog and alerts."""
        return render_message(message, self._catalog, self.store.alert_words)

    def sentiment(self, message: ChatMessage) -> Sentiment:
        if not self.settings.sentiment_enabled:
            return Sentiment.NEUTRAL
        return detect_sentiment(message.text)

    def _on_room_id(self, room_id: str) -> None:
        # ROOMSTATE repeats on every room mode change
        if room_id == self._catalog.room_id and (self._catalog_ready or self._refresh_pending()):
            return

        logger.info(f"Room id {room_id} resolved, refreshing emote catalog")
        self._catalog = EmoteCatalog(room_id=room_id)
        self._catalog_ready = False
        if self._refresh_pending():
            self._refresh_task.cancel()
        self._refresh_task = asyncio.get_running_loop().create_task(self.refresh_catalog(room_id))

    def _refresh_pending(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def _cancel_refresh(self) -> None:
        if self._refresh_pending():
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
        self._refresh_task = None

    def _on_message(self, message: ChatMessage) -> None:
        is_alert = self.store.add_message(message)
        if is_alert and self.settings.audio_enabled and self.notifier:
            self.notifier(message)
        if self.on_message:
            self.on_message(message)

    def _on_status_change(self, status: ConnectionStatus) -> None:
        self._status = status
        logger.info(f"Chat status: {status.value}")
        if self.on_status_change:
            self.on_status_change(status)
