"""Base chat connection abstract class."""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ...core.models import ConnectionEvent, ConnectionStatus, next_status
from ..models import ChatMessage

logger = logging.getLogger(__name__)

# Exponential backoff constants for callers that choose to reconnect
INITIAL_RECONNECT_DELAY = 1.0  # seconds
MAX_RECONNECT_DELAY = 60.0  # seconds
RECONNECT_BACKOFF_FACTOR = 2.0
RECONNECT_JITTER = 0.1  # 10% jitter to prevent thundering herd

MessageCallback = Callable[[ChatMessage], None]
StatusCallback = Callable[[ConnectionStatus], None]
RoomIdCallback = Callable[[str], None]


class BaseChatConnection(ABC):
    """Abstract base class for chat connections.

    Owns the connection status state machine and the host callbacks.
    Every status change goes through `_apply_event`, which consults the
    transition table and notifies `on_status_change`. The connection never
    reconnects on its own; the backoff helpers exist for callers that do.
    """

    def __init__(
        self,
        on_message: Optional[MessageCallback] = None,
        on_status_change: Optional[StatusCallback] = None,
        on_room_id: Optional[RoomIdCallback] = None,
    ):
        self.on_message = on_message
        self.on_status_change = on_status_change
        self.on_room_id = on_room_id
        self._channel_id: str = ""
        self._status: ConnectionStatus = ConnectionStatus.DISCONNECTED
        self._reconnect_delay: float = INITIAL_RECONNECT_DELAY

    @property
    def channel_id(self) -> str:
        """The channel currently connected to."""
        return self._channel_id

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        """Whether the connection is active."""
        return self._status == ConnectionStatus.CONNECTED

    @abstractmethod
    async def connect_to_channel(self, channel_id: str) -> None:
        """Connect to a channel's chat and read until the connection ends.

        Args:
            channel_id: The channel identifier.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the current channel. Safe to call when not connected."""

    def _apply_event(self, event: ConnectionEvent) -> bool:
        """Advance the status machine. Returns False for an invalid transition."""
        new_status = next_status(self._status, event)
        if new_status is None:
            logger.debug(
                f"{self.__class__.__name__}: ignoring {event.value} while {self._status.value}"
            )
            return False

        self._status = new_status
        if new_status == ConnectionStatus.CONNECTED:
            self._reset_backoff()
        elif new_status == ConnectionStatus.DISCONNECTED:
            self._channel_id = ""

        if self.on_status_change:
            self.on_status_change(new_status)
        return True

    def _emit_message(self, message: ChatMessage) -> None:
        """Deliver a decoded message to the host."""
        if self.on_message:
            self.on_message(message)

    def _emit_room_id(self, room_id: str) -> None:
        """Report the numeric room id of the joined channel."""
        if self.on_room_id:
            self.on_room_id(room_id)

    def _emit_error(self, message: str) -> None:
        """Log a socket-level error and move to the error status."""
        logger.error(f"Chat connection error ({self.__class__.__name__}): {message}")
        self._apply_event(ConnectionEvent.FAILED)

    def _reset_backoff(self) -> None:
        """Reset reconnection backoff delay after successful connection."""
        self._reconnect_delay = INITIAL_RECONNECT_DELAY

    def get_next_backoff(self) -> float:
        """Get the next backoff delay with jitter and update for next call."""
        delay = self._reconnect_delay
        # Add jitter (±10%)
        jitter = delay * RECONNECT_JITTER * (2 * random.random() - 1)
        delay_with_jitter = delay + jitter

        self._reconnect_delay = min(
            self._reconnect_delay * RECONNECT_BACKOFF_FACTOR,
            MAX_RECONNECT_DELAY,
        )

        return delay_with_jitter

    async def sleep_with_backoff(self) -> None:
        """Sleep for the current backoff delay before reconnecting."""
        delay = self.get_next_backoff()
        logger.info(
            f"{self.__class__.__name__}: reconnecting in {delay:.1f}s "
            f"(next delay: {self._reconnect_delay:.1f}s)"
        )
        await asyncio.sleep(delay)
