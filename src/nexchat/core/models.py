"""Core data models for NexChat."""

from enum import Enum
from typing import Optional


class ConnectionStatus(str, Enum):
    """Status of the chat connection as reported to the host."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class ConnectionEvent(str, Enum):
    """Socket-level events that drive connection status transitions."""

    OPENED = "opened"
    CLOSED = "closed"
    FAILED = "failed"


class Sentiment(str, Enum):
    """Coarse message sentiment."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# (status, event) -> next status. Pairs missing from the table are invalid.
_TRANSITIONS: dict[tuple[ConnectionStatus, ConnectionEvent], ConnectionStatus] = {
    (ConnectionStatus.DISCONNECTED, ConnectionEvent.OPENED): ConnectionStatus.CONNECTED,
    (ConnectionStatus.DISCONNECTED, ConnectionEvent.FAILED): ConnectionStatus.ERROR,
    (ConnectionStatus.CONNECTED, ConnectionEvent.CLOSED): ConnectionStatus.DISCONNECTED,
    (ConnectionStatus.CONNECTED, ConnectionEvent.FAILED): ConnectionStatus.ERROR,
    (ConnectionStatus.ERROR, ConnectionEvent.OPENED): ConnectionStatus.CONNECTED,
    (ConnectionStatus.ERROR, ConnectionEvent.FAILED): ConnectionStatus.ERROR,
}


def next_status(
    status: ConnectionStatus, event: ConnectionEvent
) -> Optional[ConnectionStatus]:
    """Return the status reached from `status` on `event`, or None if invalid."""
    return _TRANSITIONS.get((status, event))
