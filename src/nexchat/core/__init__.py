"""Core models and settings for NexChat."""

from .models import ConnectionEvent, ConnectionStatus, Sentiment, next_status
from .settings import ChatSettings, Settings

__all__ = [
    "ChatSettings",
    "ConnectionEvent",
    "ConnectionStatus",
    "Sentiment",
    "Settings",
    "next_status",
]
