"""Chat connections."""

from .base import BaseChatConnection
from .twitch import TwitchChatConnection

__all__ = ["BaseChatConnection", "TwitchChatConnection"]
