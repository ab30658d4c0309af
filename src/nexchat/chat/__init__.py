"""Chat ingestion, rendering and aggregation."""

from .manager import ChatSession
from .models import ChatEmote, ChatMessage, DecodeOutcome, ProviderResult
from .store import ChatAggregateStore

__all__ = [
    "ChatAggregateStore",
    "ChatEmote",
    "ChatMessage",
    "ChatSession",
    "DecodeOutcome",
    "ProviderResult",
]
