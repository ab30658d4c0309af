"""Data models for the chat pipeline."""

from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_USER_COLOR = "#9147ff"
UNKNOWN_USERNAME = "Unknown"


@dataclass(frozen=True)
class ChatEmote:
    """A third-party emote catalog entry."""

    id: str
    name: str  # Text code matched against whole tokens (e.g., "KEKW")
    url: str  # Image source
    provider: str  # "bttv", "7tv", "ffz"


@dataclass(frozen=True)
class ChatMessage:
    """A single decoded chat message."""

    id: str | None
    user_id: str | None
    username: str
    text: str
    time: datetime
    color: str = DEFAULT_USER_COLOR
    # "start-end" (inclusive, UTF-16 code units of text) -> Twitch emote id
    emotes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DecodeOutcome:
    """Result of decoding one raw line: a message, or the reason it was skipped."""

    message: ChatMessage | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.message is not None


@dataclass
class ProviderResult:
    """Result of one catalog fetch: its emotes, or the error that emptied it."""

    source: str  # e.g. "bttv:global"
    emotes: list[ChatEmote] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
