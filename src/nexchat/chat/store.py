"""Bounded chat buffer with running session statistics."""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Iterable

from ..core.settings import split_alert_words
from .alerts import contains_alert_word
from .models import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 500


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatAggregateStore:
    """Holds the most recent messages plus per-session counters.

    The buffer keeps at most `max_messages` entries and drops the oldest one
    when a new message would exceed it. Counters (total, per user) cover the
    whole session, not just what is still buffered.
    """

    def __init__(self, max_messages: int = DEFAULT_MAX_MESSAGES, alert_words: Iterable[str] = ()):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._max_messages = max_messages
        self._messages: deque[ChatMessage] = deque()
        self._user_counts: dict[str, int] = {}
        self._total_messages = 0
        self._start_time: datetime | None = None
        self._alert_words: list[str] = [w for w in alert_words if w]

    @property
    def messages(self) -> list[ChatMessage]:
        """Buffered messages, oldest first."""
        return list(self._messages)

    @property
    def max_messages(self) -> int:
        return self._max_messages

    @property
    def total_messages(self) -> int:
        return self._total_messages

    @property
    def user_counts(self) -> dict[str, int]:
        return dict(self._user_counts)

    @property
    def start_time(self) -> datetime | None:
        return self._start_time

    @property
    def alert_words(self) -> list[str]:
        return list(self._alert_words)

    def __len__(self) -> int:
        return len(self._messages)

    def start(self, now: datetime | None = None) -> None:
        """Reset the buffer and counters and stamp the session start."""
        self._messages.clear()
        self._user_counts.clear()
        self._total_messages = 0
        self._start_time = now or _now()

    def stop(self) -> None:
        """End the session; buffered messages and counters are kept for review."""
        self._start_time = None

    def set_max_messages(self, max_messages: int) -> None:
        """Change the buffer bound, evicting the oldest messages if needed."""
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._max_messages = max_messages
        while len(self._messages) > self._max_messages:
            self._messages.popleft()

    def set_alert_words(self, alerts: str | Iterable[str]) -> None:
        """Set alert keywords from a comma-separated string or an iterable."""
        if isinstance(alerts, str):
            self._alert_words = split_alert_words(alerts)
        else:
            self._alert_words = [w.strip() for w in alerts if w.strip()]

    def is_alert(self, message: ChatMessage) -> bool:
        return contains_alert_word(message.text, self._alert_words)

    def add_message(self, message: ChatMessage) -> bool:
        """Record a message. Returns True if it matches an alert keyword."""
        self._messages.append(message)
        self._total_messages += 1
        self._user_counts[message.username] = self._user_counts.get(message.username, 0) + 1

        if len(self._messages) > self._max_messages:
            self._messages.popleft()

        return self.is_alert(message)

    def filtered_messages(
        self, user: str | None = None, query: str | None = None
    ) -> list[ChatMessage]:
        """Buffered messages from `user` (exact) containing `query` (case-insensitive)."""
        result: Iterable[ChatMessage] = self._messages
        if user:
            result = (m for m in result if m.username == user)
        if query:
            low = query.lower()
            result = (m for m in result if low in m.text.lower())
        return list(result)

    def top_chatters(self, limit: int = 5) -> list[tuple[str, int]]:
        """Most active users this session, highest count first."""
        ranked = sorted(self._user_counts.items(), key=lambda item: item[1], reverse=True)
        return ranked[:limit]

    def elapsed_seconds(self, now: datetime | None = None) -> float:
        """Seconds since the session started (0 when stopped)."""
        if self._start_time is None:
            return 0.0
        return max(((now or _now()) - self._start_time).total_seconds(), 0.0)

    def messages_per_minute(self, now: datetime | None = None) -> int:
        """Session-wide message rate, rounded; elapsed time is floored at 6 seconds."""
        if self._start_time is None:
            return 0
        elapsed_minutes = self.elapsed_seconds(now) / 60
        return int(self._total_messages / max(elapsed_minutes, 0.1) + 0.5)

    def uptime_str(self, now: datetime | None = None) -> str:
        """Session uptime as HH:MM:SS."""
        total_seconds = int(self.elapsed_seconds(now))
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
