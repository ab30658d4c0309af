"""Settings management for NexChat."""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from appdirs import user_config_dir, user_data_dir

APP_NAME = "nexchat"
APP_AUTHOR = "nexchat"

DEFAULT_ALERTS = "pog, omg, hype"

MIN_MAX_MESSAGES = 10
MAX_MAX_MESSAGES = 10000


def get_config_dir() -> Path:
    """Get the configuration directory."""
    path = Path(user_config_dir(APP_NAME, APP_AUTHOR))
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Get the data directory."""
    path = Path(user_data_dir(APP_NAME, APP_AUTHOR))
    path.mkdir(parents=True, exist_ok=True)
    return path


def split_alert_words(alerts: str) -> list[str]:
    """Split a comma-separated alert string into trimmed, non-empty words."""
    return [word.strip() for word in alerts.split(",") if word.strip()]


@dataclass
class ChatSettings:
    """Settings for the live chat feed."""

    channel: str = ""
    alerts: str = DEFAULT_ALERTS  # comma-separated alert keywords
    max_messages: int = 500
    audio_enabled: bool = False  # Ping on alert
    auto_connect: bool = False
    sentiment_enabled: bool = True
    timestamps_enabled: bool = True
    emote_providers: list[str] = field(default_factory=lambda: ["bttv", "7tv", "ffz"])

    @property
    def alert_words(self) -> list[str]:
        """Active alert keywords parsed from `alerts`."""
        return split_alert_words(self.alerts)


@dataclass
class Settings:
    """Application settings."""

    chat: ChatSettings = field(default_factory=ChatSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from file."""
        if path is None:
            path = get_config_dir() / "settings.json"

        if not path.exists():
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return cls._from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError):
            return cls()

    def save(self, path: Path | None = None) -> None:
        """Save settings to file."""
        if path is None:
            path = get_config_dir() / "settings.json"

        path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file then rename to prevent corruption on crash
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix="settings_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._to_dict(), f, indent=2)
            os.replace(tmp_path, path)  # Atomic on POSIX
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    @staticmethod
    def _validate_int(value, default: int, min_val: int = 0, max_val: int | None = None) -> int:
        """Validate and clamp an integer value."""
        if isinstance(value, bool) or not isinstance(value, int):
            return default
        if value < min_val:
            return min_val
        if max_val is not None and value > max_val:
            return max_val
        return value

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        """Create Settings from a dictionary with validation."""
        settings = cls()
        chat_data = data.get("chat", {})
        defaults = settings.chat

        alerts = chat_data.get("alerts", defaults.alerts)
        providers = chat_data.get("emote_providers", defaults.emote_providers)

        settings.chat = ChatSettings(
            channel=str(chat_data.get("channel", defaults.channel)),
            alerts=alerts if isinstance(alerts, str) else defaults.alerts,
            max_messages=cls._validate_int(
                chat_data.get("max_messages"),
                defaults.max_messages,
                min_val=MIN_MAX_MESSAGES,
                max_val=MAX_MAX_MESSAGES,
            ),
            audio_enabled=bool(chat_data.get("audio_enabled", defaults.audio_enabled)),
            auto_connect=bool(chat_data.get("auto_connect", defaults.auto_connect)),
            sentiment_enabled=bool(
                chat_data.get("sentiment_enabled", defaults.sentiment_enabled)
            ),
            timestamps_enabled=bool(
                chat_data.get("timestamps_enabled", defaults.timestamps_enabled)
            ),
            emote_providers=(
                [str(p) for p in providers]
                if isinstance(providers, list)
                else defaults.emote_providers
            ),
        )
        return settings

    def _to_dict(self) -> dict:
        """Convert Settings to a dictionary."""
        return {
            "chat": {
                "channel": self.chat.channel,
                "alerts": self.chat.alerts,
                "max_messages": self.chat.max_messages,
                "audio_enabled": self.chat.audio_enabled,
                "auto_connect": self.chat.auto_connect,
                "sentiment_enabled": self.chat.sentiment_enabled,
                "timestamps_enabled": self.chat.timestamps_enabled,
                "emote_providers": list(self.chat.emote_providers),
            },
        }
