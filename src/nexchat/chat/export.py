"""JSON export of the chat buffer."""

import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from .models import DEFAULT_USER_COLOR, UNKNOWN_USERNAME, ChatMessage

logger = logging.getLogger(__name__)


def message_to_dict(msg: ChatMessage) -> dict:
    """Serialize a ChatMessage for the JSON export."""
    return {
        "id": msg.id,
        "userId": msg.user_id,
        "username": msg.username,
        "color": msg.color,
        "text": msg.text,
        "emotes": dict(msg.emotes),
        "time": msg.time.isoformat(),
    }


def dict_to_message(d: dict) -> ChatMessage:
    """Deserialize an exported dict back to a ChatMessage."""
    try:
        ts = datetime.fromisoformat(d["time"])
    except (KeyError, TypeError, ValueError):
        ts = datetime.now(timezone.utc)

    return ChatMessage(
        id=d.get("id"),
        user_id=d.get("userId"),
        username=d.get("username") or UNKNOWN_USERNAME,
        color=d.get("color") or DEFAULT_USER_COLOR,
        text=d.get("text", ""),
        emotes=dict(d.get("emotes") or {}),
        time=ts,
    )


def export_filename(channel: str, timestamp_ms: int | None = None) -> str:
    """File name for an export of `channel`'s buffer."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    safe_channel = re.sub(r"[^A-Za-z0-9_-]", "_", channel) or "chat"
    return f"nexchat_{safe_channel}_{timestamp_ms}.json"


def export_messages(
    messages: Iterable[ChatMessage],
    channel: str,
    directory: Path,
    timestamp_ms: int | None = None,
) -> Path:
    """Write messages as an indented JSON array and return the file path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(channel, timestamp_ms)
    data = [message_to_dict(msg) for msg in messages]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    logger.info(f"Exported {len(data)} messages to {path}")
    return path


def load_export(path: Path) -> list[ChatMessage]:
    """Read messages back from an export file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return [dict_to_message(d) for d in data if isinstance(d, dict)]
